"""Match records: one row per scheduled contest between two teams."""
import json
import logging

from scoring import audit
from scoring.cricket import default_cricket_data, is_cricket_sport, validate_cricket_data
from scoring.lifecycle import STATUSES, check_transition, is_terminal
from scoring.notifications import safe_notify
from scoring.teams import award_points, find_team_by_name
from utils.dates import now_iso, parse_datetime, to_iso
from utils.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MATCH_FORMATS = ('standard', 'heats', 'timed')
CREATE_STATUSES = ('scheduled', 'live')
PATCH_FIELDS = (
    'scoreTeam1', 'scoreTeam2', 'status', 'cricketData', 'note', 'venue',
    'scheduledAt', 'roundName', 'format', 'mvp', 'winner', 'baseVersion',
)
INITIAL_REASON = 'Match Initialized'
DEFAULT_REASON = 'Score Update'
WIN_POINTS = 1

MATCH_SELECT = """
    SELECT m.*, t1.name AS team1_name, t2.name AS team2_name, w.name AS winner_name
    FROM matches m
    LEFT JOIN teams t1 ON m.team1_id = t1.id
    LEFT JOIN teams t2 ON m.team2_id = t2.id
    LEFT JOIN teams w ON m.winner_id = w.id
"""


def match_from_row(row):
    return {
        'id': row['id'],
        'team1': row['team1_id'],
        'team2': row['team2_id'],
        'team1Name': row['team1_name'],
        'team2Name': row['team2_name'],
        'sportName': row['sport_name'],
        'venue': row['venue'],
        'scheduledAt': row['scheduled_at'],
        'roundName': row['round_name'],
        'format': row['format'],
        'status': row['status'],
        'scoreTeam1': row['score_team1'],
        'scoreTeam2': row['score_team2'],
        'cricketData': json.loads(row['cricket_data']) if row['cricket_data'] else None,
        'winner': row['winner_id'],
        'winnerName': row['winner_name'],
        'mvp': row['mvp'],
        'pointsAwarded': bool(row['points_awarded']),
        'version': row['version'],
        'createdBy': row['created_by'],
        'createdAt': row['created_at'],
        'updatedAt': row['updated_at'],
    }


# --- FIELD HELPERS ---

def _score(value, field):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f'{field} must be a non-negative whole number.')
    return value


def _team_id(conn, value, field):
    try:
        team_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a team id.')
    if conn.execute('SELECT 1 FROM teams WHERE id = ?', (team_id,)).fetchone() is None:
        raise NotFoundError(f'Team {value} not found')
    return team_id


def _text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} must be a non-empty string.')
    return value.strip()


def _format(value):
    if value not in MATCH_FORMATS:
        raise ValidationError(f"format must be one of: {', '.join(MATCH_FORMATS)}.")
    return value


def _fetch_row(conn, match_id):
    row = conn.execute(MATCH_SELECT + ' WHERE m.id = ?', (match_id,)).fetchone()
    if row is None:
        raise NotFoundError('Match not found')
    return row


# --- READS ---

def get_match(conn, match_id):
    """A match with team names resolved and its full audit trail."""
    match = match_from_row(_fetch_row(conn, match_id))
    match['auditTrail'] = audit.list_entries(conn, match_id)
    return match


def list_matches(conn, status=None, sport=None, limit=20, statuses=None):
    """
    Most recently updated first. `sport` is a case-insensitive substring
    match on the sport name; `statuses` restricts to several statuses at once.
    Pass limit=None for no cap.
    """
    conditions = []
    params = []
    if status:
        if status not in STATUSES:
            raise ValidationError(f"Unknown status '{status}'.")
        conditions.append('m.status = ?')
        params.append(status)
    if statuses:
        conditions.append('m.status IN (%s)' % ', '.join('?' for _ in statuses))
        params.extend(statuses)
    if sport:
        conditions.append('instr(lower(m.sport_name), lower(?)) > 0')
        params.append(sport)

    query = MATCH_SELECT
    if conditions:
        query += ' WHERE ' + ' AND '.join(conditions)
    query += ' ORDER BY m.updated_at DESC, m.id DESC'
    if limit is not None:
        query += ' LIMIT ?'
        params.append(limit)

    return [match_from_row(row) for row in conn.execute(query, params).fetchall()]


# --- WRITES ---

def create_match(conn, data, actor, default_tz='UTC'):
    """
    Creates a match and seeds its audit trail with a "Match Initialized"
    entry. A cricket match created straight into live gets a fresh
    cricketData document.
    """
    if not isinstance(data, dict):
        raise ValidationError('Match data must be an object.')

    team1 = data.get('team1', data.get('team1Id'))
    team2 = data.get('team2', data.get('team2Id'))
    required = {
        'team1': team1,
        'team2': team2,
        'sportName': data.get('sportName'),
        'venue': data.get('venue'),
        'scheduledAt': data.get('scheduledAt'),
    }
    missing = [field for field, value in required.items() if value in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    sport_name = _text(data['sportName'], 'sportName')
    venue = _text(data['venue'], 'venue')
    team1_id = _team_id(conn, team1, 'team1')
    team2_id = _team_id(conn, team2, 'team2')
    if team1_id == team2_id:
        raise ValidationError('A team cannot play against itself. Please select two different teams.')

    status = data.get('status') or 'scheduled'
    if status not in CREATE_STATUSES:
        raise ValidationError("A new match must be 'scheduled' or 'live'.")
    match_format = _format(data.get('format') or 'standard')
    score1 = _score(data.get('scoreTeam1', 0), 'scoreTeam1')
    score2 = _score(data.get('scoreTeam2', 0), 'scoreTeam2')
    scheduled_at = to_iso(parse_datetime(data['scheduledAt'], default_tz))
    round_name = data.get('roundName') or None

    cricket_data = None
    if status == 'live' and is_cricket_sport(sport_name):
        cricket_data = json.dumps(default_cricket_data())

    now = now_iso()
    with conn:
        cursor = conn.execute("""
            INSERT INTO matches (team1_id, team2_id, sport_name, venue, scheduled_at, round_name,
                                 format, status, score_team1, score_team2, cricket_data,
                                 created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (team1_id, team2_id, sport_name, venue, scheduled_at, round_name,
              match_format, status, score1, score2, cricket_data, actor, now, now))
        match_id = cursor.lastrowid
        audit.append_entry(conn, match_id, actor, score1, score2, INITIAL_REASON)

    logger.info('Match %s created: %s, team %s vs team %s', match_id, sport_name, team1_id, team2_id)
    return get_match(conn, match_id)


def _resolve_winner(row, value):
    if value in (None, '', 'draw'):
        return None
    try:
        winner_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError('winner must be one of the two team ids or "draw".')
    if winner_id not in (row['team1_id'], row['team2_id']):
        raise ValidationError('winner must be one of the two teams playing.')
    return winner_id


def update_match(conn, match_id, patch, actor, notifier=None, audit_reason=None, default_tz='UTC'):
    """
    Applies a partial update.

    A patch carrying scoreTeam1 or scoreTeam2 appends exactly one audit entry
    with the resulting scores (reason: `note`, else "Score Update").
    `audit_reason` forces an entry for writes that do not touch the scores.
    When `baseVersion` is given it must match the stored version, otherwise
    the write is rejected with a ConflictError. Completed and cancelled
    matches accept metadata edits only.

    The notifier is called after the commit with (match_id, status, scores)
    and may fail without affecting the write.
    """
    if not isinstance(patch, dict) or not patch:
        raise ValidationError('Nothing to update.')
    unknown = sorted(set(patch) - set(PATCH_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}")

    row = _fetch_row(conn, match_id)

    base_version = patch.get('baseVersion')
    if base_version is not None and (isinstance(base_version, bool) or not isinstance(base_version, int)):
        raise ValidationError('baseVersion must be a whole number.')
    if base_version is not None and base_version != row['version']:
        raise ConflictError(
            f"Match was updated by someone else (now at version {row['version']}). Reload and try again."
        )

    touches_score = 'scoreTeam1' in patch or 'scoreTeam2' in patch
    touches_play = touches_score or 'cricketData' in patch or 'status' in patch
    if is_terminal(row['status']) and touches_play:
        raise ConflictError('Match is finalized. Scores and status cannot be modified.')

    new_status = patch.get('status', row['status'])
    if 'status' in patch:
        check_transition(row['status'], new_status)
    status_changed = new_status != row['status']

    fields = {}
    score1 = row['score_team1']
    score2 = row['score_team2']
    if touches_score:
        score1 = _score(patch.get('scoreTeam1', score1), 'scoreTeam1')
        score2 = _score(patch.get('scoreTeam2', score2), 'scoreTeam2')
        fields['score_team1'] = score1
        fields['score_team2'] = score2

    cricket_is_set = row['cricket_data'] is not None
    if 'cricketData' in patch:
        cricket_data = patch['cricketData']
        if cricket_data is not None:
            if not is_cricket_sport(row['sport_name']):
                raise ValidationError('cricketData is only valid for cricket matches.')
            fields['cricket_data'] = json.dumps(validate_cricket_data(cricket_data))
        else:
            fields['cricket_data'] = None
        cricket_is_set = cricket_data is not None

    if 'venue' in patch:
        fields['venue'] = _text(patch['venue'], 'venue')
    if 'scheduledAt' in patch:
        fields['scheduled_at'] = to_iso(parse_datetime(patch['scheduledAt'], default_tz))
    if 'roundName' in patch:
        fields['round_name'] = patch['roundName'] or None
    if 'format' in patch:
        fields['format'] = _format(patch['format'])
    if 'mvp' in patch:
        fields['mvp'] = patch['mvp'] or None
    if 'winner' in patch:
        fields['winner_id'] = _resolve_winner(row, patch['winner'])

    if status_changed:
        fields['status'] = new_status
        if new_status == 'live' and not cricket_is_set and is_cricket_sport(row['sport_name']):
            fields['cricket_data'] = json.dumps(default_cricket_data())

    fields['version'] = row['version'] + 1
    fields['updated_at'] = now_iso()

    with conn:
        if status_changed and new_status == 'completed':
            if 'winner' in patch:
                winner_id = fields['winner_id']
            elif score1 > score2:
                winner_id = row['team1_id']
            elif score2 > score1:
                winner_id = row['team2_id']
            else:
                winner_id = None
            fields['winner_id'] = winner_id
            if winner_id is not None and not row['points_awarded']:
                award_points(
                    conn, winner_id, WIN_POINTS, 1, row['sport_name'], actor,
                    reason=f"Won Sports Match ({row['sport_name']})", commit=False,
                )
                fields['points_awarded'] = 1

        assignments = ', '.join(f'{column} = ?' for column in fields)
        conn.execute(
            f'UPDATE matches SET {assignments} WHERE id = ?', list(fields.values()) + [match_id]
        )
        if touches_score or audit_reason:
            reason = patch.get('note') or audit_reason or DEFAULT_REASON
            audit.append_entry(conn, match_id, actor, score1, score2, reason)

    if touches_score or status_changed:
        safe_notify(
            notifier, match_id,
            status=new_status if status_changed else None,
            scores=(score1, score2) if touches_score else None,
        )
    return get_match(conn, match_id)


def delete_match(conn, match_id):
    """Hard delete. There is no undo."""
    _fetch_row(conn, match_id)
    with conn:
        conn.execute('DELETE FROM match_audit WHERE match_id = ?', (match_id,))
        conn.execute('DELETE FROM matches WHERE id = ?', (match_id,))
    logger.info('Match %s deleted', match_id)


def bulk_create_matches(conn, rows, actor, default_tz='UTC'):
    """
    Creates matches addressed by team name. Rows whose teams cannot be
    resolved, or that fail validation, are reported instead of aborting
    the batch.
    """
    if not isinstance(rows, list):
        raise ValidationError('matches must be a list.')

    created = []
    errors = []
    for index, item in enumerate(rows, start=1):
        if not isinstance(item, dict):
            errors.append(f'Row {index}: not an object')
            continue
        team1 = find_team_by_name(conn, item.get('team1Name'))
        team2 = find_team_by_name(conn, item.get('team2Name'))
        if team1 is None or team2 is None:
            errors.append(f"Could not resolve teams for match: {item.get('team1Name')} vs {item.get('team2Name')}")
            continue
        data = {
            'team1': team1['id'],
            'team2': team2['id'],
            'sportName': item.get('sportName') or 'Sports Activity',
            'venue': item.get('venue') or 'TBD',
            'scheduledAt': item.get('scheduledAt') or now_iso(),
            'roundName': item.get('roundName'),
            'format': item.get('format') or 'standard',
            'status': item.get('status') or 'scheduled',
            'scoreTeam1': item.get('scoreTeam1') or 0,
            'scoreTeam2': item.get('scoreTeam2') or 0,
        }
        try:
            created.append(create_match(conn, data, actor, default_tz)['id'])
        except (ValidationError, NotFoundError) as e:
            errors.append(f'Row {index}: {e.message}')

    return {'matches': len(created), 'created': created, 'errors': errors}
