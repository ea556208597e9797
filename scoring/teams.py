"""Competing teams and the points they collect across the festival."""
import logging

from utils.dates import now_iso
from utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

GROUP_CODES = {
    'Commerce': 'COM',
    'Professional': 'PROF',
    'Life Science': 'LIFE',
    'Physical Science': 'PHYS',
    'Social Science': 'SOC',
    'Humanities': 'HUM',
}
GROUPS = list(GROUP_CODES)
SEMESTERS = [2, 4, 6]


def team_from_row(row):
    return {
        'id': row['id'],
        'name': row['name'],
        'group': row['group_name'],
        'semester': row['semester'],
        'totalPoints': row['total_points'],
        'createdAt': row['created_at'],
    }


def award_from_row(row):
    return {
        'eventRef': row['event_ref'],
        'points': row['points'],
        'position': row['position'],
        'awardedBy': row['awarded_by'],
        'awardedAt': row['awarded_at'],
        'reason': row['reason'],
    }


def seed_teams(conn):
    """
    Creates the 18 festival teams (3 semesters x 6 groups), named by group
    code and semester, e.g. COM2 or PROF4. Existing teams only get their
    name refreshed; their points are left alone.
    """
    now = now_iso()
    for semester in SEMESTERS:
        for group in GROUPS:
            conn.execute("""
                INSERT INTO teams (name, group_name, semester, total_points, created_at)
                VALUES (?, ?, ?, 0, ?)
                ON CONFLICT (group_name, semester) DO UPDATE SET name = excluded.name
            """, (f"{GROUP_CODES[group]}{semester}", group, semester, now))
    conn.commit()
    return list_teams(conn)


def list_teams(conn):
    rows = conn.execute('SELECT * FROM teams ORDER BY semester, group_name').fetchall()
    return [team_from_row(row) for row in rows]


def get_team(conn, team_id):
    """A team with its full award history, newest first."""
    row = conn.execute('SELECT * FROM teams WHERE id = ?', (team_id,)).fetchone()
    if row is None:
        raise NotFoundError('Team not found')
    team = team_from_row(row)
    awards = conn.execute(
        'SELECT * FROM team_points WHERE team_id = ? ORDER BY awarded_at DESC, id DESC', (team_id,)
    ).fetchall()
    team['eventPoints'] = [award_from_row(a) for a in awards]
    return team


def find_team_by_name(conn, name):
    if not name:
        return None
    return conn.execute(
        'SELECT * FROM teams WHERE lower(name) = ?', (name.strip().lower(),)
    ).fetchone()


def award_points(conn, team_id, points, position, event_ref, actor, reason=None, commit=True):
    """
    Records one award and bumps the cached total in the same transaction.
    Pass commit=False to fold the award into a caller's transaction.
    """
    if isinstance(points, bool) or not isinstance(points, int):
        raise ValidationError('points must be a whole number.')
    if isinstance(position, bool) or not isinstance(position, int) or position < 1:
        raise ValidationError('position must be a positive whole number.')
    if not event_ref:
        raise ValidationError('eventId is required.')

    cursor = conn.execute(
        'UPDATE teams SET total_points = total_points + ? WHERE id = ?', (points, team_id)
    )
    if cursor.rowcount == 0:
        raise NotFoundError('Team not found')
    conn.execute("""
        INSERT INTO team_points (team_id, event_ref, points, position, awarded_by, reason, awarded_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    """, (team_id, str(event_ref), points, position, actor, reason, now_iso()))
    if commit:
        conn.commit()
    logger.info('Awarded %s points to team %s for %s', points, team_id, event_ref)
    return team_id


def leaderboard(conn, limit=10):
    rows = conn.execute(
        'SELECT * FROM teams ORDER BY total_points DESC, semester ASC, id ASC LIMIT ?', (limit,)
    ).fetchall()
    return [team_from_row(row) for row in rows]
