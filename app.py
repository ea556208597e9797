# --- IMPORTS ---
from functools import partial
import sqlite3

import click
from flask import Flask, g, jsonify, request, session

from scoring import cricket
from scoring.broadcast import PUBLIC_STATUSES, live_feed, serialize_match
from scoring.lifecycle import AutoTransitionScheduler, auto_transition_due, transition_match
from scoring.matches import bulk_create_matches, create_match, delete_match, get_match, list_matches, update_match
from scoring.notifications import list_notifications, notify_match_update
from scoring.teams import award_points, get_team, leaderboard, list_teams, seed_teams
from utils.auth import current_actor, is_operator, operator_required, roles_required
from utils.db import get_db_connection, init_db
from utils.errors import ConflictError, SeconsError, TransientIOError, ValidationError

# --- APP SETUP ---
app = Flask(__name__)
app.config.from_pyfile('config.py')

auto_live = AutoTransitionScheduler(app.config['AUTO_LIVE_INTERVAL_SECONDS'])


# --- CONFIGURATION & HELPERS ---

def get_db():
    """One connection per request, closed on teardown."""
    if 'db' not in g:
        g.db = get_db_connection(app.config['DATABASE'])
    return g.db


@app.teardown_appcontext
def close_db(exc):
    conn = g.pop('db', None)
    if conn is not None:
        conn.close()


def ok(data=None, message=None, status=200):
    body = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    return jsonify(body), status


def request_json():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data


def actor():
    return current_actor() or 'anonymous'


def match_notifier(conn):
    return partial(notify_match_update, conn)


def run_auto_live(conn):
    """Lazily moves due matches to live, at most once per configured interval."""
    auto_live.interval_seconds = app.config['AUTO_LIVE_INTERVAL_SECONDS']
    return auto_live.run_if_due(conn, notifier=match_notifier(conn))


def forbidden(message='Sign in as an operator to view this match.'):
    return jsonify({'success': False, 'error': message}), 403


# --- AUTH ROUTES ---

@app.route('/api/auth/login', methods=['POST'])
def login():
    data = request_json()
    passcode = data.get('passcode')
    if passcode and passcode == app.config['ADMIN_PASSCODE']:
        role = 'ga'
    elif passcode and passcode == app.config['JGA_PASSCODE']:
        role = 'jga'
    else:
        app.logger.warning('Rejected operator login from %s', request.remote_addr)
        return jsonify({'success': False, 'error': 'Incorrect passcode.'}), 401

    session['role'] = role
    session['uid'] = data.get('uid') or role
    session['domain'] = data.get('domain') or 'sports'
    return ok({'uid': session['uid'], 'role': role, 'domain': session['domain']}, 'Login successful!')


@app.route('/api/auth/logout', methods=['POST'])
def logout():
    session.clear()
    return ok(message='You have been logged out.')


@app.route('/api/auth/me')
def me():
    if 'role' not in session:
        return jsonify({'success': False, 'error': 'Authentication required.'}), 401
    return ok({'uid': session.get('uid'), 'role': session['role'], 'domain': session.get('domain')})


# --- PUBLIC ROUTES ---

@app.route('/api/health')
def health():
    get_db().execute('SELECT 1').fetchone()
    return ok({'status': 'ok'})


@app.route('/api/live')
def live_matches():
    """Public scoreboard feed. Viewers poll this every PUBLIC_POLL_INTERVAL_SECONDS."""
    conn = get_db()
    run_auto_live(conn)
    return ok(live_feed(conn, app.config['PUBLIC_POLL_INTERVAL_SECONDS']))


@app.route('/api/matches')
def matches():
    """Lists matches, filtered by status and sport. Anonymous callers only see live and completed ones."""
    conn = get_db()
    run_auto_live(conn)

    status = request.args.get('status') or None
    sport = request.args.get('sport') or None
    limit = None if status == 'live' else app.config['MATCH_LIST_LIMIT']

    if is_operator():
        found = list_matches(conn, status=status, sport=sport, limit=limit)
    else:
        if status and status not in PUBLIC_STATUSES:
            return forbidden('Sign in as an operator to list these matches.')
        found = list_matches(
            conn, status=status, sport=sport, limit=limit,
            statuses=None if status else PUBLIC_STATUSES,
        )
    return ok([serialize_match(m) for m in found])


@app.route('/api/matches/<int:match_id>')
def match_details(match_id):
    conn = get_db()
    run_auto_live(conn)
    match = get_match(conn, match_id)
    if not is_operator():
        if match['status'] not in PUBLIC_STATUSES:
            return forbidden()
        match.pop('auditTrail', None)
    return ok(serialize_match(match))


@app.route('/api/teams')
def teams():
    return ok(list_teams(get_db()))


@app.route('/api/teams/<int:team_id>')
def team_details(team_id):
    """A team with its points log."""
    return ok(get_team(get_db(), team_id))


@app.route('/api/leaderboard')
def team_leaderboard():
    return ok(leaderboard(get_db()))


# --- OPERATOR: MATCH MANAGEMENT ---

@app.route('/api/matches', methods=['POST'])
@operator_required
def create_match_route():
    match = create_match(get_db(), request_json(), actor(), app.config['TIMEZONE'])
    return ok(serialize_match(match), 'Match created successfully', 201)


@app.route('/api/matches/bulk', methods=['POST'])
@operator_required
def bulk_import_matches():
    data = request_json()
    results = bulk_create_matches(get_db(), data.get('matches'), actor(), app.config['TIMEZONE'])
    return ok(results)


@app.route('/api/matches/<int:match_id>', methods=['PATCH'])
@operator_required
def edit_match(match_id):
    conn = get_db()
    match = update_match(
        conn, match_id, request_json(), actor(),
        notifier=match_notifier(conn), default_tz=app.config['TIMEZONE'],
    )
    return ok(serialize_match(match), 'Match updated successfully')


@app.route('/api/matches/<int:match_id>', methods=['DELETE'])
@operator_required
def delete_match_route(match_id):
    delete_match(get_db(), match_id)
    session.pop(scoring_key(match_id), None)
    return ok(message='Match deleted successfully')


@app.route('/api/matches/<int:match_id>/status', methods=['POST'])
@operator_required
def change_match_status(match_id):
    data = request_json()
    if not data.get('status'):
        raise ValidationError('status is required.')
    conn = get_db()
    match = transition_match(
        conn, match_id, data['status'], actor(),
        note=data.get('note'), notifier=match_notifier(conn), base_version=data.get('baseVersion'),
    )
    return ok(serialize_match(match), f"Match marked {match['status']}")


@app.route('/api/matches/<int:match_id>/audit')
@operator_required
def match_audit(match_id):
    return ok(get_match(get_db(), match_id)['auditTrail'])


@app.route('/api/notifications')
@operator_required
def notifications():
    limit = request.args.get('limit', default=50, type=int)
    return ok(list_notifications(get_db(), limit))


# --- OPERATOR: LIVE CRICKET SCORING ---
# The working copy lives in the operator's session until it is synced.

def scoring_key(match_id):
    return f'scoring:{match_id}'


def load_working_copy(conn, match_id):
    match = get_match(conn, match_id)
    if not cricket.is_cricket_sport(match['sportName']):
        raise ValidationError('Live scoring is only available for cricket matches.')
    if match['status'] != 'live':
        raise ConflictError(f"Match is {match['status']}. Scoring is only open while it is live.")

    working = session.get(scoring_key(match_id))
    if working is None:
        working = {'baseVersion': match['version'], 'state': cricket.new_state(match['cricketData'])}
        session[scoring_key(match_id)] = working
    return match, working


def scoring_view(match_id, working):
    view = cricket.describe(working['state'])
    view['matchId'] = match_id
    view['baseVersion'] = working['baseVersion']
    return view


def apply_scoring(match_id, transition):
    """Runs one engine transition against the session copy and stores the result."""
    _, working = load_working_copy(get_db(), match_id)
    working = {'baseVersion': working['baseVersion'], 'state': transition(working['state'])}
    session[scoring_key(match_id)] = working
    return ok(scoring_view(match_id, working))


@app.route('/api/matches/<int:match_id>/scoring')
@operator_required
def scoring_state(match_id):
    _, working = load_working_copy(get_db(), match_id)
    view = scoring_view(match_id, working)
    view['pollInterval'] = app.config['OPERATOR_POLL_INTERVAL_SECONDS']
    return ok(view)


@app.route('/api/matches/<int:match_id>/scoring/toss', methods=['POST'])
@operator_required
def record_toss(match_id):
    data = request_json()
    return apply_scoring(match_id, lambda state: cricket.set_toss(state, data.get('winner'), data.get('decision')))


@app.route('/api/matches/<int:match_id>/scoring/batsmen', methods=['POST'])
@operator_required
def record_batsmen(match_id):
    data = request_json()
    return apply_scoring(match_id, lambda state: cricket.set_batsmen(
        state, data.get('striker'), data.get('nonStriker'), data.get('bowler')
    ))


@app.route('/api/matches/<int:match_id>/scoring/ball', methods=['POST'])
@operator_required
def record_ball(match_id):
    data = request_json()
    return apply_scoring(match_id, lambda state: cricket.apply_ball(state, data))


@app.route('/api/matches/<int:match_id>/scoring/new-batter', methods=['POST'])
@operator_required
def record_new_batter(match_id):
    data = request_json()
    return apply_scoring(match_id, lambda state: cricket.set_new_batter(state, data.get('name')))


@app.route('/api/matches/<int:match_id>/scoring/new-bowler', methods=['POST'])
@operator_required
def record_new_bowler(match_id):
    data = request_json()
    return apply_scoring(match_id, lambda state: cricket.set_new_bowler(state, data.get('name')))


@app.route('/api/matches/<int:match_id>/scoring/sync', methods=['POST'])
@operator_required
def sync_scoring(match_id):
    """
    Commits the working copy in one update. On failure the session copy is
    left as it was so the operator can simply sync again.
    """
    data = request.get_json(silent=True) or {}
    conn = get_db()
    _, working = load_working_copy(conn, match_id)

    patch = cricket.sync_patch(working['state'])
    patch['note'] = data.get('note') or 'Live Scoring Sync'
    patch['baseVersion'] = working['baseVersion']
    try:
        match = update_match(conn, match_id, patch, actor(), notifier=match_notifier(conn))
    except sqlite3.OperationalError:
        app.logger.exception('Sync failed for match %s', match_id)
        raise TransientIOError('Could not save the score. Your scoring is kept; try syncing again.')

    if match['status'] == 'live':
        working = {'baseVersion': match['version'], 'state': working['state']}
        session[scoring_key(match_id)] = working
    else:
        session.pop(scoring_key(match_id), None)

    app.logger.info('Match %s synced at version %s (%s)', match_id, match['version'], match['status'])
    return ok({'match': serialize_match(match), 'scoring': scoring_view(match_id, working)}, 'Score synced.')


@app.route('/api/matches/<int:match_id>/scoring/reset', methods=['POST'])
@operator_required
def reset_scoring(match_id):
    """Drops the session copy and reloads it from the stored match."""
    session.pop(scoring_key(match_id), None)
    _, working = load_working_copy(get_db(), match_id)
    return ok(scoring_view(match_id, working), 'Scoring reloaded from the saved match.')


# --- OPERATOR: TEAMS & POINTS ---

@app.route('/api/teams/seed', methods=['POST'])
@roles_required('ga')
def seed_teams_route():
    seeded = seed_teams(get_db())
    return ok(seeded, f'Successfully synchronized {len(seeded)} teams')


@app.route('/api/teams/<int:team_id>/points', methods=['POST'])
@operator_required
def award_team_points(team_id):
    data = request_json()
    if data.get('points') is None or data.get('position') is None or not data.get('eventId'):
        raise ValidationError('points, position, and eventId are required')
    conn = get_db()
    award_points(conn, team_id, data['points'], data['position'], data['eventId'], actor(), data.get('reason'))
    return ok(get_team(conn, team_id), 'Points awarded successfully')


# --- CLI COMMANDS ---

@app.cli.command('init-db')
def init_db_command():
    """Creates the database tables."""
    init_db(get_db())
    click.echo('Database tables created successfully.')


@app.cli.command('seed-teams')
def seed_teams_command():
    seeded = seed_teams(get_db())
    click.echo(f'{len(seeded)} teams seeded.')


@app.cli.command('auto-live')
def auto_live_command():
    """Moves every scheduled match whose start time has passed to live."""
    conn = get_db()
    moved = auto_transition_due(conn, notifier=match_notifier(conn))
    click.echo(f'{len(moved)} match(es) moved to live.')


# --- ERROR HANDLERS ---

@app.errorhandler(SeconsError)
def handle_secons_error(e):
    if e.status_code >= 500:
        app.logger.error('%s: %s', type(e).__name__, e.message)
    return jsonify(e.to_dict()), e.status_code


@app.errorhandler(sqlite3.OperationalError)
def handle_database_unavailable(e):
    app.logger.exception('Database error')
    error = TransientIOError('The database is unavailable. Please try again.')
    return jsonify(error.to_dict()), error.status_code


@app.errorhandler(404)
def handle_404(e):
    return jsonify({'success': False, 'error': 'Not found'}), 404


@app.errorhandler(405)
def handle_405(e):
    return jsonify({'success': False, 'error': 'Method not allowed'}), 405


@app.errorhandler(500)
def handle_500(e):
    return jsonify({'success': False, 'error': 'Internal Server Error'}), 500
