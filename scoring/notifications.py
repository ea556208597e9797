"""Best-effort match update notices for the operator console."""
import logging

from utils.dates import now_iso

logger = logging.getLogger(__name__)


def notify_match_update(conn, match_id, status=None, scores=None):
    """Writes one "Match Update" notice. Raises if the write fails."""
    row = conn.execute("""
        SELECT t1.name AS team1_name, t2.name AS team2_name
        FROM matches m
        LEFT JOIN teams t1 ON m.team1_id = t1.id
        LEFT JOIN teams t2 ON m.team2_id = t2.id
        WHERE m.id = ?
    """, (match_id,)).fetchone()
    team1 = row['team1_name'] if row and row['team1_name'] else 'Team 1'
    team2 = row['team2_name'] if row and row['team2_name'] else 'Team 2'

    if status:
        body = f"Match status changed to {status}"
    else:
        body = f"Score updated: {scores[0]} - {scores[1]}"

    conn.execute(
        'INSERT INTO notifications (match_id, title, body, link, created_at) VALUES (?, ?, ?, ?, ?)',
        (match_id, f"Match Update: {team1} vs {team2}", body, '/sports', now_iso())
    )
    conn.commit()


def safe_notify(notifier, match_id, status=None, scores=None):
    """Calls a notifier hook, logging and dropping any failure."""
    if notifier is None:
        return False
    try:
        notifier(match_id, status, scores)
    except Exception:
        # The write has already been committed
        logger.exception('Failed to send match notification for match %s', match_id)
        return False
    return True


def list_notifications(conn, limit=50):
    rows = conn.execute(
        'SELECT * FROM notifications ORDER BY id DESC LIMIT ?', (limit,)
    ).fetchall()
    return [
        {
            'id': row['id'],
            'matchId': row['match_id'],
            'title': row['title'],
            'body': row['body'],
            'link': row['link'],
            'createdAt': row['created_at'],
        }
        for row in rows
    ]
