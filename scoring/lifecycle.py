"""
Match status lifecycle.

    scheduled -> live | completed | cancelled
    live      -> completed | cancelled

completed and cancelled are terminal.
"""
import json
import logging
import threading
import time

from scoring import audit
from scoring.cricket import default_cricket_data, is_cricket_sport
from scoring.notifications import safe_notify
from utils.dates import now_iso, now_utc, to_iso
from utils.errors import ConflictError, ValidationError

logger = logging.getLogger(__name__)

STATUSES = ('scheduled', 'live', 'completed', 'cancelled')
TERMINAL_STATUSES = ('completed', 'cancelled')
TRANSITIONS = {
    'scheduled': ('live', 'completed', 'cancelled'),
    'live': ('completed', 'cancelled'),
    'completed': (),
    'cancelled': (),
}
AUTO_LIVE_REASON = 'Auto-transitioned to Live'
STATUS_REASONS = {
    'live': 'Marked Live',
    'completed': 'Marked Completed',
    'cancelled': 'Marked Cancelled',
}


def is_terminal(status):
    return status in TERMINAL_STATUSES


def check_transition(current, new):
    """Raises unless a match in `current` may be moved to `new`."""
    if new not in STATUSES:
        raise ValidationError(f"Unknown status '{new}'. Expected one of: {', '.join(STATUSES)}.")
    if is_terminal(current):
        raise ConflictError(f'Match is {current}. Its status can no longer change.')
    if new == current:
        return
    if new not in TRANSITIONS[current]:
        raise ConflictError(f'Cannot move a {current} match back to {new}.')


def transition_match(conn, match_id, status, actor, note=None, notifier=None, base_version=None):
    """Operator override: moves a match to a new status and notes it in the audit trail."""
    from scoring.matches import update_match

    patch = {'status': status}
    if note:
        patch['note'] = note
    if base_version is not None:
        patch['baseVersion'] = base_version
    return update_match(
        conn, match_id, patch, actor,
        notifier=notifier,
        audit_reason=STATUS_REASONS.get(status, 'Status Update'),
    )


def auto_transition_due(conn, now=None, notifier=None):
    """
    Moves every scheduled match whose start time has passed to live.

    The update is guarded on status = 'scheduled', so a match is only ever
    moved (and noted in its audit trail) once, however often this runs and
    whatever else is writing at the same time. Returns the ids it moved.
    """
    cutoff = to_iso(now or now_utc())
    due = conn.execute("""
        SELECT id, sport_name, cricket_data FROM matches
        WHERE status = 'scheduled' AND scheduled_at <= ?
        ORDER BY scheduled_at, id
    """, (cutoff,)).fetchall()

    moved = []
    for row in due:
        cricket_data = row['cricket_data']
        if cricket_data is None and is_cricket_sport(row['sport_name']):
            cricket_data = json.dumps(default_cricket_data())
        with conn:
            cursor = conn.execute("""
                UPDATE matches
                SET status = 'live', cricket_data = ?, version = version + 1, updated_at = ?
                WHERE id = ? AND status = 'scheduled'
            """, (cricket_data, now_iso(), row['id']))
            if cursor.rowcount == 1:
                audit.append_current_scores(conn, row['id'], audit.SYSTEM_ACTOR, AUTO_LIVE_REASON)
                moved.append(row['id'])

    for match_id in moved:
        safe_notify(notifier, match_id, status='live')
    if moved:
        logger.info('Auto-transitioned %d match(es) to live: %s', len(moved), moved)
    return moved


class AutoTransitionScheduler:
    """Runs auto_transition_due at most once per interval, from whoever asks first."""

    def __init__(self, interval_seconds=60, clock=time.monotonic):
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._last_run = None
        self._lock = threading.Lock()

    def due(self):
        if self._last_run is None:
            return True
        return self._clock() - self._last_run >= self.interval_seconds

    def run_if_due(self, conn, notifier=None):
        with self._lock:
            if not self.due():
                return []
            self._last_run = self._clock()
        return auto_transition_due(conn, notifier=notifier)

    def reset(self):
        with self._lock:
            self._last_run = None
