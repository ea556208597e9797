"""Append-only score snapshots kept for every match."""
from utils.dates import now_iso

SYSTEM_ACTOR = 'system'


def entry_from_row(row):
    return {
        'actor': row['actor'],
        'scoreTeam1': row['score_team1'],
        'scoreTeam2': row['score_team2'],
        'reason': row['reason'],
        'timestamp': row['created_at'],
    }


def append_entry(conn, match_id, actor, score_team1, score_team2, reason):
    """Adds a snapshot. The caller owns the transaction."""
    conn.execute("""
        INSERT INTO match_audit (match_id, actor, score_team1, score_team2, reason, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
    """, (match_id, actor or SYSTEM_ACTOR, score_team1, score_team2, reason, now_iso()))


def append_current_scores(conn, match_id, actor, reason):
    """Snapshots whatever scores the match row holds right now."""
    conn.execute("""
        INSERT INTO match_audit (match_id, actor, score_team1, score_team2, reason, created_at)
        SELECT id, ?, score_team1, score_team2, ?, ? FROM matches WHERE id = ?
    """, (actor or SYSTEM_ACTOR, reason, now_iso(), match_id))


def list_entries(conn, match_id):
    rows = conn.execute(
        'SELECT * FROM match_audit WHERE match_id = ? ORDER BY id', (match_id,)
    ).fetchall()
    return [entry_from_row(row) for row in rows]
