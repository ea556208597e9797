from setup_database import setup_database
from utils.db import get_db_connection


def test_creates_tables(tmp_path):
    db_path = tmp_path / 'nested' / 'secons.db'

    setup_database(str(db_path))

    conn = get_db_connection(str(db_path))
    tables = {row['name'] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    conn.close()
    assert {'teams', 'team_points', 'matches', 'match_audit', 'notifications'} <= tables


def test_safe_to_run_twice(tmp_path):
    db_path = str(tmp_path / 'secons.db')

    setup_database(db_path)
    setup_database(db_path)
