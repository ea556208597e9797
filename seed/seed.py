import sqlite3
import os
import sys

# Go up one level from /seed to the project root so the project packages import
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..'))

from scoring.teams import seed_teams  # noqa: E402
from utils.db import DB_PATH, get_db_connection, init_db  # noqa: E402


def seed_data(db_path=None):
    """Creates the 18 festival teams (3 semesters x 6 groups)."""
    db_path = db_path or os.environ.get('DATABASE', DB_PATH)
    print(f"Connecting to database at: {db_path}")
    conn = None
    try:
        conn = get_db_connection(db_path)
        init_db(conn)

        print("Seeding teams...")
        teams = seed_teams(conn)
        for team in teams:
            print(f"  {team['name']:<6} {team['group']} (semester {team['semester']})")
        print(f"{len(teams)} teams seeded.")
        print("\nSeeding complete!")
        return teams

    except sqlite3.Error as e:
        print(f"An error occurred: {e}")
        raise
    finally:
        if conn:
            conn.close()
            print("Database connection closed.")


if __name__ == '__main__':
    seed_data()
