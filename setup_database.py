import sqlite3
import os

from utils.db import DB_PATH, get_db_connection, init_db


def setup_database(db_path=None):
    """Creates the database and its tables based on the schema file."""
    db_path = db_path or os.environ.get('DATABASE', DB_PATH)
    # Ensure the db folder exists
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)

    print(f"Setting up database at: {db_path}")

    conn = None
    try:
        # Connect to the database (this will create the file if it doesn't exist)
        conn = get_db_connection(db_path)
        init_db(conn)
        print("Database tables created successfully.")
    except sqlite3.Error as e:
        print(f"An error occurred: {e}")
        raise
    finally:
        if conn:
            conn.close()
            print("Database connection closed.")


if __name__ == '__main__':
    setup_database()
