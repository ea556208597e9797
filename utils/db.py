import sqlite3
import os

# Get the absolute path to the directory where this file (db.py) is located
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
# Construct the full path to the database file
DB_PATH = os.path.join(BASE_DIR, '..', 'db', 'secons.db')
SCHEMA_PATH = os.path.join(BASE_DIR, 'schema.sql')


def get_db_connection(db_path=None):
    """Establishes a connection to the database."""
    conn = sqlite3.connect(db_path or DB_PATH)
    # This allows you to access columns by name (like a dictionary)
    conn.row_factory = sqlite3.Row
    conn.execute('PRAGMA foreign_keys = ON')
    return conn


def init_db(conn):
    """Creates every table from the schema file. Safe to run twice."""
    with open(SCHEMA_PATH, 'r') as f:
        conn.executescript(f.read())
    conn.commit()
