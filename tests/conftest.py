"""Shared fixtures: an in-memory database with the festival teams, and a Flask client."""

import datetime
import sqlite3

import pytest

from scoring.matches import create_match
from scoring.teams import list_teams, seed_teams
from utils.db import get_db_connection, init_db


def iso_in(hours):
    """An aware ISO timestamp `hours` from now (negative for the past)."""
    moment = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(hours=hours)
    return moment.isoformat()


@pytest.fixture
def conn():
    connection = sqlite3.connect(':memory:')
    connection.row_factory = sqlite3.Row
    connection.execute('PRAGMA foreign_keys = ON')
    init_db(connection)
    seed_teams(connection)
    yield connection
    connection.close()


@pytest.fixture
def teams(conn):
    """Team ids keyed by name (COM2, PROF4, ...)."""
    return {team['name']: team['id'] for team in list_teams(conn)}


@pytest.fixture
def make_match(conn, teams):
    """Creates a match between COM2 and PROF2 unless told otherwise."""
    def _make(**overrides):
        data = {
            'team1': teams['COM2'],
            'team2': teams['PROF2'],
            'sportName': 'Football',
            'venue': 'Ground 1',
            'scheduledAt': iso_in(1),
        }
        data.update(overrides)
        return create_match(conn, data, 'ga-1')
    return _make


@pytest.fixture
def app_db(tmp_path):
    path = tmp_path / 'secons.db'
    connection = get_db_connection(str(path))
    init_db(connection)
    seed_teams(connection)
    connection.close()
    return str(path)


@pytest.fixture
def flask_app(app_db):
    from app import app, auto_live

    app.config.update(TESTING=True, DATABASE=app_db, AUTO_LIVE_INTERVAL_SECONDS=0)
    auto_live.reset()
    return app


@pytest.fixture
def client(flask_app):
    with flask_app.test_client() as test_client:
        yield test_client


@pytest.fixture
def operator(client, flask_app):
    """A client logged in as a GA operator."""
    response = client.post('/api/auth/login', json={
        'passcode': flask_app.config['ADMIN_PASSCODE'],
        'uid': 'ga-1',
    })
    assert response.status_code == 200
    return client


@pytest.fixture
def app_teams(client):
    return {team['name']: team['id'] for team in client.get('/api/teams').get_json()['data']}


@pytest.fixture
def hours_from_now():
    return iso_in
