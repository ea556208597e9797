"""End-to-end tests through the Flask test client."""

from conftest import iso_in


def create(client, app_teams, **overrides):
    data = {
        'team1': app_teams['COM2'],
        'team2': app_teams['PROF2'],
        'sportName': 'Football',
        'venue': 'Ground 1',
        'scheduledAt': iso_in(1),
    }
    data.update(overrides)
    response = client.post('/api/matches', json=data)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


def post(client, path, payload=None):
    return client.post(path, json=payload if payload is not None else {})


class TestAuth:
    """Passcode login and role checks."""

    def test_wrong_passcode(self, client):
        response = client.post('/api/auth/login', json={'passcode': 'guess'})

        assert response.status_code == 401
        assert response.get_json() == {'success': False, 'error': 'Incorrect passcode.'}

    def test_me(self, operator):
        body = operator.get('/api/auth/me').get_json()

        assert body['data'] == {'uid': 'ga-1', 'role': 'ga', 'domain': 'sports'}

    def test_logout(self, operator):
        post(operator, '/api/auth/logout')

        assert operator.get('/api/auth/me').status_code == 401

    def test_writes_need_login(self, client, app_teams):
        response = client.post('/api/matches', json={'team1': app_teams['COM2']})

        assert response.status_code == 401

    def test_jga_cannot_seed_teams(self, client, flask_app):
        client.post('/api/auth/login', json={'passcode': flask_app.config['JGA_PASSCODE'], 'uid': 'jga-3'})

        assert post(client, '/api/teams/seed').status_code == 403
        assert client.get('/api/auth/me').get_json()['data']['role'] == 'jga'


class TestMatchRoutes:
    """Operator match management and public visibility."""

    def test_create_and_read(self, operator, app_teams):
        match = create(operator, app_teams, roundName='Final')

        body = operator.get(f"/api/matches/{match['id']}").get_json()

        assert body['success'] is True
        assert body['data']['roundName'] == 'Final'
        assert body['data']['auditTrail'][0]['reason'] == 'Match Initialized'
        assert body['data']['display']['scoreline'] == '0 - 0'

    def test_validation_error_envelope(self, operator, app_teams):
        response = operator.post('/api/matches', json={
            'team1': app_teams['COM2'],
            'team2': app_teams['COM2'],
            'sportName': 'Football',
            'venue': 'Ground 1',
            'scheduledAt': iso_in(1),
        })

        assert response.status_code == 400
        assert response.get_json()['success'] is False
        assert 'cannot play against itself' in response.get_json()['error']

    def test_missing_match(self, operator):
        response = operator.get('/api/matches/999')

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Match not found'

    def test_patch_and_audit(self, operator, app_teams):
        match = create(operator, app_teams, status='live')

        response = operator.patch(f"/api/matches/{match['id']}", json={'scoreTeam1': 2, 'note': 'Goal'})
        assert response.status_code == 200

        trail = operator.get(f"/api/matches/{match['id']}/audit").get_json()['data']
        assert [e['reason'] for e in trail] == ['Match Initialized', 'Goal']
        assert trail[-1]['actor'] == 'ga-1'

    def test_stale_patch_is_rejected(self, operator, app_teams):
        match = create(operator, app_teams, status='live')
        operator.patch(f"/api/matches/{match['id']}", json={'scoreTeam1': 1})

        response = operator.patch(f"/api/matches/{match['id']}", json={'scoreTeam1': 3, 'baseVersion': 1})

        assert response.status_code == 409

    def test_status_change_and_notifications(self, operator, app_teams):
        match = create(operator, app_teams)

        response = post(operator, f"/api/matches/{match['id']}/status", {'status': 'live'})
        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'live'

        response = post(operator, f"/api/matches/{match['id']}/status", {'status': 'scheduled'})
        assert response.status_code == 409

        notices = operator.get('/api/notifications').get_json()['data']
        assert notices[0]['body'] == 'Match status changed to live'

    def test_completion_awards_point(self, operator, app_teams):
        match = create(operator, app_teams, status='live')
        operator.patch(f"/api/matches/{match['id']}", json={'scoreTeam2': 2, 'status': 'completed'})

        team = operator.get(f"/api/teams/{app_teams['PROF2']}").get_json()['data']
        assert team['totalPoints'] == 1
        board = operator.get('/api/leaderboard').get_json()['data']
        assert board[0]['name'] == 'PROF2'

    def test_delete(self, operator, app_teams):
        match = create(operator, app_teams)

        assert operator.delete(f"/api/matches/{match['id']}").status_code == 200
        assert operator.get(f"/api/matches/{match['id']}").status_code == 404

    def test_bulk_import(self, operator):
        response = post(operator, '/api/matches/bulk', {'matches': [
            {'team1Name': 'COM4', 'team2Name': 'PROF4', 'sportName': 'Chess'},
            {'team1Name': 'COM4', 'team2Name': 'XYZ1', 'sportName': 'Chess'},
        ]})

        data = response.get_json()['data']
        assert data['matches'] == 1
        assert len(data['errors']) == 1


class TestPublicAccess:
    """Anonymous viewers only see live and completed matches."""

    def test_hidden_statuses(self, operator, app_teams):
        scheduled = create(operator, app_teams)
        post(operator, '/api/auth/logout')

        assert operator.get('/api/matches?status=scheduled').status_code == 403
        assert operator.get(f"/api/matches/{scheduled['id']}").status_code == 403
        assert operator.get('/api/matches').get_json()['data'] == []

    def test_live_match_without_audit_trail(self, operator, app_teams):
        live = create(operator, app_teams, status='live')
        post(operator, '/api/auth/logout')

        data = operator.get(f"/api/matches/{live['id']}").get_json()['data']

        assert data['status'] == 'live'
        assert 'auditTrail' not in data

    def test_due_matches_go_live_on_read(self, operator, app_teams):
        due = create(operator, app_teams, scheduledAt=iso_in(-1))
        post(operator, '/api/auth/logout')

        feed = operator.get('/api/live').get_json()['data']

        assert [m['id'] for m in feed['matches']] == [due['id']]
        assert feed['pollInterval'] == 30

    def test_unknown_route(self, client):
        response = client.get('/api/nothing-here')

        assert response.status_code == 404
        assert response.get_json() == {'success': False, 'error': 'Not found'}


class TestLiveScoring:
    """Ball-by-ball scoring against the session working copy."""

    def start(self, operator, app_teams):
        match = create(operator, app_teams, sportName='Cricket Boys', status='live')
        return f"/api/matches/{match['id']}/scoring", match

    def test_full_flow(self, operator, app_teams):
        base, match = self.start(operator, app_teams)

        view = operator.get(base).get_json()['data']
        assert view['phase'] == 'awaiting_toss'
        assert view['pollInterval'] == 5
        assert view['baseVersion'] == match['version']

        blocked = post(operator, f'{base}/ball', {'type': 'run', 'runs': 4})
        assert blocked.status_code == 409
        assert blocked.get_json()['prompt'] == 'toss'

        post(operator, f'{base}/toss', {'winner': 'COM2', 'decision': 'bat'})
        view = post(operator, f'{base}/batsmen', {'striker': 'X', 'nonStriker': 'Y', 'bowler': 'B'}).get_json()['data']
        assert view['phase'] == 'in_play'

        post(operator, f'{base}/ball', {'type': 'run', 'runs': 4})
        view = post(operator, f'{base}/ball', {'type': 'run', 'runs': 1}).get_json()['data']
        assert view['cricketData']['team1']['runs'] == 5
        assert view['cricketData']['batting']['striker']['name'] == 'Y'

        # nothing is stored until the sync
        stored = operator.get(f"/api/matches/{match['id']}").get_json()['data']
        assert stored['scoreTeam1'] == 0

        synced = post(operator, f'{base}/sync').get_json()['data']
        assert synced['match']['scoreTeam1'] == 5
        assert synced['match']['version'] == match['version'] + 1
        assert synced['match']['auditTrail'][-1]['reason'] == 'Live Scoring Sync'
        assert synced['match']['display']['cricket']['scoreline'] == '5/0 (0.2)'
        assert synced['scoring']['baseVersion'] == match['version'] + 1

    def test_stale_sync_keeps_working_copy(self, operator, app_teams):
        base, match = self.start(operator, app_teams)
        post(operator, f'{base}/toss', {'winner': 'PROF2', 'decision': 'bowl'})
        post(operator, f'{base}/batsmen', {'striker': 'X', 'nonStriker': 'Y'})
        post(operator, f'{base}/ball', {'type': 'run', 'runs': 6})

        operator.patch(f"/api/matches/{match['id']}", json={'venue': 'Ground 3'})
        response = post(operator, f'{base}/sync')

        assert response.status_code == 409
        view = operator.get(base).get_json()['data']
        assert view['cricketData']['team1']['runs'] == 6

        view = post(operator, f'{base}/reset').get_json()['data']
        assert view['cricketData']['team1']['runs'] == 0
        assert view['phase'] == 'awaiting_toss'
        assert view['baseVersion'] == match['version'] + 1

    def test_wicket_prompts_for_batter(self, operator, app_teams):
        base, _ = self.start(operator, app_teams)
        post(operator, f'{base}/toss', {'winner': 'COM2', 'decision': 'bat'})
        post(operator, f'{base}/batsmen', {'striker': 'X', 'nonStriker': 'Y'})

        view = post(operator, f'{base}/ball', {'type': 'wicket'}).get_json()['data']
        assert view['phase'] == 'awaiting_new_batter'
        assert view['promptMessage']

        view = post(operator, f'{base}/new-batter', {'name': 'Z'}).get_json()['data']
        assert view['cricketData']['batting']['striker']['name'] == 'Z'

    def test_reset_after_sync_keeps_wicket_prompt(self, operator, app_teams):
        base, _ = self.start(operator, app_teams)
        post(operator, f'{base}/toss', {'winner': 'COM2', 'decision': 'bat'})
        post(operator, f'{base}/batsmen', {'striker': 'X', 'nonStriker': 'Y'})
        post(operator, f'{base}/ball', {'type': 'wicket'})
        assert post(operator, f'{base}/sync').status_code == 200

        view = post(operator, f'{base}/reset').get_json()['data']
        assert view['prompt'] == 'new_batter'

        response = post(operator, f'{base}/ball', {'type': 'run', 'runs': 4})
        assert response.status_code == 409
        assert response.get_json()['prompt'] == 'new_batter'

    def test_malformed_cricket_data_keeps_feed_up(self, operator, app_teams):
        _, match = self.start(operator, app_teams)

        response = operator.patch(f"/api/matches/{match['id']}", json={'cricketData': {'innings': 2}})
        assert response.status_code == 400

        post(operator, '/api/auth/logout')
        feed = operator.get('/api/live')
        assert feed.status_code == 200
        assert feed.get_json()['data']['matches'][0]['display']['cricket']['innings'] == 1

    def test_only_cricket(self, operator, app_teams):
        match = create(operator, app_teams, status='live')

        assert operator.get(f"/api/matches/{match['id']}/scoring").status_code == 400

    def test_only_while_live(self, operator, app_teams):
        match = create(operator, app_teams, sportName='Cricket Girls')

        assert operator.get(f"/api/matches/{match['id']}/scoring").status_code == 409

    def test_needs_operator(self, client):
        assert client.get('/api/matches/1/scoring').status_code == 401


class TestPoints:
    def test_award(self, operator, app_teams):
        response = post(operator, f"/api/teams/{app_teams['LIFE4']}/points", {
            'points': 5, 'position': 1, 'eventId': 'quiz',
        })

        assert response.status_code == 200
        assert response.get_json()['data']['totalPoints'] == 5

    def test_missing_fields(self, operator, app_teams):
        response = post(operator, f"/api/teams/{app_teams['LIFE4']}/points", {'points': 5})

        assert response.status_code == 400
