from datetime import timedelta

from scoreline.models import Round, STATUS_CLOSED, STATUS_COMPLETED, utcnow


def _deadline(days=1):
    return (utcnow() + timedelta(days=days)).isoformat() + 'Z'


def _register(flask_app, name, team_name=None):
    player = flask_app.test_client()
    res = player.post('/register', json={'name': name, 'password': 'secret', 'team_name': team_name})
    assert res.status_code == 201
    return player, res.get_json()['user']


def _open_round_with_fixtures(admin_client, *pairs):
    rnd = admin_client.post('/api/rounds/', json={'name': 'Matchday 1', 'deadline': _deadline()}).get_json()
    fixture_ids = []
    for home, away in pairs:
        res = admin_client.post(f"/api/rounds/{rnd['id']}/fixtures",
                                json={'home_team': home, 'away_team': away, 'match_time': _deadline(2)})
        assert res.status_code == 201
        fixture_ids.append(res.get_json()['id'])
    res = admin_client.put(f"/api/rounds/{rnd['id']}/status", json={'status': 'OPEN'})
    assert res.status_code == 200
    return rnd['id'], fixture_ids


def test_index(client):
    assert client.get('/').status_code == 200


def test_register_login_logout(client):
    res = client.post('/register', json={'name': 'alice', 'password': 'pw', 'team_name': 'Alice FC'})
    assert res.status_code == 201
    assert res.get_json()['user']['role'] == 'PLAYER'
    assert client.post('/register', json={'name': 'alice', 'password': 'pw'}).status_code == 400
    assert client.get('/check_login').get_json()['user']['name'] == 'alice'
    assert client.post('/logout').status_code == 200
    assert client.get('/check_login').status_code == 401
    assert client.post('/login', json={'name': 'alice', 'password': 'wrong'}).status_code == 401
    assert client.post('/login', json={'name': 'alice', 'password': 'pw'}).status_code == 200


def test_authentication_and_admin_checks(flask_app, client):
    assert client.get('/api/rounds/').status_code == 401
    player, _ = _register(flask_app, 'bob')
    res = player.post('/api/rounds/', json={'name': 'R', 'deadline': _deadline()})
    assert res.status_code == 403


def test_round_crud(admin_client):
    res = admin_client.post('/api/rounds/', json={'name': 'R1', 'deadline': _deadline()})
    assert res.status_code == 201
    rnd = res.get_json()
    assert rnd['status'] == 'SETUP'
    assert rnd['joker_limit'] == 1

    res = admin_client.put(f"/api/rounds/{rnd['id']}", json={'name': 'Round One', 'joker_limit': 2})
    assert res.get_json()['name'] == 'Round One'
    assert res.get_json()['joker_limit'] == 2

    assert admin_client.get('/api/rounds/?status=SETUP').get_json()[0]['id'] == rnd['id']
    assert admin_client.get('/api/rounds/?status=BOGUS').status_code == 400
    assert admin_client.delete(f"/api/rounds/{rnd['id']}").status_code == 204
    assert admin_client.get(f"/api/rounds/{rnd['id']}").status_code == 404


def test_round_validation_errors(admin_client):
    assert admin_client.post('/api/rounds/', json={'name': 'R1'}).status_code == 400
    assert admin_client.post('/api/rounds/', data='nope', content_type='text/plain').status_code == 400
    rnd = admin_client.post('/api/rounds/', json={'name': 'R1', 'deadline': _deadline()}).get_json()
    res = admin_client.put(f"/api/rounds/{rnd['id']}/status", json={'status': 'CLOSED'})
    assert res.status_code == 409
    assert 'error' in res.get_json()


def test_full_round_flow(flask_app, admin_client):
    round_id, (f1, f2) = _open_round_with_fixtures(admin_client, ('Arsenal', 'Chelsea'), ('Everton', 'Fulham'))
    player, user = _register(flask_app, 'alice', team_name='Alice FC')

    # the active round is shown with no predictions yet
    active = player.get('/api/rounds/active').get_json()
    assert active['id'] == round_id
    assert active['locked'] is False
    assert [f['predicted_home_goals'] for f in active['fixtures']] == [None, None]

    res = player.post('/api/predictions/', json={'predictions': [
        {'fixture_id': f1, 'home_goals': 2, 'away_goals': 1, 'is_joker': True},
        {'fixture_id': f2, 'home_goals': 1, 'away_goals': 0},
    ]})
    assert res.status_code == 200
    assert res.get_json()['count'] == 2

    # two jokers against a limit of one are refused and nothing changes
    res = player.post('/api/predictions/', json={'round_id': round_id, 'predictions': [
        {'fixture_id': f1, 'home_goals': 3, 'away_goals': 3, 'is_joker': True},
        {'fixture_id': f2, 'home_goals': 3, 'away_goals': 3, 'is_joker': True},
    ]})
    assert res.status_code == 400
    active = player.get('/api/rounds/active').get_json()
    assert active['jokers_used'] == 1
    assert {f['id']: f['predicted_home_goals'] for f in active['fixtures']} == {f1: 2, f2: 1}

    status = admin_client.get(f'/api/rounds/{round_id}/prediction-status').get_json()
    assert status == [{'user_id': user['id'], 'name': 'alice', 'avatar_url': None, 'has_predicted': True}]

    assert admin_client.put(f'/api/rounds/{round_id}/status', json={'status': 'CLOSED'}).status_code == 200
    res = player.post('/api/predictions/', json={'round_id': round_id, 'predictions': [
        {'fixture_id': f2, 'home_goals': 1, 'away_goals': 1},
    ]})
    assert res.status_code == 409

    assert admin_client.put(f'/api/fixtures/{f1}/result', json={'home_score': 2, 'away_score': 1}).status_code == 200
    assert admin_client.put(f'/api/fixtures/{f2}/result', json={'home_score': 0, 'away_score': 0}).status_code == 200

    summary = admin_client.post(f'/api/rounds/{round_id}/score').get_json()
    assert summary['status'] == STATUS_COMPLETED
    assert summary['scored_fixtures'] == 2
    assert summary['skipped_fixtures'] == []
    assert summary['scored_predictions'] == 2

    points = player.get(f'/api/predictions/points/{round_id}').get_json()
    assert points['total_points'] == 6

    table = player.get('/api/standings/').get_json()
    assert table == [{
        'user_id': user['id'],
        'name': 'alice',
        'team_name': 'Alice FC',
        'avatar_url': None,
        'rank': 1,
        'points': 6,
        'total_predictions': 2,
        'correct_outcomes': 1,
        'exact_scores': 1,
        'accuracy': 50.0,
        'movement': 0,
    }]
    assert player.get(f'/api/standings/?round_id={round_id}').get_json()[0]['points'] == 6

    # re-scoring a completed round gives the same totals
    assert admin_client.put(f'/api/rounds/{round_id}/status', json={'status': 'CLOSED'}).status_code == 200
    assert admin_client.post(f'/api/rounds/{round_id}/score').status_code == 200
    assert player.get(f'/api/predictions/points/{round_id}').get_json()['total_points'] == 6


def test_result_correction_refreshes_standings(flask_app, admin_client):
    round_id, (f1,) = _open_round_with_fixtures(admin_client, ('Leeds', 'Wolves'))
    player, _ = _register(flask_app, 'alice')
    player.post('/api/predictions/', json={'predictions': [{'fixture_id': f1, 'home_goals': 1, 'away_goals': 0}]})
    admin_client.put(f'/api/rounds/{round_id}/status', json={'status': 'CLOSED'})
    admin_client.put(f'/api/fixtures/{f1}/result', json={'home_score': 1, 'away_score': 0})
    admin_client.post(f'/api/rounds/{round_id}/score')
    assert player.get('/api/standings/').get_json()[0]['points'] == 3

    admin_client.put(f'/api/rounds/{round_id}/status', json={'status': 'CLOSED'})
    admin_client.put(f'/api/fixtures/{f1}/result', json={'home_score': 0, 'away_score': 2})
    admin_client.post(f'/api/rounds/{round_id}/score')
    assert player.get('/api/standings/').get_json()[0]['points'] == 0


def test_score_requires_closed_round(admin_client):
    round_id, _ = _open_round_with_fixtures(admin_client, ('A', 'B'))
    assert admin_client.post(f'/api/rounds/{round_id}/score').status_code == 409
    assert admin_client.post('/api/rounds/999/score').status_code == 404


def test_submit_without_active_round(flask_app):
    player, _ = _register(flask_app, 'alice')
    res = player.post('/api/predictions/', json={'predictions': []})
    assert res.status_code == 409


def test_admin_cannot_predict(admin_client):
    round_id, (f1,) = _open_round_with_fixtures(admin_client, ('A', 'B'))
    res = admin_client.post('/api/predictions/', json={'predictions': [
        {'fixture_id': f1, 'home_goals': 1, 'away_goals': 0},
    ]})
    assert res.status_code == 403


def test_random_predictions_and_results(flask_app, admin_client):
    round_id, fixture_ids = _open_round_with_fixtures(admin_client, ('A', 'B'), ('C', 'D'))
    player, _ = _register(flask_app, 'alice')
    res = player.post('/api/predictions/random')
    assert res.status_code == 200
    assert res.get_json()['count'] == 2
    assert player.post('/api/predictions/random').get_json()['count'] == 0

    res = admin_client.post(f'/api/rounds/{round_id}/fixtures/random-results')
    assert res.get_json()['count'] == 2
    detail = admin_client.get(f'/api/rounds/{round_id}').get_json()
    assert all(f['home_score'] is not None for f in detail['fixtures'])


def test_import_fixtures_endpoint(admin_client):
    rnd = admin_client.post('/api/rounds/', json={'name': 'R1', 'deadline': _deadline()}).get_json()
    records = [
        {'home_team': 'A', 'away_team': 'B', 'match_time': _deadline(2), 'external_id': 11},
        {'home_team': 'C', 'away_team': 'D', 'match_time': _deadline(2)},
    ]
    res = admin_client.post(f"/api/rounds/{rnd['id']}/fixtures/import", json={'fixtures': records})
    assert res.status_code == 201
    assert res.get_json()['count'] == 2

    res = admin_client.post(f"/api/rounds/{rnd['id']}/fixtures/import",
                            json={'fixtures': [{'home_team': 'E', 'away_team': 'E', 'match_time': _deadline(2)}]})
    assert res.status_code == 400
    assert len(admin_client.get(f"/api/rounds/{rnd['id']}").get_json()['fixtures']) == 2


def test_points_only_for_completed_rounds(flask_app, admin_client):
    round_id, _ = _open_round_with_fixtures(admin_client, ('A', 'B'))
    player, _ = _register(flask_app, 'alice')
    assert player.get(f'/api/predictions/points/{round_id}').status_code == 409


def test_standings_filters(flask_app, admin_client):
    _register(flask_app, 'alice')
    player, bob = _register(flask_app, 'bob')
    res = player.get(f"/api/standings/?user_ids={bob['id']}")
    assert [e['name'] for e in res.get_json()] == ['bob']
    assert player.get('/api/standings/?user_ids=').get_json() == []
    assert player.get('/api/standings/?user_ids=a,b').status_code == 400
    assert player.get('/api/standings/?round_id=77').status_code == 404
    assert len(player.get('/api/standings/').get_json()) == 2


def test_league_flow(flask_app):
    owner, owner_user = _register(flask_app, 'owner')
    friend, friend_user = _register(flask_app, 'friend')
    outsider, _ = _register(flask_app, 'outsider')

    res = owner.post('/api/leagues/', json={'name': 'Office Pool'})
    assert res.status_code == 201
    league = res.get_json()
    assert league['member_count'] == 1

    res = friend.post('/api/leagues/join', json={'invite_code': league['invite_code']})
    assert res.status_code == 200
    assert friend.post('/api/leagues/join', json={'invite_code': league['invite_code']}).status_code == 400
    assert [l['name'] for l in friend.get('/api/leagues/mine').get_json()] == ['Office Pool']

    table = owner.get(f"/api/leagues/{league['id']}/standings").get_json()
    assert sorted(e['user_id'] for e in table) == sorted([owner_user['id'], friend_user['id']])
    assert outsider.get(f"/api/leagues/{league['id']}/standings").status_code == 403


def test_score_round_cli(flask_app, session, make_user, make_round, make_fixture):
    from scoreline.models import Prediction
    player = make_user('alice')
    rnd = make_round(status=STATUS_CLOSED)
    fixture = make_fixture(rnd, home_score=1, away_score=0)
    session.add(Prediction(user_id=player.id, fixture_id=fixture.id, round_id=rnd.id,
                           predicted_home_goals=1, predicted_away_goals=0))
    session.commit()
    round_id = rnd.id
    session.close()

    result = flask_app.test_cli_runner().invoke(args=['score-round', str(round_id)])
    assert result.exit_code == 0
    assert 'Round' in result.output
    assert session.get(Round, round_id).status == STATUS_COMPLETED

    result = flask_app.test_cli_runner().invoke(args=['score-round', str(round_id)])
    assert result.exit_code != 0


def test_standings_see_scoring_done_outside_requests(flask_app, session, admin_client):
    from scoreline.services.scoring import score_round
    round_id, (f1,) = _open_round_with_fixtures(admin_client, ('Leeds', 'Wolves'))
    player, _ = _register(flask_app, 'alice')
    player.post('/api/predictions/', json={'predictions': [{'fixture_id': f1, 'home_goals': 1, 'away_goals': 0}]})
    admin_client.put(f'/api/rounds/{round_id}/status', json={'status': 'CLOSED'})
    admin_client.put(f'/api/fixtures/{f1}/result', json={'home_score': 1, 'away_score': 0})
    assert player.get('/api/standings/').get_json()[0]['points'] == 0

    # scoring from a worker or the CLI never touches this app's cache
    score_round(session, round_id)
    assert player.get('/api/standings/').get_json()[0]['points'] == 3
    assert player.get(f'/api/standings/?round_id={round_id}').get_json()[0]['points'] == 3


def test_prediction_body_must_be_an_object(flask_app, admin_client):
    round_id, (f1,) = _open_round_with_fixtures(admin_client, ('A', 'B'))
    player, _ = _register(flask_app, 'alice')
    entry = {'fixture_id': f1, 'home_goals': 1, 'away_goals': 0}
    assert player.post('/api/predictions/', json=[entry]).status_code == 400
    assert player.post('/api/predictions/', json='hello').status_code == 400
    for bad_round in (True, '1', 1.5, 0, -3):
        res = player.post('/api/predictions/', json={'round_id': bad_round, 'predictions': [entry]})
        assert res.status_code == 400
        assert res.get_json()['error'] == 'round_id must be a positive integer.'
    assert player.post('/api/predictions/random', json=[1, 2]).status_code == 400
    assert player.post('/api/predictions/', json={'round_id': round_id, 'predictions': [entry]}).status_code == 200


def test_register_rejects_bad_input(client):
    assert client.post('/register', json={'name': 'alice', 'password': 'pw', 'email': 'a@example.com'}).status_code == 201
    res = client.post('/register', json={'name': 'alice2', 'password': 'pw', 'email': ' a@example.com '})
    assert res.status_code == 400
    assert res.get_json() == {'error': 'Email already registered'}

    for body in ({'name': 123, 'password': 'pw'}, {'name': 'bob', 'password': 5},
                 {'name': 'bob', 'password': 'pw', 'email': 7}, {'name': 'bob', 'password': 'pw', 'team_name': ['x']},
                 ['bob', 'pw'], 'bob'):
        res = client.post('/register', json=body)
        assert res.status_code == 400
        assert 'error' in res.get_json()

    # an empty email is stored as no email, so several accounts may leave it blank
    assert client.post('/register', json={'name': 'carol', 'password': 'pw', 'email': ''}).status_code == 201
    assert client.post('/register', json={'name': 'dave', 'password': 'pw', 'email': '  '}).status_code == 201
    assert client.post('/login', json=['alice', 'pw']).status_code == 401
    assert client.post('/login', json={'name': 7, 'password': 'pw'}).status_code == 401


def test_league_leave_remove_and_delete(flask_app):
    owner, _ = _register(flask_app, 'owner')
    friend, friend_user = _register(flask_app, 'friend')
    other, other_user = _register(flask_app, 'other')
    league = owner.post('/api/leagues/', json={'name': 'Office Pool'}).get_json()
    friend.post('/api/leagues/join', json={'invite_code': league['invite_code']})
    other.post('/api/leagues/join', json={'invite_code': league['invite_code']})

    assert owner.delete(f"/api/leagues/{league['id']}/membership").status_code == 403
    assert friend.delete(f"/api/leagues/{league['id']}/membership").status_code == 200
    assert friend.delete(f"/api/leagues/{league['id']}/membership").status_code == 404
    assert friend.get('/api/leagues/mine').get_json() == []

    assert other.delete(f"/api/leagues/{league['id']}/members/{other_user['id']}").status_code == 403
    res = owner.delete(f"/api/leagues/{league['id']}/members/{other_user['id']}")
    assert res.status_code == 200
    assert res.get_json()['league']['member_count'] == 1
    assert owner.delete(f"/api/leagues/{league['id']}/members/{friend_user['id']}").status_code == 404

    assert other.delete(f"/api/leagues/{league['id']}").status_code == 403
    assert owner.delete(f"/api/leagues/{league['id']}").status_code == 204
    assert owner.get(f"/api/leagues/{league['id']}/standings").status_code == 404


def test_user_stats_and_dashboard_endpoints(flask_app, admin_client):
    assert flask_app.test_client().get('/api/users/me/stats/predictions').status_code == 401
    round_id, (f1,) = _open_round_with_fixtures(admin_client, ('Leeds', 'Wolves'))
    player, user = _register(flask_app, 'alice')
    player.post('/api/predictions/', json={'predictions': [{'fixture_id': f1, 'home_goals': 2, 'away_goals': 0}]})
    admin_client.put(f'/api/rounds/{round_id}/status', json={'status': 'CLOSED'})
    admin_client.put(f'/api/fixtures/{f1}/result', json={'home_score': 1, 'away_score': 0})
    admin_client.post(f'/api/rounds/{round_id}/score')

    stats = player.get('/api/users/me/stats/predictions').get_json()
    assert stats['overall_accuracy'] == 100.0
    assert stats['best_round'] == {'round_id': round_id, 'round_name': 'Matchday 1', 'points': 1}

    highlights = player.get('/api/dashboard/highlights').get_json()
    assert highlights['user_last_round_stats'] == {'round_id': round_id, 'score': 1, 'rank': 1}
    assert highlights['overall_leader']['leaders'][0]['user_id'] == user['id']
