from bingo import db
from bingo.models import GameState
from conftest import login


def _post(client, url, payload=None):
    res = client.post(url, json=payload or {})
    return res.status_code, res.get_json()


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_login_and_me(client, users):
    res = client.post('/login', json={'username': 'alice', 'password': 'wrong'})
    assert res.status_code == 401
    assert res.get_json()['success'] is False

    user = login(client, 'alice')
    assert user['role'] == 'host'
    me = client.get('/me').get_json()
    assert me['user']['username'] == 'alice'

    assert client.post('/logout').status_code == 200
    assert client.get('/me').status_code == 401


def test_anonymous_and_viewer_are_unauthorized(client, users, game_id):
    status, body = _post(client, f'/api/games/{game_id}/start')
    assert status == 403
    assert body == {'success': False, 'error': body['error'], 'code': 'Unauthorized'}

    login(client, 'viewer')
    status, body = _post(client, f'/api/games/{game_id}/start')
    assert status == 403
    assert body['code'] == 'Unauthorized'


def test_snapshot_is_public(client, game_id):
    res = client.get(f'/api/games/{game_id}/state')
    assert res.status_code == 200
    data = res.get_json()['data']
    assert data['id'] == game_id
    assert data['state']['status'] == 'not_started'
    assert data['current_stage'] == 'Line'
    assert data['winners'] == []
    assert data['snowball_pot'] is None


def test_unknown_game_is_404(client, users):
    login(client, 'alice')
    status, body = _post(client, '/api/games/9999/call')
    assert status == 404
    assert body['code'] == 'GameNotFound'
    assert client.get('/api/games/9999/state').status_code == 404


def test_full_round_over_http(client, users, game_id):
    login(client, 'alice')
    status, body = _post(client, f'/api/games/{game_id}/start')
    assert status == 200
    assert body['data']['status'] == 'in_progress'

    called = []
    for _ in range(5):
        status, body = _post(client, f'/api/games/{game_id}/call')
        assert status == 200
        called.append(body['data']['next_number'])

    assert _post(client, f'/api/games/{game_id}/pause')[0] == 200
    status, body = _post(client, f'/api/games/{game_id}/validate', {'claimed_numbers': called})
    assert status == 200
    assert body['data'] == {'valid': True}

    uncalled = next(n for n in range(1, 91) if n not in called)
    status, body = _post(client, f'/api/games/{game_id}/validate', {'claimed_numbers': called + [uncalled]})
    assert body['data'] == {'valid': False, 'invalid_numbers': [uncalled]}

    status, body = _post(client, f'/api/games/{game_id}/winners', {
        'stage': 'Line',
        'winner_name': 'Dave - Table 6',
        'is_snowball_jackpot': True,
    })
    assert status == 200
    assert body['data']['call_count_at_win'] == 5
    assert body['data']['is_jackpot'] is False
    winner_id = body['data']['id']

    status, body = _post(client, f'/api/games/{game_id}/winners/{winner_id}/prize-given', {'prize_given': True})
    assert body['data']['prize_given'] is True

    status, body = _post(client, f'/api/games/{game_id}/advance')
    assert body['data'] == {'current_stage_index': 1, 'status': 'in_progress'}

    snapshot = client.get(f'/api/games/{game_id}/state').get_json()['data']
    assert snapshot['current_stage'] == 'Two Lines'
    assert snapshot['state']['called_numbers'] == called
    assert snapshot['state']['paused_for_validation'] is False
    assert [w['winner_name'] for w in snapshot['winners']] == ['Dave - Table 6']

    status, body = _post(client, f'/api/games/{game_id}/end')
    assert status == 200
    db.session.expire_all()
    assert GameState.query.filter_by(game_id=game_id).first().status == 'completed'


def test_second_host_gets_conflict(flask_app, client, users, game_id):
    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')

    other = flask_app.test_client()
    login(other, 'bob')
    status, body = _post(other, f'/api/games/{game_id}/call')
    assert status == 409
    assert body['code'] == 'NotController'

    status, body = _post(other, f'/api/games/{game_id}/take-control')
    assert status == 409
    assert body['code'] == 'LeaseHeldByOther'

    lease_info = other.get(f'/api/games/{game_id}/lease').get_json()['data']
    assert lease_info['controlling_host_id'] == users['alice'].id
    assert lease_info['is_controller'] is False

    assert _post(client, f'/api/games/{game_id}/release')[0] == 200
    status, body = _post(other, f'/api/games/{game_id}/take-control')
    assert status == 200
    assert body['data']['is_controller'] is True


def test_heartbeat_over_http(client, users, game_id):
    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')
    status, body = _post(client, f'/api/games/{game_id}/heartbeat')
    assert status == 200
    assert body['data']['is_controller'] is True
    assert body['data']['heartbeat_interval_sec'] == 10


def test_bad_requests(client, users, game_id):
    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')
    _post(client, f'/api/games/{game_id}/call')

    assert _post(client, f'/api/games/{game_id}/break', {'on_break': 'yes'})[0] == 400
    assert _post(client, f'/api/games/{game_id}/validate', {'claimed_numbers': '1,2'})[0] == 400
    assert _post(client, f'/api/games/{game_id}/validate', {'claimed_numbers': ['x']})[0] == 400
    assert _post(client, f'/api/games/{game_id}/announce', {})[0] == 400
    assert _post(client, f'/api/games/{game_id}/winners', {'stage': 'Line'})[0] == 400
    status, body = _post(client, f'/api/games/{game_id}/winners', {
        'stage': 'Line', 'winner_name': 'Dave', 'call_count_at_win': 'soon',
    })
    assert status == 400
    assert body['code'] == 'BadRequest'
    assert _post(client, f'/api/games/{game_id}/skip', {'current_index': 'first'})[0] == 400


def test_operation_errors_come_back_structured(client, users, game_id):
    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')
    status, body = _post(client, f'/api/games/{game_id}/void')
    assert status == 400
    assert body['success'] is False
    assert body['code'] == 'NothingToVoid'

    _post(client, f'/api/games/{game_id}/break', {'on_break': True})
    status, body = _post(client, f'/api/games/{game_id}/call')
    assert body['code'] == 'GameNotCallable'

    status, body = _post(client, f'/api/games/{game_id}/skip', {'current_index': 2, 'total_stages': 3})
    assert status == 409
    assert body['code'] == 'StaleStageIndex'


def test_void_and_delete_winner(client, users, game_id):
    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')
    _post(client, f'/api/games/{game_id}/call')
    _post(client, f'/api/games/{game_id}/call')
    winner_id = _post(client, f'/api/games/{game_id}/winners', {
        'stage': 'Line', 'winner_name': 'Sue',
    })[1]['data']['id']

    status, body = _post(client, f'/api/games/{game_id}/void')
    assert body['code'] == 'WinnerExistsAtCall'

    res = client.delete(f'/api/games/{game_id}/winners/{winner_id}')
    assert res.status_code == 200
    status, body = _post(client, f'/api/games/{game_id}/void')
    assert status == 200
    assert 'voided_number' in body['data']


def test_reset_requires_admin(flask_app, client, users, game_id):
    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')
    _post(client, f'/api/games/{game_id}/end')
    assert _post(client, f'/api/games/{game_id}/reset')[0] == 403

    admin = flask_app.test_client()
    login(admin, 'admin')
    status, body = _post(admin, f'/api/games/{game_id}/reset')
    assert status == 200
    assert body['data']['status'] == 'not_started'


def test_pot_endpoints(flask_app, client, users, pot, make_game):
    game_id = make_game('snowball', pot=pot)
    res = client.get(f'/api/pots/{pot.id}')
    assert res.status_code == 200
    assert res.get_json()['data']['current_max_calls'] == 48
    assert res.get_json()['data']['in_use'] is False
    assert client.get('/api/pots/9999').status_code == 404

    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')
    assert client.get(f'/api/pots/{pot.id}/in-use').get_json()['data'] == {'in_use': True}
    _post(client, f'/api/games/{game_id}/end')

    history = client.get(f'/api/pots/{pot.id}/history').get_json()['data']
    assert [h['change_type'] for h in history] == ['rollover']
    assert history[0]['new_val_max'] == 50

    assert _post(client, f'/api/pots/{pot.id}/reset')[0] == 403
    admin = flask_app.test_client()
    login(admin, 'admin')
    status, body = _post(admin, f'/api/pots/{pot.id}/reset')
    assert status == 200
    assert body['data']['current_max_calls'] == 48

    res = admin.delete(f'/api/pots/{pot.id}')
    assert res.status_code == 200
    assert client.get(f'/api/pots/{pot.id}').status_code == 404


def test_call_debounce(flask_app, client, users, game_id):
    flask_app.config['CONTROLLER_DEBOUNCE_MS'] = 60_000
    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')
    first = client.post(f'/api/games/{game_id}/call')
    second = client.post(f'/api/games/{game_id}/call')
    assert first.status_code == 200
    assert second.status_code == 202
    db.session.expire_all()
    assert GameState.query.filter_by(game_id=game_id).first().numbers_called_count == 1


def test_malformed_winner_payloads_are_bad_requests(client, users, game_id):
    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')
    for _ in range(4):
        _post(client, f'/api/games/{game_id}/call')

    url = f'/api/games/{game_id}/winners'
    for payload in (
        {'stage': 'Line', 'winner_name': 7},
        {'stage': ['Line'], 'winner_name': 'Dave'},
        {'stage': 'Line', 'winner_name': 'Dave', 'prize_given': 'false'},
        {'stage': 'Line', 'winner_name': 'Dave', 'call_count_at_win': 3.7},
        {'stage': 'Line', 'winner_name': 'Dave', 'call_count_at_win': '3'},
        {'stage': 'Line', 'winner_name': 'Dave', 'prize_description': 10},
    ):
        status, body = _post(client, url, payload)
        assert status == 400, payload
        assert body['code'] == 'BadRequest'

    status, body = _post(client, f'/api/games/{game_id}/announce', {'stage': ['Line']})
    assert status == 400
    assert body['code'] == 'BadRequest'

    snapshot = client.get(f'/api/games/{game_id}/state').get_json()['data']
    assert snapshot['winners'] == []


def test_whole_number_call_count_is_kept(client, users, game_id):
    login(client, 'alice')
    _post(client, f'/api/games/{game_id}/start')
    for _ in range(4):
        _post(client, f'/api/games/{game_id}/call')
    status, body = _post(client, f'/api/games/{game_id}/winners', {
        'stage': 'Line', 'winner_name': 'Dave', 'call_count_at_win': 3, 'prize_given': False,
    })
    assert status == 200
    assert body['data']['call_count_at_win'] == 3
    assert body['data']['prize_given'] is False


def test_two_clients_keep_their_own_logins(flask_app, client, users):
    login(client, 'alice')
    other = flask_app.test_client()
    login(other, 'bob')
    assert client.get('/me').get_json()['user']['username'] == 'alice'
    assert other.get('/me').get_json()['user']['username'] == 'bob'
    assert client.get('/me').get_json()['user']['username'] == 'alice'
