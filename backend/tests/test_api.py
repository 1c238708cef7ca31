import time

from acro.services.games.scheduler import tick

from helpers import sentence


def _guest(client, name):
    res = client.post('/api/auth/guest', json={'display_name': name})
    assert res.status_code == 201
    body = res.get_json()
    return body['player'], {'Authorization': f"Bearer {body['token']}"}


def _game_with_players(client, count=2, **create_kwargs):
    players = [_guest(client, f'Player{i}') for i in range(count)]
    host_headers = players[0][1]
    res = client.post('/api/games', json=create_kwargs, headers=host_headers)
    assert res.status_code == 201
    code = res.get_json()['game']['code']
    for _, headers in players[1:]:
        assert client.post(f'/api/games/{code}/join', json={}, headers=headers).status_code == 200
    return code, players


def test_guest_identity(client):
    player, headers = _guest(client, 'Alice')
    res = client.get('/api/auth/me', headers=headers)
    assert res.status_code == 200
    assert res.get_json()['player']['display_name'] == 'Alice'


def test_each_request_resolves_its_own_token(client):
    host, host_h = _guest(client, 'Host')
    guest, guest_h = _guest(client, 'Guest')
    assert client.get('/api/auth/me', headers=host_h).get_json()['player']['id'] == host['id']
    assert client.get('/api/auth/me', headers=guest_h).get_json()['player']['id'] == guest['id']
    assert client.get('/api/auth/me').status_code == 401


def test_actions_require_identity(client):
    assert client.post('/api/games', json={}).status_code == 401
    assert client.get('/api/auth/me', headers={'Authorization': 'Bearer nope'}).status_code == 401


def test_create_join_and_show(client):
    code, players = _game_with_players(client, count=3)
    res = client.get(f'/api/games/{code}')
    assert res.status_code == 200
    game = res.get_json()['game']
    assert game['status'] == 'lobby'
    assert len(game['players']) == 3
    assert [p['is_host'] for p in game['players']] == [True, False, False]


def test_unknown_game_is_404(client):
    res = client.get('/api/games/ZZZZZZ')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Game not found'}


def test_invalid_settings_are_rejected(client):
    _, headers = _guest(client, 'Host')
    res = client.post('/api/games', json={'settings': {'rounds': 99}}, headers=headers)
    assert res.status_code == 422
    assert 'rounds' in res.get_json()['error']


def test_public_lobbies_are_listed(client):
    _game_with_players(client, count=1, is_public=True)
    _game_with_players(client, count=1, is_public=False)
    listed = client.get('/api/games').get_json()['games']
    assert len(listed) == 1
    assert listed[0]['player_count'] == 1


def test_password_protected_join(client):
    code, _ = _game_with_players(client, count=1, password='hunter2')
    _, headers = _guest(client, 'Guest')
    res = client.post(f'/api/games/{code}/join', json={'password': 'nope'}, headers=headers)
    assert res.status_code == 422
    assert res.get_json()['error'] == 'Invalid game password'
    res = client.post(f'/api/games/{code}/join', json={'password': 'hunter2'}, headers=headers)
    assert res.status_code == 200


def test_full_game_join_is_rejected(client):
    code, _ = _game_with_players(client, count=2, settings={'max_players': 2})
    _, headers = _guest(client, 'Late')
    res = client.post(f'/api/games/{code}/join', json={}, headers=headers)
    assert res.status_code == 422
    assert res.get_json()['error'] == 'Game is full'


def test_only_host_can_start(client):
    code, players = _game_with_players(client)
    res = client.post(f'/api/games/{code}/start', headers=players[1][1])
    assert res.status_code == 403


def test_full_round_over_http(client):
    code, players = _game_with_players(client, count=3)
    (host, host_h), (p1, p1_h), (p2, p2_h) = players

    res = client.post(f'/api/games/{code}/start', headers=host_h)
    assert res.status_code == 200
    round_ = res.get_json()['round']
    assert round_['status'] == 'answering'
    assert round_['round_number'] == 1
    round_id = round_['id']
    acronym = round_['acronym']

    bad = client.post(f'/api/rounds/{round_id}/answer', json={'text': 'nope'}, headers=host_h)
    assert bad.status_code == 422

    for tag, headers in (('h', host_h), ('a', p1_h)):
        res = client.post(f'/api/rounds/{round_id}/answer', json={'text': sentence(acronym, tag)}, headers=headers)
        assert res.status_code == 200
    # Resubmitting replaces the earlier answer
    res = client.post(f'/api/rounds/{round_id}/answer', json={'text': sentence(acronym, 'b')}, headers=p1_h)
    assert res.get_json()['answer']['text'] == sentence(acronym, 'b')

    assert client.post(f'/api/rounds/{round_id}/voting', headers=p2_h).status_code == 403
    res = client.post(f'/api/rounds/{round_id}/voting', headers=host_h)
    assert res.status_code == 200
    answers = res.get_json()['answers']
    assert len(answers) == 2
    assert all('votes_count' not in a for a in answers)

    again = client.post(f'/api/rounds/{round_id}/voting', headers=host_h)
    assert again.status_code == 422
    assert again.get_json()['error'] == 'Round is not in answering phase'

    by_author = {a['player_id']: a['id'] for a in answers}
    own = client.post(f'/api/rounds/{round_id}/vote', json={'answer_id': by_author[p1['id']]}, headers=p1_h)
    assert own.status_code == 422
    assert own.get_json()['error'] == 'Cannot vote for your own answer'

    assert client.post(f'/api/rounds/{round_id}/vote', json={'answer_id': by_author[p1['id']]}, headers=p2_h).status_code == 200
    dup = client.post(f'/api/rounds/{round_id}/vote', json={'answer_id': by_author[host['id']]}, headers=p2_h)
    assert dup.status_code == 422
    assert dup.get_json()['error'] == 'You have already voted this round'

    state = client.get(f'/api/games/{code}/state', headers=p2_h).get_json()
    assert state['phase'] == 'voting'
    assert state['my_vote'] == {'answer_id': by_author[p1['id']]}

    res = client.post(f'/api/rounds/{round_id}/complete', headers=host_h)
    assert res.status_code == 200
    results = res.get_json()['round_results']
    assert results[0]['player_id'] == p1['id']
    assert results[0]['points'] == 1

    state = client.get(f'/api/games/{code}/state', headers=host_h).get_json()
    assert state['phase'] == 'results'
    assert state['scores'][0] == {'player_id': p1['id'], 'player_name': 'Player1', 'score': 1}
    assert client.get(f'/api/games/{code}/rounds/current').status_code == 404


def test_results_available_once_finished(app, client):
    code, players = _game_with_players(client, count=2)
    host_h = players[0][1]
    client.post(f'/api/games/{code}/start', headers=host_h)
    assert client.get(f'/api/games/{code}/results').status_code == 404

    # Nobody answers, so the round is abandoned once both grace periods run out
    client.post(f'/api/games/{code}/leave', headers=players[1][1])
    now = time.time()
    with app.app_context():
        for offset in (61, 100, 140, 200):
            tick(now=now + offset)

    res = client.get(f'/api/games/{code}/results')
    assert res.status_code == 200
    result = res.get_json()['result']
    assert result['winner_player_id'] == players[0][0]['id']
    assert client.get(f'/api/games/{code}').get_json()['game']['status'] == 'finished'


def test_delectus_status(client):
    _game_with_players(client, count=1)
    body = client.get('/api/delectus/status').get_json()
    assert body['waiting_games'] == 1
    assert body['active_games'] == 0
