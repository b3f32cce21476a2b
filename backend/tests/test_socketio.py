from arena import host, socketio


def _connected(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    # Flush any initial events
    sio_client.get_received('/ws')
    return sio_client


def _named(received, name):
    return [pkt['args'][0] for pkt in received if pkt['name'] == name]


def test_socket_connect_and_join(sio_client):
    _connected(sio_client)

    sio_client.emit('join_world', {'name': 'Alice'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    joined = _named(received, 'joined')
    assert joined and joined[0]['room'] == 'world'
    assert joined[0]['player']['name'] == 'Alice'
    assert [p.name for p in host.world.players.values()] == ['Alice']


def test_join_requires_name(sio_client):
    _connected(sio_client)
    sio_client.emit('join_world', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _named(received, 'error')[0]['message'] == 'name is required'
    assert host.world.players == {}


def test_long_names_are_trimmed(sio_client):
    _connected(sio_client)
    sio_client.emit('join_world', {'name': '  ' + 'x' * 40 + ' '}, namespace='/ws')
    player = _named(sio_client.get_received('/ws'), 'joined')[0]['player']
    assert player['name'] == 'x' * 16


def test_spectate(sio_client):
    _connected(sio_client)
    sio_client.emit('spectate', {'spectating': True}, namespace='/ws')
    assert _named(sio_client.get_received('/ws'), 'error')

    sio_client.emit('join_world', {'name': 'Alice'}, namespace='/ws')
    sio_client.emit('spectate', {'spectating': True}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _named(received, 'spectating') == [{'spectating': True}]
    assert host.world.active_player_count() == 0


def test_round_events_reach_world_room(sio_client, client):
    _connected(sio_client)
    sio_client.emit('join_world', {'name': 'Alice'}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    res = client.post('/api/rounds/create', json={'type': 'reach', 'time_limit': 30000})
    assert res.status_code == 201
    received = sio_client.get_received('/ws')
    assert _named(received, 'players_teleported')
    assert 'GET READY!' in [a['text'] for a in _named(received, 'announcement')]

    client.post('/api/rounds/end', json={'result': 'ended'})
    received = sio_client.get_received('/ws')
    ended = _named(received, 'minigame_ended')
    assert len(ended) == 1
    assert ended[0]['result'] == 'ended'
    assert 'Game Over!' in [a['text'] for a in _named(received, 'announcement')]


def test_request_status(sio_client):
    _connected(sio_client)
    sio_client.emit('request_status', namespace='/ws')
    status = _named(sio_client.get_received('/ws'), 'status')[0]
    assert status['is_active'] is False


def test_disconnect_removes_player(flask_app, sio_client):
    _connected(sio_client)
    sio_client.emit('join_world', {'name': 'Alice'}, namespace='/ws')

    other = socketio.test_client(flask_app, namespace='/ws')
    other.emit('join_world', {'name': 'Bob'}, namespace='/ws')
    assert len(host.world.players) == 2
    sio_client.get_received('/ws')  # flush

    other.disconnect(namespace='/ws')

    assert [p.name for p in host.world.players.values()] == ['Alice']
    assert _named(sio_client.get_received('/ws'), 'player_left')


def test_reach_goal_wins_round(flask_app, sio_client, client):
    _connected(sio_client)
    sio_client.emit('reach_goal', namespace='/ws')
    assert _named(sio_client.get_received('/ws'), 'error')

    sio_client.emit('join_world', {'name': 'Alice'}, namespace='/ws')
    other = socketio.test_client(flask_app, namespace='/ws')
    other.emit('join_world', {'name': 'Bob'}, namespace='/ws')
    client.post('/api/rounds/create', json={'type': 'reach', 'time_limit': 30000})
    sio_client.get_received('/ws')  # flush

    sio_client.emit('reach_goal', namespace='/ws')
    host.tick(50)

    alice_id = next(pid for pid, p in host.world.players.items() if p.name == 'Alice')
    ended = _named(sio_client.get_received('/ws'), 'minigame_ended')
    assert len(ended) == 1
    assert ended[0]['result'] == 'win'
    assert ended[0]['winners'] == [alice_id]
    other.disconnect(namespace='/ws')
