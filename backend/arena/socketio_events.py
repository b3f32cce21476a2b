from flask import request
from flask_socketio import join_room, leave_room, emit
from arena import socketio, host
from arena.exceptions import RoundNotFound
from arena.services.rounds.host import WORLD_ROOM, NAMESPACE

MAX_NAME_LENGTH = 16


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _safe_name(raw_name) -> str:
    name = (raw_name or '').strip()
    if not name:
        return 'Player'
    return name[:MAX_NAME_LENGTH]


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    with host.lock:
        player = host.world.remove_player(_get_sid())
    if player:
        socketio.emit('player_left', {'id': player.id}, to=WORLD_ROOM, namespace=NAMESPACE)


def handle_join_world(data):
    name = (data or {}).get('name')
    if not name:
        emit('error', {'message': 'name is required'})
        return
    join_room(WORLD_ROOM)
    with host.lock:
        player = host.world.add_player(_get_sid(), _safe_name(name))
        payload = player.to_dict()
    emit('joined', {'room': WORLD_ROOM, 'player': payload})
    host.ensure_loop()


def handle_leave_world(data=None):
    leave_room(WORLD_ROOM)
    with host.lock:
        host.world.remove_player(_get_sid())
    emit('left', {'room': WORLD_ROOM})


def handle_spectate(data):
    spectating = bool((data or {}).get('spectating', True))
    with host.lock:
        player = host.world.set_spectating(_get_sid(), spectating)
    if not player:
        emit('error', {'message': 'join_world first'})
        return
    emit('spectating', {'spectating': spectating})


def handle_reach_goal(data=None):
    try:
        host.reach_goal(_get_sid())
    except RoundNotFound as exc:
        emit('error', {'message': str(exc)})


def handle_request_status(data=None):
    emit('status', host.status())


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_world': handle_join_world,
        'leave_world': handle_leave_world,
        'spectate': handle_spectate,
        'reach_goal': handle_reach_goal,
        'request_status': handle_request_status,
        'ping': handle_ping,
    }
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
