from flask_socketio import join_room, leave_room, emit
from flask_login import current_user

from bingo.services.games import lease
from bingo.services.games.notify import game_room


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def _game_id(data):
    try:
        return int((data or {}).get('game_id'))
    except (TypeError, ValueError):
        return None


def handle_join_game(data):
    # Hosts, displays and players all watch the same room; it carries no state
    game_id = _game_id(data)
    if game_id is None:
        emit('error', {'message': 'game_id is required'})
        return
    room = game_room(game_id)
    join_room(room)
    emit('joined', {'room': room, 'game_id': game_id})


def handle_leave_game(data):
    game_id = _game_id(data)
    if game_id is None:
        emit('error', {'message': 'game_id is required'})
        return
    room = game_room(game_id)
    leave_room(room)
    emit('left', {'room': room})


def handle_heartbeat(data):
    """Controller renews its lease over the socket instead of HTTP."""
    game_id = _game_id(data)
    if game_id is None:
        emit('error', {'message': 'game_id is required'})
        return
    result = lease.renew(game_id, current_user)
    if result.success:
        emit('heartbeat_ack', result.to_dict())
    else:
        # Surfaced to the host UI as a "take control" prompt; the client must not retry silently
        emit('lease_lost', result.to_dict())


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from bingo import socketio

    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('heartbeat', handle_heartbeat, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
