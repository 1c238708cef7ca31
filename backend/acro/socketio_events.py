from flask import current_app, request
from flask_socketio import join_room, leave_room, emit
from typing import Dict

from acro.services.games.notifications import NAMESPACE, room_for

# sid -> game code, so a disconnect can be logged against its game
_sid_to_game: Dict[str, str] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(reason=None):
    game_code = _sid_to_game.pop(_get_sid(), None)
    if game_code:
        current_app.logger.info(f"[socket-disconnect] game={game_code} reason={reason}")


def handle_join_game(data):
    """Subscribe this socket to a game's broadcasts.

    Membership itself is managed over HTTP; a socket only listens.
    """
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = room_for(game_code)
    join_room(room)
    _sid_to_game[_get_sid()] = game_code.upper()
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = room_for(game_code)
    leave_room(room)
    _sid_to_game.pop(_get_sid(), None)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from acro import socketio

    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for ns in namespaces:
        socketio.on_event('connect', handle_connect, namespace=ns)
        socketio.on_event('disconnect', handle_disconnect, namespace=ns)
        socketio.on_event('join_game', handle_join_game, namespace=ns)
        socketio.on_event('leave_game', handle_leave_game, namespace=ns)
        socketio.on_event('ping', handle_ping, namespace=ns)
