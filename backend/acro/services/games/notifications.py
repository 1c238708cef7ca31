"""Best-effort Socket.IO broadcasts to a game's room.

State is committed before anything here runs, so an emit failure is logged
and never propagated.
"""
from flask import current_app

from acro import socketio

NAMESPACE = '/ws'
SYSTEM_NICKNAME = 'Delectus'


def room_for(game_code: str) -> str:
    return f"game:{game_code.upper()}"


def broadcast(game, event: str, payload: dict) -> bool:
    data = {'game_code': game.code}
    data.update(payload)
    try:
        socketio.emit(event, data, to=room_for(game.code), namespace=NAMESPACE)
        return True
    except Exception as exc:
        current_app.logger.error(f"[broadcast-failed] event={event} game={game.code} error={exc}")
        return False


def system_message(game, message: str) -> bool:
    return broadcast(game, 'chat.message', {
        'nickname': SYSTEM_NICKNAME,
        'message': message,
        'system': True,
    })
