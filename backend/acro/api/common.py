from flask import abort, jsonify
from flask_login import current_user

from acro.models import Game
from acro.services.games.errors import GameActionError


def action_error_response(exc: GameActionError):
    return jsonify({'error': exc.message}), exc.status_code


def get_game_or_404(code: str) -> Game:
    """Prefer the lobby/running game holding `code`; fall back to the latest finished one."""
    code = (code or '').upper()
    game = (
        Game.query.filter(Game.code == code, Game.status != Game.STATUS_FINISHED)
        .order_by(Game.id.desc())
        .first()
    )
    if game is None:
        game = Game.query.filter_by(code=code).order_by(Game.id.desc()).first()
    if game is None:
        abort(404, description='Game not found')
    return game


def current_player():
    # Resolve the proxy once so services receive a plain Player
    return current_user._get_current_object()
