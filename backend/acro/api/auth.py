from flask import Blueprint, jsonify, request
from flask_login import login_required

from acro import db
from acro.models import Player
from .common import current_player

auth = Blueprint('auth', __name__)


@auth.route('/guest', methods=['POST'])
def create_guest():
    """Create a guest player and hand back the token that identifies it."""
    data = request.get_json(silent=True) or {}
    name = (data.get('display_name') or '').strip()
    if not name:
        return jsonify({'error': 'display_name is required'}), 400
    if len(name) > 64:
        return jsonify({'error': 'display_name must be at most 64 characters'}), 400
    player = Player(display_name=name)
    db.session.add(player)
    db.session.commit()
    return jsonify({'player': player.to_dict(), 'token': player.guest_token}), 201


@auth.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'player': current_player().to_dict()})
