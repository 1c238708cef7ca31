from flask import Blueprint, abort, jsonify, request

from acro import db
from acro.models import Game, GameResult, Membership, Player

players = Blueprint('players', __name__)


@players.errorhandler(404)
def handle_not_found(exc):
    return jsonify({'error': getattr(exc, 'description', 'Not found')}), 404


def _get_player_or_404(player_id: int) -> Player:
    player = db.session.get(Player, player_id)
    if player is None:
        abort(404, description='Player not found')
    return player


@players.route('/<int:player_id>/stats', methods=['GET'])
def stats(player_id):
    player = _get_player_or_404(player_id)
    played = player.games_played or 0
    won = player.games_won or 0
    return jsonify({
        'player': {'id': player.id, 'display_name': player.display_name, 'member_since': player.created_at},
        'stats': {
            'games_played': played,
            'games_won': won,
            'win_rate': round(won * 100.0 / played, 1) if played else 0.0,
            'total_score': player.total_score or 0,
        },
    })


@players.route('/<int:player_id>/games', methods=['GET'])
def games(player_id):
    """The player's finished games, newest first."""
    player = _get_player_or_404(player_id)
    limit = min(max(request.args.get('limit', 20, type=int), 1), 50)
    rows = (
        db.session.query(GameResult, Game, Membership)
        .join(Game, Game.id == GameResult.game_id)
        .join(Membership, Membership.game_id == Game.id)
        .filter(Membership.player_id == player.id)
        .order_by(GameResult.created_at.desc(), GameResult.id.desc())
        .limit(limit)
        .all()
    )
    listed = []
    for result, game, membership in rows:
        standings = result.final_scores
        rank = next((s['rank'] for s in standings if s['player_id'] == player.id), None)
        listed.append({
            'code': game.code,
            'score': membership.score,
            'is_winner': result.winner_player_id == player.id,
            'placement': f'#{rank}' if rank else None,
            'player_count': len(standings),
            'finished_at': game.finished_at,
        })
    return jsonify({'games': listed})
