from flask import Blueprint, jsonify, request
from flask_login import login_required

from acro.models import Answer, Game, GameResult, Round, Vote
from acro.services.games import lifecycle, lobby
from acro.services.games.errors import GameActionError
from acro.services.games.locks import game_lock
from acro.services.games.scoring import leaderboard
from .common import action_error_response, current_player, get_game_or_404


games = Blueprint('games', __name__)


@games.errorhandler(GameActionError)
def handle_action_error(exc):
    return action_error_response(exc)


@games.errorhandler(404)
def handle_not_found(exc):
    return jsonify({'error': getattr(exc, 'description', 'Not found')}), 404


@games.route('', methods=['GET'])
def list_public_games():
    rows = (
        Game.query.filter(Game.is_public.is_(True), Game.status != Game.STATUS_FINISHED)
        .order_by(Game.created_at.desc())
        .limit(50)
        .all()
    )
    return jsonify({'games': [
        {
            'code': g.code,
            'host_nickname': g.host.display_name if g.host else None,
            'player_count': g.active_member_count(),
            'max_players': g.settings.get('max_players'),
            'rounds': g.total_rounds,
            'has_password': g.password_hash is not None,
            'status': g.status,
            'current_round': g.current_round,
            'total_rounds': g.total_rounds,
        }
        for g in rows
    ]})


@games.route('', methods=['POST'])
@login_required
def create_game():
    data = request.get_json(silent=True) or {}
    game = lobby.create_game(
        current_player(),
        settings=data.get('settings'),
        is_public=bool(data.get('is_public', False)),
        password=data.get('password') or None,
    )
    return jsonify({'game': game.to_dict()}), 201


@games.route('/<string:code>', methods=['GET'])
def show_game(code):
    return jsonify({'game': get_game_or_404(code).to_dict()})


@games.route('/<string:code>/join', methods=['POST'])
@login_required
def join(code):
    data = request.get_json(silent=True) or {}
    game = get_game_or_404(code)
    lobby.join_game(game, current_player(), password=data.get('password'))
    return jsonify({'game': get_game_or_404(code).to_dict()})


@games.route('/<string:code>/leave', methods=['POST'])
@login_required
def leave(code):
    game = get_game_or_404(code)
    lobby.leave_game(game, current_player())
    return jsonify({'success': True})


@games.route('/<string:code>/start', methods=['POST'])
@login_required
def start(code):
    game = get_game_or_404(code)
    with game_lock(game.id) as locked:
        round_ = lifecycle.start_game(locked, current_player())
        return jsonify({'game': locked.to_dict(), 'round': round_.to_dict()})


@games.route('/<string:code>/state', methods=['GET'])
@login_required
def state(code):
    """Everything a client needs to render the game after a reconnect."""
    game = get_game_or_404(code)
    player = current_player()
    round_ = game.active_round
    if round_ is None and game.current_round:
        round_ = game.rounds.filter_by(round_number=game.current_round).first()

    payload = {
        'game': game.to_dict(),
        'phase': _derive_phase(game, round_),
        'scores': leaderboard(game),
        'round': round_.to_dict() if round_ else None,
    }
    if round_ is not None:
        mine = round_.answer_by(player.id)
        payload['my_answer'] = {'id': mine.id, 'text': mine.text} if mine else None
        payload['answers_count'] = round_.answers.count()
        if round_.status != Round.STATUS_ANSWERING:
            completed = round_.status == Round.STATUS_COMPLETED
            payload['answers'] = [a.to_dict(include_votes=completed) for a in round_.answers.order_by(Answer.id).all()]
            my_vote = Vote.query.filter_by(round_id=round_.id, voter_id=player.id).first()
            payload['my_vote'] = {'answer_id': my_vote.answer_id} if my_vote else None
    return jsonify(payload)


def _derive_phase(game, round_):
    if game.status != Game.STATUS_PLAYING:
        return game.status
    if round_ is None:
        return 'starting'
    return {
        Round.STATUS_ANSWERING: 'playing',
        Round.STATUS_VOTING: 'voting',
        Round.STATUS_COMPLETED: 'results',
    }.get(round_.status, 'playing')


@games.route('/<string:code>/rounds/current', methods=['GET'])
def current_round(code):
    game = get_game_or_404(code)
    round_ = game.active_round
    if round_ is None:
        return jsonify({'error': 'No active round'}), 404
    payload = {'round': round_.to_dict()}
    if round_.status == Round.STATUS_VOTING:
        payload['answers'] = [a.to_dict() for a in round_.answers.order_by(Answer.id).all()]
    return jsonify(payload)


@games.route('/<string:code>/co-hosts/<int:player_id>', methods=['POST'])
@login_required
def toggle_co_host(code, player_id):
    game = get_game_or_404(code)
    membership = lobby.toggle_co_host(game, current_player(), player_id)
    return jsonify({'player_id': player_id, 'is_co_host': membership.is_co_host})


@games.route('/<string:code>/visibility', methods=['POST'])
@login_required
def visibility(code):
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get('is_public'), bool):
        return jsonify({'error': 'is_public must be a boolean'}), 400
    game = lobby.set_visibility(get_game_or_404(code), current_player(), data['is_public'])
    return jsonify({'is_public': game.is_public})


@games.route('/<string:code>/rematch', methods=['POST'])
@login_required
def rematch(code):
    new_game = lobby.rematch(get_game_or_404(code), current_player())
    return jsonify({'game': new_game.to_dict()}), 201


@games.route('/<string:code>/results', methods=['GET'])
def results(code):
    game = get_game_or_404(code)
    result = GameResult.query.filter_by(game_id=game.id).first()
    if result is None:
        return jsonify({'error': 'Game has not finished'}), 404
    return jsonify({'result': result.to_dict()})
