from flask import Blueprint, abort, jsonify, request
from flask_login import login_required

from acro import db
from acro.models import Answer, Round
from acro.services.games import lifecycle, rounds as round_actions
from acro.services.games.errors import GameActionError
from acro.services.games.locks import game_lock
from .common import action_error_response, current_player


rounds = Blueprint('rounds', __name__)


@rounds.errorhandler(GameActionError)
def handle_action_error(exc):
    return action_error_response(exc)


@rounds.errorhandler(404)
def handle_not_found(exc):
    return jsonify({'error': getattr(exc, 'description', 'Not found')}), 404


def _get_round_or_404(round_id: int) -> Round:
    round_ = db.session.get(Round, round_id)
    if round_ is None:
        abort(404, description='Round not found')
    return round_


@rounds.route('/<int:round_id>/answer', methods=['POST'])
@login_required
def submit_answer(round_id):
    data = request.get_json(silent=True) or {}
    text = data.get('text')
    if not isinstance(text, str):
        return jsonify({'error': 'text is required'}), 400
    answer = round_actions.submit_answer(_get_round_or_404(round_id), current_player(), text)
    return jsonify({'answer': {'id': answer.id, 'text': answer.text}})


@rounds.route('/<int:round_id>/vote', methods=['POST'])
@login_required
def submit_vote(round_id):
    data = request.get_json(silent=True) or {}
    try:
        answer_id = int(data.get('answer_id'))
    except (TypeError, ValueError):
        return jsonify({'error': 'answer_id is required'}), 400
    vote = round_actions.submit_vote(_get_round_or_404(round_id), current_player(), answer_id)
    return jsonify({'vote': {'id': vote.id, 'answer_id': vote.answer_id}})


@rounds.route('/<int:round_id>/voting', methods=['POST'])
@login_required
def start_voting(round_id):
    """Host shortcut: open voting before the answer deadline."""
    round_ = _get_round_or_404(round_id)
    with game_lock(round_.game_id):
        db.session.refresh(round_)
        round_ = lifecycle.start_voting(round_, player=current_player())
        answers = [a.to_dict() for a in round_.answers.order_by(Answer.id).all()]
        return jsonify({
            'round': {'id': round_.id, 'status': round_.status, 'vote_deadline': round_.vote_deadline},
            'answers': answers,
        })


@rounds.route('/<int:round_id>/complete', methods=['POST'])
@login_required
def complete(round_id):
    round_ = _get_round_or_404(round_id)
    with game_lock(round_.game_id):
        db.session.refresh(round_)
        return jsonify(lifecycle.complete_round(round_, player=current_player()))
