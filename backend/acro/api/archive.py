import time

from flask import Blueprint, abort, jsonify, request

from acro import db
from acro.models import Answer, Game, GameResult, Membership, Round, Vote

archive = Blueprint('archive', __name__)

PERIODS = {'week': 7 * 24 * 3600, 'month': 30 * 24 * 3600}


@archive.errorhandler(404)
def handle_not_found(exc):
    return jsonify({'error': getattr(exc, 'description', 'Not found')}), 404


def _duration(game):
    if game is None or game.started_at is None or game.finished_at is None:
        return None
    return int(game.finished_at - game.started_at)


@archive.route('', methods=['GET'])
def list_finished_games():
    """Finished games, newest first. ?player= matches the winner's name."""
    query = db.session.query(GameResult, Game).join(Game, Game.id == GameResult.game_id)
    player = (request.args.get('player') or '').strip()
    if player:
        query = query.filter(GameResult.winner_nickname.ilike(f'%{player}%'))
    period = request.args.get('period')
    if period in PERIODS:
        query = query.filter(GameResult.created_at >= time.time() - PERIODS[period])

    page = request.args.get('page', 1, type=int)
    per_page = min(request.args.get('per_page', 20, type=int), 50)
    total = query.count()
    rows = (
        query.order_by(GameResult.created_at.desc(), GameResult.id.desc())
        .offset((max(page, 1) - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return jsonify({
        'games': [
            {
                'id': result.id,
                'code': game.code,
                'winner_nickname': result.winner_nickname,
                'rounds_played': result.rounds_played,
                'player_count': len(result.final_scores),
                'duration_seconds': _duration(game),
                'final_scores': result.final_scores,
                'finished_at': game.finished_at,
                'played_at': result.created_at,
            }
            for result, game in rows
        ],
        'page': max(page, 1),
        'per_page': per_page,
        'total': total,
    })


@archive.route('/<string:code>', methods=['GET'])
def show_finished_game(code):
    """Full history of one finished game: ranked players and every round."""
    game = (
        Game.query.filter_by(code=code.upper(), status=Game.STATUS_FINISHED)
        .order_by(Game.id.desc())
        .first()
    )
    if game is None:
        abort(404, description='Game not found')

    members = game.memberships.order_by(
        Membership.score.desc(), Membership.joined_at, Membership.id
    ).all()
    players = [
        {
            'player_id': m.player_id,
            'player_name': m.player.display_name if m.player else None,
            'score': m.score,
            'rank': idx + 1,
        }
        for idx, m in enumerate(members)
    ]

    rounds = []
    for round_ in game.rounds.order_by(Round.round_number).all():
        answers = []
        for a in round_.answers.order_by(Answer.votes_count.desc(), Answer.id).all():
            answers.append({
                'player_id': a.player_id,
                'player_name': a.author_nickname or (a.player.display_name if a.player else None),
                'text': a.text,
                'votes_count': a.votes_count,
                'voters': [v.voter.display_name for v in a.votes.order_by(Vote.id) if v.voter],
            })
        rounds.append({
            'round_number': round_.round_number,
            'acronym': round_.acronym,
            'answers': answers,
        })

    return jsonify({
        'game': {
            'code': game.code,
            'status': game.status,
            'settings': game.settings,
            'started_at': game.started_at,
            'finished_at': game.finished_at,
            'duration_seconds': _duration(game),
        },
        'players': players,
        'rounds': rounds,
    })
