"""Round lifecycle actions.

Each action checks its precondition, applies one transition, commits once and
then notifies the game's room. The orchestrator and the host-triggered API
routes call the same functions, so a second trigger for a transition that has
already happened is rejected rather than applied twice.
"""
import json
import math
import random
import time
from typing import Optional

from flask import current_app

from acro import db
from acro.models import Game, GameResult, Player, Round
from . import notifications
from .acronyms import generate_acronym
from .errors import GameActionError, PermissionDenied
from .scoring import (
    calculate_round_scores,
    final_standings,
    leaderboard,
    scores_without_voting,
    update_player_stats,
)

MAX_GRACE = 2
GRACE_FACTOR = 0.5


def _now(now: Optional[float]) -> float:
    return time.time() if now is None else now


def _require_round_manager(game: Game, player: Optional[Player]) -> None:
    if player is not None and not game.is_host_or_co_host(player.id):
        raise PermissionDenied('Only the host can control rounds')


def _active_rounds(game: Game):
    return game.rounds.filter(Round.status.in_(Round.ACTIVE_STATUSES)).all()


def _close_round(game: Game, round_: Round, now: float) -> None:
    round_.status = Round.STATUS_COMPLETED
    round_.completed_at = now
    if game.active_round_id == round_.id:
        game.active_round_id = None
    db.session.add(round_)
    db.session.add(game)


def start_game(game: Game, player: Player, now: Optional[float] = None, rng: Optional[random.Random] = None) -> Round:
    """Move a lobby to play and open round 1 straight away."""
    now = _now(now)
    if game.host_player_id != player.id:
        raise PermissionDenied('Only the host can start the game')
    if game.status != Game.STATUS_LOBBY:
        raise GameActionError('Game has already started')
    min_players = int(game.settings.get('min_players', 2))
    if game.active_member_count() < min_players:
        raise GameActionError(f'At least {min_players} players are required to start')

    # Status and round 1 commit together: a tick never sees a playing game without its first round
    game.status = Game.STATUS_PLAYING
    game.started_at = now
    db.session.add(game)
    round_ = _open_round(game, 1, now, rng)
    db.session.commit()

    current_app.logger.info(f"[game-start] game={game.code} players={game.active_member_count()}")
    notifications.broadcast(game, 'game.started', {'game': game.to_dict()})
    _announce_round(game, round_)
    return round_


def start_round(game: Game, number: int, now: Optional[float] = None, rng: Optional[random.Random] = None) -> Round:
    now = _now(now)
    if game.status != Game.STATUS_PLAYING:
        raise GameActionError('Game is not in progress')
    if game.active_round_id is not None or _active_rounds(game):
        raise GameActionError('A round is already in progress')
    completed = game.completed_rounds().count()
    if number != completed + 1:
        raise GameActionError(f'Round {number} cannot start after {completed} completed rounds')
    if number > (game.total_rounds or 0):
        raise GameActionError('All rounds have been played')

    round_ = _open_round(game, number, now, rng)
    db.session.commit()
    _announce_round(game, round_)
    return round_


def _open_round(game: Game, number: int, now: float, rng: Optional[random.Random]) -> Round:
    settings = game.settings
    round_ = Round(
        game_id=game.id,
        round_number=number,
        acronym=generate_acronym(settings, rng),
        status=Round.STATUS_ANSWERING,
        answer_deadline=now + int(settings.get('answer_time', 60)),
        grace_count=0,
        created_at=now,
    )
    db.session.add(round_)
    db.session.flush()
    game.current_round = number
    game.active_round_id = round_.id
    db.session.add(game)
    return round_


def _announce_round(game: Game, round_: Round) -> None:
    current_app.logger.info(
        f"[round-start] game={game.code} round={round_.round_number} acronym={round_.acronym} deadline={round_.answer_deadline}"
    )
    notifications.broadcast(game, 'round.started', {
        'round': round_.to_dict(),
        'total_rounds': game.total_rounds,
    })


def start_voting(round_: Round, now: Optional[float] = None, player: Optional[Player] = None) -> Round:
    """Close answering and open voting; `player` is set for manual host triggers."""
    now = _now(now)
    game = round_.game
    _require_round_manager(game, player)
    if round_.status != Round.STATUS_ANSWERING:
        raise GameActionError('Round is not in answering phase')
    answers = round_.answers.all()
    if len({a.player_id for a in answers}) < 2:
        raise GameActionError('At least two answers are needed to vote')

    round_.status = Round.STATUS_VOTING
    round_.vote_deadline = now + int(game.settings.get('vote_time', 30))
    db.session.add(round_)
    db.session.commit()

    current_app.logger.info(
        f"[voting-start] game={game.code} round={round_.round_number} answers={len(answers)} deadline={round_.vote_deadline}"
    )
    notifications.broadcast(game, 'voting.started', {
        'round': round_.to_dict(),
        'answers': [a.to_dict() for a in answers],
    })
    return round_


def complete_round(round_: Round, now: Optional[float] = None, player: Optional[Player] = None) -> dict:
    now = _now(now)
    game = round_.game
    _require_round_manager(game, player)
    if round_.status != Round.STATUS_VOTING:
        raise GameActionError('Round is not in voting phase')

    results = calculate_round_scores(round_)
    _close_round(game, round_, now)
    db.session.commit()

    current_app.logger.info(
        f"[round-complete] game={game.code} round={round_.round_number} results={json.dumps(results)}"
    )
    notifications.broadcast(game, 'round.completed', {
        'round_number': round_.round_number,
        'results': results,
        'scores': leaderboard(game),
    })
    return {'round_results': results, 'game_finished': False}


def complete_without_voting(round_: Round, now: Optional[float] = None) -> dict:
    """Close an answering round that drew a single answer; nobody can vote on it."""
    now = _now(now)
    game = round_.game
    if round_.status != Round.STATUS_ANSWERING:
        raise GameActionError('Round is not in answering phase')

    results = scores_without_voting(round_)
    _close_round(game, round_, now)
    db.session.commit()

    current_app.logger.info(f"[round-skip-voting] game={game.code} round={round_.round_number} answers={len(results)}")
    notifications.broadcast(game, 'round.completed', {
        'round_number': round_.round_number,
        'results': results,
        'scores': leaderboard(game),
    })
    return {'round_results': results, 'game_finished': False}


def extend_answering(round_: Round, now: Optional[float] = None) -> Round:
    """Grant one grace extension to an answering round that has no answers."""
    now = _now(now)
    game = round_.game
    if round_.status != Round.STATUS_ANSWERING:
        raise GameActionError('Round is not in answering phase')
    if (round_.grace_count or 0) >= MAX_GRACE:
        raise GameActionError('No grace extensions left for this round')

    previous = round_.grace_count or 0
    extension = int(math.ceil(int(game.settings.get('answer_time', 60)) * GRACE_FACTOR))
    round_.answer_deadline = now + extension
    round_.grace_count = previous + 1
    db.session.add(round_)
    db.session.commit()

    current_app.logger.info(
        f"[grace-extend] game={game.code} round={round_.round_number} grace={round_.grace_count} extension={extension}s"
    )
    notifications.system_message(
        game,
        'No answers yet! A little extra time...' if previous == 0 else 'Still no answers... last chance!',
    )
    return round_


def abandon_round(round_: Round, now: Optional[float] = None) -> Game:
    """Skip an unanswered round once its grace is spent and end the game."""
    now = _now(now)
    game = round_.game
    current_app.logger.info(f"[round-abandon] game={game.code} round={round_.round_number} grace={round_.grace_count}")
    _close_round(game, round_, now)
    db.session.flush()
    return end_game(game, now=now)


def end_game(game: Game, now: Optional[float] = None) -> Game:
    now = _now(now)
    if game.status != Game.STATUS_PLAYING:
        raise GameActionError('Game is not in progress')

    for round_ in _active_rounds(game):
        _close_round(game, round_, now)
    game.status = Game.STATUS_FINISHED
    game.finished_at = now
    game.active_round_id = None
    db.session.add(game)
    db.session.flush()

    standings = final_standings(game)
    update_player_stats(game, standings)
    winner = standings[0] if standings else None
    db.session.add(GameResult(
        game_id=game.id,
        winner_player_id=winner['player_id'] if winner else None,
        winner_nickname=winner['player_name'] if winner else None,
        final_scores_json=json.dumps(standings),
        rounds_played=game.completed_rounds().count(),
        created_at=now,
    ))
    db.session.commit()

    current_app.logger.info(
        f"[game-finish] game={game.code} winner={winner['player_name'] if winner else None} final_scores={json.dumps(standings)}"
    )
    notifications.broadcast(game, 'game.finished', {
        'winner': winner,
        'final_scores': standings,
    })
    return game
