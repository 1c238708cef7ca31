"""Per-game decision step run by the Delectus orchestrator.

State machine:

    Game:  [lobby] -> [playing] -> [finished]
                          |
    Round:     [answering] -> [voting] -> [completed]
                    |                          |
                    +--> (grace / skip) -------+--> next round or end of game

Every decision is derived from persisted rows (round statuses, deadlines,
completion times), never from state kept between ticks, so a restarted
orchestrator picks up exactly where the last one stopped.
"""
import time
from typing import Optional

from flask import current_app

from acro import db
from acro.models import Game, Round
from . import lifecycle
from .errors import ActiveRoundConflict

START_ROUND = 'start_round'
START_VOTING = 'start_voting'
COMPLETE_ROUND = 'complete_round'
SKIP_VOTING = 'skip_voting'
GRACE_EXTEND = 'grace_extend'
ABANDON = 'abandon'
END_GAME = 'end_game'


def find_active_round(game: Game) -> Optional[Round]:
    active = game.rounds.filter(Round.status.in_(Round.ACTIVE_STATUSES)).all()
    if len(active) > 1:
        raise ActiveRoundConflict(
            f"game {game.code} has {len(active)} active rounds: {sorted(r.round_number for r in active)}"
        )
    round_ = active[0] if active else None
    expected_id = round_.id if round_ else None
    if game.active_round_id != expected_id:
        current_app.logger.warning(
            f"[active-round-resync] game={game.code} pointer={game.active_round_id} actual={expected_id}"
        )
        # Committed together with whatever action follows, or on lock release
        game.active_round_id = expected_id
        db.session.add(game)
    return round_


def process_game(game: Game, now: Optional[float] = None) -> Optional[str]:
    """Apply at most one transition to `game`; return its name or None."""
    now = time.time() if now is None else now
    if game.status != Game.STATUS_PLAYING:
        return None

    round_ = find_active_round(game)
    if round_ is None:
        return _handle_round_boundary(game, now)
    if round_.status == Round.STATUS_ANSWERING:
        return _handle_answering(game, round_, now)
    if round_.status == Round.STATUS_VOTING:
        return _handle_voting(game, round_, now)
    return None


def _handle_round_boundary(game: Game, now: float) -> Optional[str]:
    settings = game.settings
    delay = int(settings.get('time_between_rounds', 5))
    completed = game.completed_rounds().count()
    last = game.completed_rounds().order_by(Round.round_number.desc()).first()

    if last is not None and last.answers.count() == 0:
        current_app.logger.info(
            f"[delectus] game={game.code} round={last.round_number} had no answers, ending game"
        )
        lifecycle.end_game(game, now=now)
        return END_GAME

    if completed >= (game.total_rounds or 0):
        if last is not None and last.completed_at is not None and now - last.completed_at < delay:
            return None  # still showing the last results
        current_app.logger.info(f"[delectus] game={game.code} all {completed} rounds played, ending game")
        lifecycle.end_game(game, now=now)
        return END_GAME

    active_players = game.active_member_count()
    if active_players <= 1:
        current_app.logger.info(
            f"[delectus] game={game.code} active_players={active_players}, ending game"
        )
        lifecycle.end_game(game, now=now)
        return END_GAME

    if last is not None and last.completed_at is not None and now - last.completed_at < delay:
        return None  # between rounds

    lifecycle.start_round(game, completed + 1, now=now)
    return START_ROUND


def _handle_answering(game: Game, round_: Round, now: float) -> Optional[str]:
    if round_.answer_deadline is None or round_.answer_deadline > now:
        return None

    answers = round_.answers.count()
    if answers == 0:
        if (round_.grace_count or 0) < lifecycle.MAX_GRACE:
            lifecycle.extend_answering(round_, now=now)
            return GRACE_EXTEND
        current_app.logger.info(
            f"[delectus] game={game.code} round={round_.round_number} no answers after grace, abandoning"
        )
        lifecycle.abandon_round(round_, now=now)
        return ABANDON

    if answers == 1:
        # A lone answer cannot be voted on (no self votes); close the round as is.
        # TODO: confirm with product whether a single answer should instead earn a token point.
        lifecycle.complete_without_voting(round_, now=now)
        return SKIP_VOTING

    lifecycle.start_voting(round_, now=now)
    return START_VOTING


def _handle_voting(game: Game, round_: Round, now: float) -> Optional[str]:
    if round_.vote_deadline is None or round_.vote_deadline > now:
        return None
    lifecycle.complete_round(round_, now=now)
    return COMPLETE_ROUND
