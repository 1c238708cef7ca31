import time
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from acro import db
from acro.models import Answer, Player, Round, Vote
from . import notifications
from .acronyms import validate_answer
from .errors import GameActionError
from .locks import game_lock


def submit_answer(round_: Round, player: Player, text: str, now: Optional[float] = None) -> Answer:
    """Store a player's sentence; a second submission replaces the first.

    Runs under the game lock with the round re-read, so an orchestrator
    transition committed a moment earlier is always seen.
    """
    now = time.time() if now is None else now
    with game_lock(round_.game_id) as game:
        db.session.refresh(round_)
        if round_.status != Round.STATUS_ANSWERING:
            raise GameActionError('Round is not accepting answers')
        if round_.answer_deadline is not None and round_.answer_deadline <= now:
            raise GameActionError('Answer deadline has passed')
        if not game.is_member(player.id):
            raise GameActionError('Player is not in this game')

        result = validate_answer(text, round_.acronym)
        if not result.is_valid:
            raise GameActionError(result.error)

        cleaned = text.strip()
        answer = round_.answer_by(player.id)
        if answer is None:
            answer = Answer(round_id=round_.id, player_id=player.id, text=cleaned, author_nickname=player.display_name)
            db.session.add(answer)
            try:
                db.session.commit()
            except IntegrityError:
                # Lost a race against our own earlier request; overwrite that row instead
                db.session.rollback()
                answer = round_.answer_by(player.id)
                answer.text = cleaned
                db.session.add(answer)
                db.session.commit()
        else:
            answer.text = cleaned
            db.session.add(answer)
            db.session.commit()

        count = round_.answers.count()
        current_app.logger.info(f"[answer] game={game.code} round={round_.round_number} player={player.id} answers={count}")
        notifications.broadcast(game, 'answer.submitted', {'round_id': round_.id, 'answers_count': count})
        return answer


def submit_vote(round_: Round, voter: Player, answer_id: int, now: Optional[float] = None) -> Vote:
    now = time.time() if now is None else now
    with game_lock(round_.game_id) as game:
        db.session.refresh(round_)
        if round_.status != Round.STATUS_VOTING:
            raise GameActionError('Round is not in voting phase')
        if round_.vote_deadline is not None and round_.vote_deadline <= now:
            raise GameActionError('Voting deadline has passed')
        if not game.is_member(voter.id):
            raise GameActionError('Player is not in this game')

        answer = Answer.query.filter_by(id=answer_id, round_id=round_.id).first()
        if not answer:
            raise GameActionError('Answer not found in this round')
        if answer.player_id == voter.id:
            raise GameActionError('Cannot vote for your own answer')
        if Vote.query.filter_by(round_id=round_.id, voter_id=voter.id).first():
            raise GameActionError('You have already voted this round')

        vote = Vote(round_id=round_.id, answer_id=answer.id, voter_id=voter.id)
        db.session.add(vote)
        answer.votes_count = (answer.votes_count or 0) + 1
        db.session.add(answer)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise GameActionError('You have already voted this round')

        count = Vote.query.filter_by(round_id=round_.id).count()
        current_app.logger.info(f"[vote] game={game.code} round={round_.round_number} voter={voter.id} votes={count}")
        notifications.broadcast(game, 'vote.submitted', {'round_id': round_.id, 'votes_count': count})
        return vote
