from typing import List

from acro import db
from acro.models import Answer, Game, Membership, Round, Vote

POINTS_PER_VOTE = 1


def _answer_entries(round_: Round) -> List[dict]:
    entries = []
    for answer in round_.answers.order_by(Answer.id).all():
        voters = [
            {'player_id': v.voter_id, 'player_name': v.voter.display_name if v.voter else None}
            for v in answer.votes.order_by(Vote.id).all()
        ]
        entries.append({
            'answer_id': answer.id,
            'player_id': answer.player_id,
            'player_name': answer.author_nickname or (answer.player.display_name if answer.player else None),
            'text': answer.text,
            'votes': len(voters),
            'points': 0,
            'voters': voters,
        })
    return entries


def calculate_round_scores(round_: Round) -> List[dict]:
    """Award points for a voted round and return its ranked results.

    Each vote received is worth POINTS_PER_VOTE to the answer's author.
    Players without an answer get nothing. Membership scores and the
    answers' vote counts are updated in the session; the caller commits.
    """
    entries = _answer_entries(round_)
    for entry in entries:
        entry['points'] = entry['votes'] * POINTS_PER_VOTE
        answer = db.session.get(Answer, entry['answer_id'])
        answer.votes_count = entry['votes']
        db.session.add(answer)
        if entry['points']:
            membership = Membership.query.filter_by(game_id=round_.game_id, player_id=entry['player_id']).first()
            if membership:
                membership.score += entry['points']
                db.session.add(membership)
    entries.sort(key=lambda e: (-e['votes'], e['answer_id']))
    return entries


def scores_without_voting(round_: Round) -> List[dict]:
    """Results for a round that closed without a voting phase."""
    return _answer_entries(round_)


def leaderboard(game: Game) -> List[dict]:
    return [
        {
            'player_id': m.player_id,
            'player_name': m.player.display_name if m.player else None,
            'score': m.score,
        }
        for m in game.memberships.filter_by(is_active=True)
        .order_by(Membership.score.desc(), Membership.joined_at, Membership.id)
        .all()
    ]


def final_standings(game: Game) -> List[dict]:
    """Rank every member who ever joined; ties go to whoever joined first."""
    members = game.memberships.order_by(
        Membership.score.desc(), Membership.joined_at, Membership.id
    ).all()
    return [
        {
            'rank': idx + 1,
            'player_id': m.player_id,
            'player_name': m.player.display_name if m.player else None,
            'score': m.score,
            'is_winner': idx == 0,
        }
        for idx, m in enumerate(members)
    ]


def update_player_stats(game: Game, standings: List[dict]) -> None:
    """Fold a finished game into each member's lifetime statistics."""
    for entry in standings:
        membership = Membership.query.filter_by(game_id=game.id, player_id=entry['player_id']).first()
        if not membership or not membership.player:
            continue
        player = membership.player
        player.games_played = (player.games_played or 0) + 1
        player.total_score = (player.total_score or 0) + entry['score']
        if entry['is_winner']:
            player.games_won = (player.games_won or 0) + 1
        db.session.add(player)
