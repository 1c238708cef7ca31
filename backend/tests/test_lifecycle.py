import random

import pytest

from acro import db
from acro.models import Game, GameResult, Membership, Player, Round
from acro.services.games import lifecycle, lobby, rounds
from acro.services.games.errors import GameActionError, PermissionDenied
from acro.services.games.locks import game_lock

from helpers import T0, answer_all, make_lobby, refresh_game, sentence, start_game


def test_only_host_starts_game(make_player):
    game, players = make_lobby(make_player)
    with pytest.raises(PermissionDenied):
        lifecycle.start_game(game, players[1], now=T0)
    assert refresh_game(game).status == Game.STATUS_LOBBY


def test_start_game_requires_min_players(make_player):
    game, players = make_lobby(make_player, count=2, min_players=3)
    with pytest.raises(GameActionError, match='At least 3 players'):
        lifecycle.start_game(game, players[0], now=T0)


def test_game_cannot_start_twice(make_player):
    game, players = start_game(make_player)
    with pytest.raises(GameActionError, match='already started'):
        lifecycle.start_game(game, players[0], now=T0 + 1)


def test_game_start_and_first_round_commit_together(make_player, monkeypatch):
    game, players = make_lobby(make_player)

    def no_acronym(settings, rng=None):
        raise RuntimeError('acronym source down')

    monkeypatch.setattr(lifecycle, 'generate_acronym', no_acronym)
    with pytest.raises(RuntimeError):
        with game_lock(game.id) as locked:
            lifecycle.start_game(locked, players[0], now=T0)

    game = refresh_game(game)
    assert game.status == Game.STATUS_LOBBY
    assert game.started_at is None
    assert Round.query.filter_by(game_id=game.id).count() == 0


def test_start_round_refuses_second_active_round(make_player):
    game, _ = start_game(make_player)
    with pytest.raises(GameActionError, match='already in progress'):
        lifecycle.start_round(game, 2, now=T0 + 1)
    assert Round.query.filter_by(game_id=game.id).count() == 1


def test_acronym_respects_excluded_letters_and_length(make_player):
    game, players = make_lobby(
        make_player, acronym_length_min=4, acronym_length_max=4, excluded_letters='AEIOU'
    )
    round_ = lifecycle.start_game(game, players[0], now=T0, rng=random.Random(3))
    assert len(round_.acronym) == 4
    assert not set(round_.acronym) & set('AEIOU')


def test_start_voting_twice_is_rejected(make_player):
    game, players = start_game(make_player, vote_time=30)
    round_ = game.active_round
    answer_all(round_, players, now=T0 + 5)

    lifecycle.start_voting(round_, now=T0 + 10, player=players[0])
    assert round_.vote_deadline == T0 + 40

    with pytest.raises(GameActionError, match='not in answering phase'):
        lifecycle.start_voting(round_, now=T0 + 20)
    assert db.session.get(Round, round_.id).vote_deadline == T0 + 40


def test_start_voting_needs_two_answers(make_player):
    game, players = start_game(make_player)
    round_ = game.active_round
    rounds.submit_answer(round_, players[0], sentence(round_.acronym), now=T0 + 5)
    with pytest.raises(GameActionError, match='two answers'):
        lifecycle.start_voting(round_, now=T0 + 10, player=players[0])
    assert db.session.get(Round, round_.id).status == Round.STATUS_ANSWERING


def test_start_voting_by_plain_player_is_denied(make_player):
    game, players = start_game(make_player)
    round_ = game.active_round
    answer_all(round_, players, now=T0 + 5)
    with pytest.raises(PermissionDenied):
        lifecycle.start_voting(round_, now=T0 + 10, player=players[1])


def test_co_host_may_start_voting(make_player):
    game, players = make_lobby(make_player, count=3)
    lobby.toggle_co_host(game, players[0], players[1].id)
    lifecycle.start_game(game, players[0], now=T0)
    round_ = refresh_game(game).active_round
    answer_all(round_, players[:2], now=T0 + 5)
    lifecycle.start_voting(round_, now=T0 + 10, player=players[1])
    assert round_.status == Round.STATUS_VOTING


def test_complete_round_requires_voting(make_player):
    game, _ = start_game(make_player)
    with pytest.raises(GameActionError, match='not in voting phase'):
        lifecycle.complete_round(game.active_round, now=T0 + 1)


def test_complete_round_returns_results_and_frees_game(make_player):
    game, players = start_game(make_player, count=3)
    round_ = game.active_round
    answer_all(round_, players[:2], now=T0 + 5)
    lifecycle.start_voting(round_, now=T0 + 10)
    rounds.submit_vote(round_, players[2], round_.answer_by(players[1].id).id, now=T0 + 11)

    outcome = lifecycle.complete_round(round_, now=T0 + 12)
    assert outcome['game_finished'] is False
    top = outcome['round_results'][0]
    assert top['player_id'] == players[1].id
    assert top['votes'] == 1
    assert top['points'] == 1
    assert top['voters'] == [{'player_id': players[2].id, 'player_name': players[2].display_name}]

    game = refresh_game(game)
    assert game.active_round_id is None
    assert game.status == Game.STATUS_PLAYING
    assert round_.completed_at == T0 + 12


def test_end_game_updates_lifetime_stats_once(make_player):
    game, players = start_game(make_player, count=3)
    round_ = game.active_round
    answer_all(round_, players[:2], now=T0 + 5)
    lifecycle.start_voting(round_, now=T0 + 10)
    rounds.submit_vote(round_, players[2], round_.answer_by(players[0].id).id, now=T0 + 11)
    lifecycle.complete_round(round_, now=T0 + 12)

    lifecycle.end_game(refresh_game(game), now=T0 + 20)
    with pytest.raises(GameActionError):
        lifecycle.end_game(refresh_game(game), now=T0 + 21)

    winner = db.session.get(Player, players[0].id)
    assert winner.games_played == 1
    assert winner.games_won == 1
    assert winner.total_score == 1
    for p in players[1:]:
        p = db.session.get(Player, p.id)
        assert p.games_played == 1
        assert p.games_won == 0
    assert GameResult.query.filter_by(game_id=game.id).count() == 1


def test_final_standings_break_ties_by_join_order(make_player):
    game, players = start_game(make_player, count=3)
    for m in Membership.query.filter_by(game_id=game.id):
        m.score = 4
    db.session.commit()

    lifecycle.end_game(refresh_game(game), now=T0 + 1)
    standings = GameResult.query.filter_by(game_id=game.id).one().final_scores
    assert [s['player_id'] for s in standings] == [p.id for p in players]
    assert standings[0]['is_winner'] is True


def test_end_game_closes_open_round(make_player):
    game, _ = start_game(make_player)
    round_id = game.active_round_id
    lifecycle.end_game(game, now=T0 + 5)
    assert db.session.get(Round, round_id).status == Round.STATUS_COMPLETED
    assert refresh_game(game).active_round_id is None
