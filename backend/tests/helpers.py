import random

from acro import db
from acro.models import Game, Round
from acro.services.games import lifecycle, lobby, rounds

T0 = 1_700_000_000.0


def sentence(acronym, tag='a'):
    """A valid answer for `acronym`, e.g. 'Xa Ya Za' for XYZ."""
    return ' '.join(f'{letter}{tag}' for letter in acronym)


def make_lobby(make_player, count=2, **settings):
    """Create a lobby hosted by the first of `count` players, all joined."""
    players = [make_player(f'P{i}') for i in range(count)]
    game = lobby.create_game(players[0], settings=settings)
    for p in players[1:]:
        lobby.join_game(game, p)
    return game, players


def start_game(make_player, count=2, now=T0, **settings):
    game, players = make_lobby(make_player, count=count, **settings)
    lifecycle.start_game(game, players[0], now=now, rng=random.Random(7))
    return refresh_game(game), players


def refresh_game(game):
    return db.session.get(Game, game.id)


def active_round(game):
    return refresh_game(game).active_round


def answer_all(round_, players, now):
    for idx, p in enumerate(players):
        rounds.submit_answer(round_, p, sentence(round_.acronym, tag=f'x{idx}'), now=now)


def rounds_of(game):
    return Round.query.filter_by(game_id=game.id).order_by(Round.round_number).all()
