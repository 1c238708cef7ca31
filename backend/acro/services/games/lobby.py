"""Lobby and membership operations.

The caller's player is always passed in explicitly; nothing here looks up
the current request identity.
"""
import time
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from acro import bcrypt, db
from acro.models import Game, Membership, Player
from . import notifications
from .errors import GameActionError, GameFullError, PermissionDenied
from .locks import game_lock
from .settings import merge_settings


def create_game(host: Player, settings=None, is_public: bool = False, password: Optional[str] = None) -> Game:
    merged = merge_settings(settings)
    if password is not None and not (4 <= len(password) <= 50):
        raise GameActionError('Password must be between 4 and 50 characters')

    game = Game(
        host_player_id=host.id,
        status=Game.STATUS_LOBBY,
        total_rounds=merged['rounds'],
        current_round=0,
        is_public=bool(is_public),
        password_hash=bcrypt.generate_password_hash(password).decode('utf-8') if password else None,
    )
    game.settings = merged
    db.session.add(game)
    db.session.flush()
    db.session.add(Membership(game_id=game.id, player_id=host.id, joined_at=time.time()))
    db.session.commit()
    current_app.logger.info(f"[game-create] game={game.code} host={host.id} public={game.is_public}")
    return game


def join_game(game: Game, player: Player, password: Optional[str] = None) -> Membership:
    """Add or re-activate `player` in `game`.

    The capacity check and the membership write happen under the game lock,
    so concurrent joins cannot overshoot max_players.
    """
    with game_lock(game.id) as locked:
        if locked.status == Game.STATUS_FINISHED:
            raise GameActionError('Game has already finished')
        if locked.password_hash and not (password and bcrypt.check_password_hash(locked.password_hash, password)):
            raise GameActionError('Invalid game password')

        existing = Membership.query.filter_by(game_id=locked.id, player_id=player.id).first()
        if existing and existing.is_active:
            raise GameActionError('Player already in game')

        max_players = int(locked.settings.get('max_players', 8))
        if locked.active_member_count() >= max_players:
            raise GameFullError('Game is full')

        if existing:
            # Returning player keeps the score earned before leaving
            existing.is_active = True
            membership = existing
        else:
            membership = Membership(game_id=locked.id, player_id=player.id, joined_at=time.time())
        db.session.add(membership)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise GameActionError('Player already in game')

        current_app.logger.info(
            f"[join] game={locked.code} player={player.id} rejoin={existing is not None} active={locked.active_member_count()}"
        )
        notifications.broadcast(locked, 'player.joined', {
            'player': {'id': player.id, 'display_name': player.display_name, 'score': membership.score},
        })
        return membership


def leave_game(game: Game, player: Player) -> None:
    with game_lock(game.id) as locked:
        membership = Membership.query.filter_by(game_id=locked.id, player_id=player.id, is_active=True).first()
        if not membership:
            raise GameActionError('Player is not in this game')

        membership.is_active = False
        membership.is_co_host = False
        db.session.add(membership)

        new_host_id = None
        lobby_closed = False
        if locked.host_player_id == player.id and locked.status == Game.STATUS_LOBBY:
            successor = (
                Membership.query.filter(
                    Membership.game_id == locked.id,
                    Membership.is_active.is_(True),
                    Membership.player_id != player.id,
                )
                .order_by(Membership.is_co_host.desc(), Membership.joined_at, Membership.id)
                .first()
            )
            if successor:
                locked.host_player_id = successor.player_id
                successor.is_co_host = False
                db.session.add(successor)
                new_host_id = successor.player_id
            else:
                # A lobby cannot exist without a host
                locked.status = Game.STATUS_FINISHED
                locked.finished_at = time.time()
                lobby_closed = True
            db.session.add(locked)
        db.session.commit()

        current_app.logger.info(
            f"[leave] game={locked.code} player={player.id} new_host={new_host_id} lobby_closed={lobby_closed}"
        )
        notifications.broadcast(locked, 'player.left', {'player_id': player.id})
        if new_host_id is not None:
            notifications.broadcast(locked, 'host.changed', {'host_player_id': new_host_id})


def toggle_co_host(game: Game, host: Player, target_player_id: int) -> Membership:
    if game.host_player_id != host.id:
        raise PermissionDenied('Only the host can manage co-hosts')
    if target_player_id == host.id:
        raise GameActionError('Cannot change your own co-host status')
    membership = Membership.query.filter_by(game_id=game.id, player_id=target_player_id, is_active=True).first()
    if not membership:
        raise GameActionError('Player not found in this game')
    membership.is_co_host = not membership.is_co_host
    db.session.add(membership)
    db.session.commit()
    notifications.broadcast(game, 'co_host.changed', {
        'player_id': target_player_id,
        'is_co_host': membership.is_co_host,
    })
    return membership


def set_visibility(game: Game, player: Player, is_public: bool) -> Game:
    if not game.is_host_or_co_host(player.id):
        raise PermissionDenied('Only host or co-host can change visibility')
    game.is_public = bool(is_public)
    db.session.add(game)
    db.session.commit()
    notifications.broadcast(game, 'game.settings_changed', {'is_public': game.is_public})
    return game


def rematch(game: Game, player: Player) -> Game:
    """Open a fresh lobby with the same settings and bring every active member along."""
    if game.status != Game.STATUS_FINISHED:
        raise GameActionError('Game is not finished')
    if not game.is_host_or_co_host(player.id):
        raise PermissionDenied('Only host or co-host can start a rematch')

    new_game = Game(
        host_player_id=player.id,
        status=Game.STATUS_LOBBY,
        total_rounds=game.total_rounds,
        current_round=0,
        is_public=game.is_public,
        password_hash=game.password_hash,
        settings_json=game.settings_json,
    )
    db.session.add(new_game)
    db.session.flush()
    now = time.time()
    db.session.add(Membership(game_id=new_game.id, player_id=player.id, joined_at=now))
    max_players = int(new_game.settings.get('max_players', 8))
    added = 1
    for m in game.active_memberships():
        if m.player_id == player.id or added >= max_players:
            continue
        db.session.add(Membership(game_id=new_game.id, player_id=m.player_id, joined_at=now + added * 1e-3))
        added += 1
    db.session.commit()

    current_app.logger.info(f"[rematch] from={game.code} to={new_game.code} players={added}")
    notifications.broadcast(game, 'game.rematch', {'new_game_code': new_game.code})
    return new_game
