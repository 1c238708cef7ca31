import time
from typing import Optional

from flask import current_app

from acro import db, socketio
from acro.models import Game
from .locks import game_lock
from .processor import process_game


def tick(now: Optional[float] = None) -> int:
    """Run one orchestrator pass over every playing game.

    A failure in one game is rolled back and logged; the remaining games
    are still processed and the failed one is simply looked at again on
    the next tick. Returns the number of games processed without error.
    """
    now = time.time() if now is None else now
    game_ids = [gid for (gid,) in db.session.query(Game.id).filter_by(status=Game.STATUS_PLAYING).order_by(Game.id).all()]
    processed = 0
    for gid in game_ids:
        try:
            with game_lock(gid) as game:
                if game is not None:
                    action = process_game(game, now=now)
                    if action:
                        current_app.logger.info(f"[tick] game={game.code} action={action}")
            processed += 1
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception(f"[tick-error] game={gid} error={exc}")
    return processed


def delectus_status() -> dict:
    return {
        'active_games': Game.query.filter_by(status=Game.STATUS_PLAYING).count(),
        'waiting_games': Game.query.filter_by(status=Game.STATUS_LOBBY).count(),
        'timestamp': time.time(),
    }


def run_delectus(app, interval: Optional[float] = None, sleep=None) -> None:
    """Tick forever on a fixed period. Each tick gets a fresh app context/session."""
    if interval is None:
        interval = float(app.config.get('DELECTUS_TICK_SEC', 1.0))
    sleep = sleep or socketio.sleep
    app.logger.info(f"[delectus] orchestrator started interval={interval}s")
    while True:
        started = time.time()
        with app.app_context():
            try:
                tick()
            except Exception as exc:
                # e.g. the game query itself failed; try again next period
                app.logger.exception(f"[delectus] tick failed error={exc}")
            finally:
                db.session.remove()
        sleep(max(0.0, interval - (time.time() - started)))


def start_delectus(app):
    """Start the orchestrator loop as a background task once per app."""
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return None
    if app.extensions.get('delectus'):
        return app.extensions['delectus']
    task = socketio.start_background_task(run_delectus, app)
    app.extensions['delectus'] = task
    return task
