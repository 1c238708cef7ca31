import threading
import weakref
from contextlib import contextmanager

from acro import db
from acro.models import Game

# game id -> lock; an entry disappears once no thread holds or waits on it
_locks = weakref.WeakValueDictionary()
_locks_guard = threading.Lock()


def _lock_for(game_id: int) -> threading.RLock:
    with _locks_guard:
        lock = _locks.get(game_id)
        if lock is None:
            lock = threading.RLock()
            _locks[game_id] = lock
        return lock


@contextmanager
def game_lock(game_id: int):
    """Serialise mutations of one game and yield its freshly loaded row.

    The in-process lock orders threads of one worker; the row lock
    (SELECT ... FOR UPDATE, a no-op on SQLite) orders separate workers. The
    transaction is committed on a clean exit and rolled back on error, so the
    row lock never outlives the block. Re-entrant so an action may call
    another action for the same game.
    """
    with _lock_for(game_id):
        game = (
            Game.query.filter_by(id=game_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        try:
            yield game
        except Exception:
            db.session.rollback()
            raise
        else:
            db.session.commit()
