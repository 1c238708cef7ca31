import os
import sys
import pytest

# Ensure the backend root (containing the `acro` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from acro import create_app, db, socketio
from acro.models import Player


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    DELECTUS_AUTOSTART = False


@pytest.fixture()
def app():
    """The application with its tables created but no app context pushed.

    HTTP tests use this through `client`: every request then gets its own app
    context, and with it its own `g`, so the identity Flask-Login resolves for
    one request never leaks into the next.
    """
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import acro.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def flask_app(app):
    """The application with an app context held open, for service-level tests."""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture()
def file_app(tmp_path):
    """App on a file-backed SQLite database, for tests that use several threads.

    Each thread pushes its own app context and so gets its own connection.
    """
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'acro.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'timeout': 15}}

    application = create_app(FileConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def make_player(flask_app):
    def _make(name):
        player = Player(display_name=name)
        db.session.add(player)
        db.session.commit()
        return player
    return _make
