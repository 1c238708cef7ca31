from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # A message queue lets a separate orchestrator process emit to connected clients
    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        message_queue=flask_app.config.get('SOCKETIO_MESSAGE_QUEUE'),
    )

    from acro.api.auth import auth
    flask_app.register_blueprint(auth, url_prefix='/api/auth')

    from acro.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from acro.api.rounds import rounds
    flask_app.register_blueprint(rounds, url_prefix='/api/rounds')

    from acro.api.archive import archive
    flask_app.register_blueprint(archive, url_prefix='/api/archive')

    from acro.api.players import players
    flask_app.register_blueprint(players, url_prefix='/api/players')

    from acro.api.delectus import delectus_api
    flask_app.register_blueprint(delectus_api, url_prefix='/api/delectus')

    from acro.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Identity is a guest token sent as a bearer header; no cookie sessions
    from acro.models import Player

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Player, int(user_id))

    @login_manager.request_loader
    def load_user_from_request(req):
        header = req.headers.get('Authorization', '')
        token = header[7:].strip() if header.startswith('Bearer ') else req.headers.get('X-Guest-Token')
        if not token:
            return None
        return Player.query.filter_by(guest_token=token).first()

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    from acro.cli import db_reset_command, delectus_cli
    flask_app.cli.add_command(delectus_cli)
    flask_app.cli.add_command(db_reset_command)

    if flask_app.config.get('DELECTUS_AUTOSTART') and not flask_app.config.get('TESTING'):
        from acro.services.games.scheduler import start_delectus
        start_delectus(flask_app)

    return flask_app
