from acro import db
from flask_login import UserMixin
import json
import secrets
import time

# Confusable characters (0/O, 1/I/L) are left out of join codes
CODE_ALPHABET = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'
CODE_LENGTH = 6


class Player(UserMixin, db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    display_name = db.Column(db.String(64), nullable=False)
    guest_token = db.Column(db.String(64), unique=True, index=True, nullable=False)
    games_played = db.Column(db.Integer, default=0, nullable=False)
    games_won = db.Column(db.Integer, default=0, nullable=False)
    total_score = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.Float, default=time.time, nullable=False)

    def __init__(self, **kwargs):
        super(Player, self).__init__(**kwargs)
        if not self.guest_token:
            self.guest_token = secrets.token_urlsafe(32)

    def to_dict(self):
        return {
            'id': self.id,
            'display_name': self.display_name,
            'games_played': self.games_played or 0,
            'games_won': self.games_won or 0,
            'total_score': self.total_score or 0,
        }


def generate_game_code(length=CODE_LENGTH):
    """Generate a join code not used by any lobby or running game."""
    while True:
        code = ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))
        clash = Game.query.filter(Game.code == code, Game.status != Game.STATUS_FINISHED).first()
        if not clash:
            return code


class Game(db.Model):
    __tablename__ = 'game'

    STATUS_LOBBY = 'lobby'
    STATUS_PLAYING = 'playing'
    STATUS_FINISHED = 'finished'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(CODE_LENGTH), index=True, nullable=False)
    status = db.Column(db.String(16), default=STATUS_LOBBY, nullable=False)  # lobby, playing, finished
    host_player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True)
    current_round = db.Column(db.Integer, default=0, nullable=False)
    total_rounds = db.Column(db.Integer, nullable=False)
    settings_json = db.Column(db.Text, nullable=False, default='{}')
    password_hash = db.Column(db.String(128), nullable=True)
    is_public = db.Column(db.Boolean, default=False, nullable=False)
    # The single answering/voting round, kept in step by every lifecycle action
    active_round_id = db.Column(
        db.Integer, db.ForeignKey('round.id', name='fk_game_active_round_id', use_alter=True), nullable=True
    )
    created_at = db.Column(db.Float, default=time.time, nullable=False)
    started_at = db.Column(db.Float, nullable=True)
    finished_at = db.Column(db.Float, nullable=True)

    host = db.relationship('Player', foreign_keys=[host_player_id])
    memberships = db.relationship('Membership', back_populates='game', lazy='dynamic')
    rounds = db.relationship('Round', foreign_keys='Round.game_id', back_populates='game', lazy='dynamic')

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.code:
            self.code = generate_game_code()

    @property
    def settings(self) -> dict:
        try:
            return json.loads(self.settings_json or '{}')
        except ValueError:
            return {}

    @settings.setter
    def settings(self, value: dict) -> None:
        self.settings_json = json.dumps(value)

    @property
    def active_round(self):
        if self.active_round_id:
            return db.session.get(Round, self.active_round_id)
        return None

    def active_memberships(self):
        return self.memberships.filter_by(is_active=True).order_by(Membership.joined_at, Membership.id).all()

    def active_member_count(self) -> int:
        return self.memberships.filter_by(is_active=True).count()

    def membership_for(self, player_id):
        return self.memberships.filter_by(player_id=player_id).first()

    def is_member(self, player_id) -> bool:
        return self.memberships.filter_by(player_id=player_id, is_active=True).first() is not None

    def is_host_or_co_host(self, player_id) -> bool:
        if player_id == self.host_player_id:
            return True
        m = self.memberships.filter_by(player_id=player_id, is_active=True).first()
        return bool(m and m.is_co_host)

    def completed_rounds(self):
        return self.rounds.filter_by(status=Round.STATUS_COMPLETED)

    def to_dict(self):
        players = []
        for m in self.active_memberships():
            players.append({
                'id': m.player_id,
                'display_name': m.player.display_name if m.player else None,
                'score': m.score,
                'is_host': m.player_id == self.host_player_id,
                'is_co_host': bool(m.is_co_host),
            })
        settings = self.settings
        return {
            'id': self.id,
            'code': self.code,
            'status': self.status,
            'host_player_id': self.host_player_id,
            'current_round': self.current_round,
            'total_rounds': self.total_rounds,
            'settings': settings,
            'is_public': bool(self.is_public),
            'has_password': self.password_hash is not None,
            'max_players': settings.get('max_players'),
            'players': players,
        }


class Membership(db.Model):
    __tablename__ = 'game_player'
    __table_args__ = (db.UniqueConstraint('game_id', 'player_id', name='uq_game_player'),)

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    score = db.Column(db.Integer, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_co_host = db.Column(db.Boolean, default=False, nullable=False)
    joined_at = db.Column(db.Float, default=time.time, nullable=False)

    game = db.relationship('Game', back_populates='memberships')
    player = db.relationship('Player')


class Round(db.Model):
    __tablename__ = 'round'
    __table_args__ = (db.UniqueConstraint('game_id', 'round_number', name='uq_round_game_number'),)

    STATUS_ANSWERING = 'answering'
    STATUS_VOTING = 'voting'
    STATUS_COMPLETED = 'completed'
    ACTIVE_STATUSES = (STATUS_ANSWERING, STATUS_VOTING)

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    acronym = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), default=STATUS_ANSWERING, nullable=False)
    answer_deadline = db.Column(db.Float, nullable=True)
    vote_deadline = db.Column(db.Float, nullable=True)
    grace_count = db.Column(db.Integer, default=0, nullable=False)
    completed_at = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.Float, default=time.time, nullable=False)

    game = db.relationship('Game', foreign_keys=[game_id], back_populates='rounds')
    answers = db.relationship('Answer', back_populates='round', lazy='dynamic')

    def answer_by(self, player_id):
        return self.answers.filter_by(player_id=player_id).first()

    def to_dict(self):
        return {
            'id': self.id,
            'round_number': self.round_number,
            'acronym': self.acronym,
            'status': self.status,
            'answer_deadline': self.answer_deadline,
            'vote_deadline': self.vote_deadline,
            'grace_count': self.grace_count,
        }


class Answer(db.Model):
    __tablename__ = 'answer'
    __table_args__ = (db.UniqueConstraint('round_id', 'player_id', name='uq_answer_round_player'),)

    id = db.Column(db.Integer, primary_key=True)
    round_id = db.Column(db.Integer, db.ForeignKey('round.id'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    text = db.Column(db.String(255), nullable=False)
    author_nickname = db.Column(db.String(64), nullable=True)
    votes_count = db.Column(db.Integer, default=0, nullable=False)

    round = db.relationship('Round', back_populates='answers')
    player = db.relationship('Player')
    votes = db.relationship('Vote', back_populates='answer', lazy='dynamic')

    def to_dict(self, include_votes=False):
        data = {
            'id': self.id,
            'player_id': self.player_id,
            'player_name': self.author_nickname or (self.player.display_name if self.player else None),
            'text': self.text,
        }
        if include_votes:
            data['votes_count'] = self.votes_count
        return data


class Vote(db.Model):
    __tablename__ = 'vote'
    __table_args__ = (db.UniqueConstraint('round_id', 'voter_id', name='uq_vote_round_voter'),)

    id = db.Column(db.Integer, primary_key=True)
    round_id = db.Column(db.Integer, db.ForeignKey('round.id'), nullable=False, index=True)
    answer_id = db.Column(db.Integer, db.ForeignKey('answer.id'), nullable=False)
    voter_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)

    answer = db.relationship('Answer', back_populates='votes')
    voter = db.relationship('Player')


class GameResult(db.Model):
    """Final standings snapshot written once when a game ends."""
    __tablename__ = 'game_result'

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), unique=True, nullable=False)
    winner_player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True)
    winner_nickname = db.Column(db.String(64), nullable=True)
    final_scores_json = db.Column(db.Text, nullable=False, default='[]')
    rounds_played = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.Float, default=time.time, nullable=False)

    @property
    def final_scores(self):
        try:
            return json.loads(self.final_scores_json or '[]')
        except ValueError:
            return []

    def to_dict(self):
        return {
            'game_id': self.game_id,
            'winner_player_id': self.winner_player_id,
            'winner_nickname': self.winner_nickname,
            'final_scores': self.final_scores,
            'rounds_played': self.rounds_played,
        }
