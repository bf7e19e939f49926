from datetime import datetime, timezone
import random
import string

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from scoreline import db

ROLE_PLAYER = 'PLAYER'
ROLE_ADMIN = 'ADMIN'
ROLE_VISITOR = 'VISITOR'
ROLES = (ROLE_PLAYER, ROLE_ADMIN, ROLE_VISITOR)

STATUS_SETUP = 'SETUP'
STATUS_OPEN = 'OPEN'
STATUS_CLOSED = 'CLOSED'
STATUS_COMPLETED = 'COMPLETED'
ROUND_STATUSES = (STATUS_SETUP, STATUS_OPEN, STATUS_CLOSED, STATUS_COMPLETED)

FIXTURE_SCHEDULED = 'SCHEDULED'
FIXTURE_FINISHED = 'FINISHED'


def utcnow():
    """Naive UTC now; every stored instant is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() + 'Z' if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_PLAYER)
    team_name = db.Column(db.String(64), nullable=True)
    avatar_url = db.Column(db.String(256), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role,
            'team_name': self.team_name,
            'avatar_url': self.avatar_url,
        }


class Round(db.Model):
    __tablename__ = 'round'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    deadline = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_SETUP)  # SETUP, OPEN, CLOSED, COMPLETED
    joker_limit = db.Column(db.Integer, nullable=False, default=1)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    fixtures = db.relationship('Fixture', backref='round', cascade='all, delete-orphan')
    predictions = db.relationship('Prediction', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'deadline': _iso(self.deadline),
            'status': self.status,
            'joker_limit': self.joker_limit,
            'created_by': self.created_by,
        }


class Fixture(db.Model):
    __tablename__ = 'fixture'
    id = db.Column(db.Integer, primary_key=True)
    round_id = db.Column(db.Integer, db.ForeignKey('round.id', ondelete='CASCADE'), nullable=False, index=True)
    home_team = db.Column(db.String(120), nullable=False)
    away_team = db.Column(db.String(120), nullable=False)
    match_time = db.Column(db.DateTime, nullable=False)
    home_score = db.Column(db.Integer, nullable=True)
    away_score = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=FIXTURE_SCHEDULED)  # SCHEDULED, FINISHED, etc.
    external_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    predictions = db.relationship('Prediction', backref='fixture', cascade='all, delete-orphan')

    @property
    def has_result(self):
        return self.home_score is not None and self.away_score is not None

    def to_dict(self):
        return {
            'id': self.id,
            'round_id': self.round_id,
            'home_team': self.home_team,
            'away_team': self.away_team,
            'match_time': _iso(self.match_time),
            'home_score': self.home_score,
            'away_score': self.away_score,
            'status': self.status,
            'external_id': self.external_id,
        }


class Prediction(db.Model):
    __tablename__ = 'prediction'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    fixture_id = db.Column(db.Integer, db.ForeignKey('fixture.id', ondelete='CASCADE'), nullable=False)
    round_id = db.Column(db.Integer, db.ForeignKey('round.id', ondelete='CASCADE'), nullable=False, index=True)
    predicted_home_goals = db.Column(db.Integer, nullable=True)
    predicted_away_goals = db.Column(db.Integer, nullable=True)
    is_joker = db.Column(db.Boolean, nullable=False, default=False)
    points_awarded = db.Column(db.Integer, nullable=True)
    submitted_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    # one prediction per user & fixture:
    __table_args__ = (db.UniqueConstraint('user_id', 'fixture_id', name='uix_prediction_user_fixture'),)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'fixture_id': self.fixture_id,
            'round_id': self.round_id,
            'predicted_home_goals': self.predicted_home_goals,
            'predicted_away_goals': self.predicted_away_goals,
            'is_joker': self.is_joker,
            'points_awarded': self.points_awarded,
            'submitted_at': _iso(self.submitted_at),
        }


def generate_invite_code(length=6):
    """Generate a unique, short league invite code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not League.query.filter_by(invite_code=code).first():
            return code


class League(db.Model):
    __tablename__ = 'league'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    invite_code = db.Column(db.String(6), unique=True, index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    memberships = db.relationship('LeagueMembership', backref='league', cascade='all, delete-orphan')

    def __init__(self, **kwargs):
        super(League, self).__init__(**kwargs)
        if not self.invite_code:
            self.invite_code = generate_invite_code()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'invite_code': self.invite_code,
            'creator_id': self.creator_id,
            'member_count': len(self.memberships),
        }


class LeagueMembership(db.Model):
    __tablename__ = 'league_membership'
    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey('league.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    joined_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    __table_args__ = (db.UniqueConstraint('league_id', 'user_id', name='uix_league_member'),)
