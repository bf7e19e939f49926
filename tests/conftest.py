import os
import sys
from datetime import timedelta

import pytest
from flask import g, request_started

# Ensure the project root (containing the `scoreline` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from scoreline import create_app, db
from scoreline.models import (
    Fixture, Round, User, ROLE_ADMIN, ROLE_PLAYER, STATUS_OPEN, utcnow,
)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DEFAULT_JOKER_LIMIT = 1
    RANDOM_MAX_GOALS = 4
    STANDINGS_CACHE_ENABLED = True
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = []


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)

    # Requests reuse the fixture's app context (and its `g`); drop Flask-Login's
    # cached user so each test client is authenticated only by its own session.
    def _reset_login_user(sender, **extra):
        g.pop('_login_user', None)

    request_started.connect(_reset_login_user, application)
    with application.app_context():
        # Ensure models are imported so tables are created
        import scoreline.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def session(flask_app):
    return db.session


@pytest.fixture()
def make_user(session):
    def _make(name, role=ROLE_PLAYER, team_name=None, password='password'):
        user = User(name=name, role=role, team_name=team_name)
        user.set_password(password)
        session.add(user)
        session.commit()
        return user
    return _make


@pytest.fixture()
def make_round(session):
    def _make(name='Round 1', status=STATUS_OPEN, joker_limit=1, deadline=None):
        rnd = Round(
            name=name,
            status=status,
            joker_limit=joker_limit,
            deadline=deadline or utcnow() + timedelta(days=1),
        )
        session.add(rnd)
        session.commit()
        return rnd
    return _make


@pytest.fixture()
def make_fixture(session):
    def _make(rnd, home_team='Home', away_team='Away', home_score=None, away_score=None):
        fixture = Fixture(
            round_id=rnd.id,
            home_team=home_team,
            away_team=away_team,
            match_time=rnd.deadline + timedelta(hours=2),
            home_score=home_score,
            away_score=away_score,
        )
        session.add(fixture)
        session.commit()
        return fixture
    return _make


def _logged_in_client(flask_app, name):
    test_client = flask_app.test_client()
    res = test_client.post('/login', json={'name': name, 'password': 'password'})
    assert res.status_code == 200
    return test_client


@pytest.fixture()
def admin_client(flask_app, make_user):
    make_user('admin', role=ROLE_ADMIN)
    return _logged_in_client(flask_app, 'admin')


@pytest.fixture()
def login(flask_app):
    def _login(name):
        return _logged_in_client(flask_app, name)
    return _login
