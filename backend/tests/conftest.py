import os
import sys
from types import SimpleNamespace

import pytest

# Ensure the backend root (containing the `puzzlerace` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from puzzlerace import create_app, db


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = []
    MIN_PLAYERS = 2
    ROOM_CODE_MAX_ATTEMPTS = 10
    STARTING_COINS = 500
    RECENT_GAMES_KEPT = 10
    LEADERBOARD_SCORE_THRESHOLD = 1000
    LEADERBOARD_PAGE_LIMIT = 50
    HISTORY_PAGE_LIMIT = 20
    MAX_PAGE_LIMIT = 100


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import puzzlerace.models  # noqa: F401
        db.create_all()
    # No context stays pushed: every test-client request gets its own,
    # so the logged-in user is resolved per request
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    """For tests that call services directly."""
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_user(flask_app):
    from puzzlerace.services.users import register_user

    def _make(username):
        with flask_app.app_context():
            return register_user(username).id
    return _make


@pytest.fixture()
def seeded(flask_app):
    from puzzlerace.services.achievements import seed_achievements
    with flask_app.app_context():
        seed_achievements()
    return flask_app


@pytest.fixture()
def stats_for(flask_app):
    """Fresh read of a user's stats row, or None when it is missing."""
    from puzzlerace.models import UserStats

    def _read(user_id):
        with flask_app.app_context():
            row = UserStats.query.filter_by(user_id=user_id).first()
            return SimpleNamespace(**row.to_dict()) if row else None
    return _read


def auth(user_id):
    return {'X-User-Id': str(user_id)}
