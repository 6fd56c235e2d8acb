import os
import sys
from datetime import datetime
import pytest
from flask import g, request_started

# Ensure the backend root (containing the `bingo` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from bingo import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    CONTROLLER_LEASE_TIMEOUT_SEC = 30
    CONTROLLER_HEARTBEAT_SEC = 10
    DEFAULT_CALL_DELAY_SEC = 3
    CONTROLLER_DEBOUNCE_MS = 0
    NUMBER_SEQUENCE_SEED = None


T0 = datetime(2026, 1, 1, 19, 0, 0)


def forget_current_user():
    """Make Flask-Login reload the caller from the session cookie on next use."""
    g.pop('_login_user', None)


def _forget_cached_user(sender, **extra):
    forget_current_user()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    # Every request reuses the fixture's app context, so drop the cached login
    request_started.connect(_forget_cached_user, application)
    with application.app_context():
        # Ensure models are imported so tables are created
        import bingo.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
    request_started.disconnect(_forget_cached_user, application)


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


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
def users(flask_app):
    from bingo.models import User
    created = {}
    for username, role in [('admin', 'admin'), ('alice', 'host'), ('bob', 'host'), ('viewer', None)]:
        user = User(username=username, role=role)
        user.set_password('password')
        db.session.add(user)
        created[username] = user
    db.session.commit()
    return created


@pytest.fixture()
def pot(flask_app):
    from bingo.models import SnowballPot
    snowball = SnowballPot(
        name='Main Snowball',
        base_max_calls=48,
        base_jackpot_amount=200,
        calls_increment=2,
        jackpot_increment=20,
    )
    db.session.add(snowball)
    db.session.commit()
    return snowball


@pytest.fixture()
def make_game(flask_app):
    """Build a game in its own session; returns the game id."""
    from bingo.models import BingoSession, Game

    def _make(game_type='standard', pot=None, is_test_session=False, stage_sequence=None, prizes=None):
        session = BingoSession(name='Friday Night', status='ready', is_test_session=is_test_session)
        db.session.add(session)
        db.session.flush()
        game = Game(
            session_id=session.id,
            game_index=1,
            name=f'{game_type} game',
            type=game_type,
            snowball_pot_id=pot.id if pot is not None else None,
            stage_sequence=stage_sequence,
            prizes=prizes,
        )
        db.session.add(game)
        db.session.commit()
        return game.id

    return _make


@pytest.fixture()
def game_id(make_game):
    return make_game()


@pytest.fixture()
def started_game(game_id, users):
    """A standard game started by alice at T0."""
    from bingo.services.games import stages
    result = stages.start_game(game_id, users['alice'], now=T0)
    assert result.success, result
    return game_id


def login(client, username, password='password'):
    res = client.post('/login', json={'username': username, 'password': password})
    assert res.status_code == 200, res.get_json()
    return res.get_json()['user']
