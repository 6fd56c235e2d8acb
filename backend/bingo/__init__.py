from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
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

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from bingo.main import main
    flask_app.register_blueprint(main)

    from bingo.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from bingo.api.pots import pots
    flask_app.register_blueprint(pots, url_prefix='/api/pots')

    # Importing here binds the handlers to the initialized socketio instance
    from bingo.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from bingo.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from bingo.models import BingoSession, Game, SnowballPot
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            for username, role in [('admin', 'admin'), ('host1', 'host'), ('host2', 'host')]:
                user = User(username=username, role=role)
                user.set_password('password')
                db.session.add(user)

            pot = SnowballPot(
                name='Main Snowball',
                base_max_calls=48,
                base_jackpot_amount=200,
                calls_increment=2,
                jackpot_increment=20,
            )
            db.session.add(pot)
            session = BingoSession(name='Friday Night Bingo', status='ready')
            db.session.add(session)
            db.session.flush()

            db.session.add(Game(session_id=session.id, game_index=1, name='Game 1', type='standard'))
            db.session.add(Game(session_id=session.id, game_index=2, name='Snowball', type='snowball',
                                snowball_pot_id=pot.id))
            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
