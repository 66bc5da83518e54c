import logging

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
cors = CORS()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    cors.init_app(flask_app, supports_credentials=True, origins=flask_app.config.get('CORS_ORIGINS', []))

    # Import and register blueprints here
    from puzzlerace.main import main
    flask_app.register_blueprint(main)

    from puzzlerace.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/multiplayer')

    from puzzlerace.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from puzzlerace.api.achievements import achievements
    flask_app.register_blueprint(achievements, url_prefix='/api/achievements')

    from puzzlerace.api.users import users
    flask_app.register_blueprint(users, url_prefix='/api/users')

    from puzzlerace.errors import PuzzleRaceError

    @flask_app.errorhandler(PuzzleRaceError)
    def handle_domain_error(exc):
        if exc.status_code >= 500:
            flask_app.logger.error(f"[error] code={exc.code} message={exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    # Caller identity is verified upstream; the gateway forwards the user id
    from puzzlerace.models import User

    @login_manager.request_loader
    def load_user_from_request(req):
        raw = req.headers.get('X-User-Id')
        try:
            user_id = int(raw)
        except (TypeError, ValueError):
            return None
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required', 'code': 'UNAUTHORIZED'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from puzzlerace.services.users import register_user
        from puzzlerace.services.achievements import seed_achievements
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            for username in ['testuser1', 'testuser2', 'testuser3']:
                register_user(username)
            seed_achievements()
            print('Database has been reset and seeded!')

    @click.command('seed-achievements')
    def seed_achievements_command():
        """Inserts or refreshes the achievement catalog."""
        from puzzlerace.services.achievements import seed_achievements
        with flask_app.app_context():
            count = seed_achievements()
            print(f'{count} achievements seeded.')

    @click.command('users-add')
    @click.argument('username')
    def users_add_command(username):
        """Creates a user together with its stats row."""
        from puzzlerace.services.users import register_user
        with flask_app.app_context():
            user = register_user(username)
            print(f'Created user {user.username} with id {user.id}')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(seed_achievements_command)
    flask_app.cli.add_command(users_add_command)

    return flask_app
