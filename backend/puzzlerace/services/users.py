from flask import current_app

from puzzlerace import db
from puzzlerace.errors import Conflict, ValidationError
from puzzlerace.models import User, UserStats
from puzzlerace.storage import transaction


def register_user(username):
    """Create a user and its stats row. Credentials live with the identity provider."""
    username = (username or '').strip()
    if not username or len(username) > 64:
        raise ValidationError('username must be 1-64 characters', field='username')
    with transaction():
        if User.query.filter_by(username=username).first():
            raise Conflict('Username already exists', username=username)
        user = User(username=username)
        user.stats = UserStats(coins=current_app.config.get('STARTING_COINS', 500))
        db.session.add(user)
    current_app.logger.info(f"[user-create] user={user.id} username={username}")
    return user
