"""Middleware for session authentication."""
from functools import wraps
from flask import session, g, current_app

from opian.database import get_session
from opian.exceptions import AuthenticationError
from opian.services.auth_service import get_user


def load_current_user():
    """
    Load the session's user into g (Flask's per-request global).

    Called before each request. Sets g.user when the session carries a
    user_id that still exists; a session pointing at a deleted user is
    cleared so the client has to log in again.
    """
    g.user = None

    user_id = session.get('user_id')
    if not user_id:
        return

    user = get_user(get_session(), user_id)
    if user is None:
        current_app.logger.info(f"Session for missing user {user_id} cleared")
        session.clear()
        return

    g.user = user


def login_user(user):
    """Start a fresh permanent session for user."""
    session.clear()
    session['user_id'] = user.id
    session.permanent = True
    g.user = user


def logout_user():
    session.clear()
    g.user = None


def require_login(f):
    """
    Decorator: Require user to be logged in.

    Answers 401 JSON (through the AuthenticationError handler) when the
    request has no valid session.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise AuthenticationError()
        return f(*args, **kwargs)
    return decorated_function
