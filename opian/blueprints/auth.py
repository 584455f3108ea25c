"""
Authentication blueprint.
Handles user registration, login, logout and the current-user endpoint.
"""

import logging
from flask import Blueprint, jsonify, g
from flask_wtf.csrf import generate_csrf

from opian.database import get_session
from opian.exceptions import BusinessLogicError
from opian.middleware import require_login, login_user, logout_user
from opian.services.auth_service import register_user, authenticate
from opian.utils.http import get_json_body
from opian.utils.number_format import parse_text

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create a consultant account and log it in."""
    data = get_json_body()
    user = register_user(get_session(), data)
    login_user(user)
    return jsonify(user.to_dict()), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Validate email + password and start a session."""
    data = get_json_body()
    try:
        email = parse_text(data.get('email'), 'email')
        password = parse_text(data.get('password'), 'password', strip=False)
    except ValueError as e:
        raise BusinessLogicError(str(e))

    user = authenticate(get_session(), email, password)
    login_user(user)
    logger.info(f"[AUTH] User {user.id} logged in")
    return jsonify(user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Clear the session."""
    logout_user()
    return jsonify({'message': 'Logged out successfully'})


@auth_bp.route('/user', methods=['GET'])
@require_login
def current_user():
    """The logged-in user."""
    return jsonify(g.user.to_dict())


@auth_bp.route('/csrf', methods=['GET'])
def csrf_token():
    """CSRF token to send back in the X-CSRFToken header."""
    return jsonify({'csrfToken': generate_csrf()})
