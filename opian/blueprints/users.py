"""
User management blueprint.
Admins list accounts, create consultants or admins, and change roles.
"""

from flask import Blueprint, jsonify, g

from opian.database import get_session
from opian.decorators.permissions import require_role
from opian.exceptions import BusinessLogicError
from opian.middleware import require_login
from opian.models import UserRole
from opian.services import auth_service
from opian.utils.http import get_json_body
from opian.utils.number_format import parse_text

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


@users_bp.route('', methods=['GET'])
@require_login
@require_role(UserRole.ADMIN.value)
def list_users():
    users = auth_service.list_users(get_session())
    return jsonify([u.to_dict() for u in users])


@users_bp.route('', methods=['POST'])
@require_login
@require_role(UserRole.ADMIN.value)
def create_user():
    """Create an account without logging it in. role defaults to consultant."""
    data = get_json_body()
    try:
        email = parse_text(data.get('email'), 'email') or ''
        password = parse_text(data.get('password'), 'password', strip=False) or ''
        first_name = parse_text(data.get('firstName'), 'firstName')
        last_name = parse_text(data.get('lastName'), 'lastName')
    except ValueError as e:
        raise BusinessLogicError(str(e))

    if not auth_service.is_valid_email(email):
        raise BusinessLogicError('Invalid email address')
    if len(password) < auth_service.MIN_PASSWORD_LENGTH:
        raise BusinessLogicError(f'Password must be at least {auth_service.MIN_PASSWORD_LENGTH} characters')

    user = auth_service.create_user(
        get_session(),
        email,
        password,
        first_name,
        last_name,
        data.get('role') or UserRole.CONSULTANT.value,
    )
    return jsonify(user.to_dict()), 201


@users_bp.route('/<user_id>/role', methods=['PUT', 'PATCH'])
@require_login
@require_role(UserRole.ADMIN.value)
def update_role(user_id):
    data = get_json_body()
    user = auth_service.set_user_role(get_session(), g.user, user_id, data.get('role'))
    return jsonify(user.to_dict())
