"""
Permission helpers for role-based and row-level access control.

Two roles exist: admins see and change every row, consultants only the rows
they created. The row owner column differs per table (created_by,
uploaded_by), so callers pass it explicitly.
"""

from functools import wraps
from flask import g

from opian.exceptions import AuthenticationError, UnauthorizedError


def require_role(*allowed_roles):
    """
    Decorator to restrict access to specific roles.

    Usage:
        @require_role('admin')

    Must be used AFTER require_login.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = g.get('user')
            if user is None:
                raise AuthenticationError()
            if user.role not in allowed_roles:
                raise UnauthorizedError('You do not have permission to perform this action')
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def can_access(user, owner_id) -> bool:
    """True when user is an admin or owns the row."""
    return user is not None and (user.is_admin or user.id == owner_id)


def ensure_can_access(user, owner_id, resource='resource'):
    """
    Raise UnauthorizedError unless user may read or change the row.

    Args:
        user: Current AppUser
        owner_id: Value of the row's owner column
        resource: Name used in the error message
    """
    if not can_access(user, owner_id):
        raise UnauthorizedError(f'You do not have access to this {resource}')


def scope_to_owner(query, owner_column, user):
    """Restrict a query to the user's own rows unless the user is an admin."""
    if user.is_admin:
        return query
    return query.filter(owner_column == user.id)
