"""
Authentication service for user management.

Handles registration, credential checks and session user lookup.
"""
import logging
import re
from typing import Dict, Any, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opian.exceptions import BusinessLogicError, AuthenticationError, NotFoundError
from opian.models import AppUser, UserRole
from opian.utils.number_format import parse_text

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
MIN_PASSWORD_LENGTH = 6


def is_valid_email(email: str) -> bool:
    """Validate email format."""
    return EMAIL_PATTERN.match(email) is not None


def find_user_by_email(session: Session, email: str) -> Optional[AppUser]:
    """Case-insensitive lookup by email."""
    return session.query(AppUser).filter(
        func.lower(AppUser.email) == email.strip().lower()
    ).first()


def _read_registration(data: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Pull the registration fields out of a JSON body as text."""
    try:
        return {
            'email': parse_text(data.get('email'), 'email'),
            'password': parse_text(data.get('password'), 'password', strip=False),
            'first_name': parse_text(data.get('firstName'), 'firstName'),
            'last_name': parse_text(data.get('lastName'), 'lastName'),
        }
    except ValueError as e:
        raise BusinessLogicError(str(e))


def _validate_registration(fields: Dict[str, Optional[str]]) -> List[str]:
    """Validate registration fields and return list of errors."""
    errors = []
    if not all(fields.values()):
        return ['All fields are required']

    if not is_valid_email(fields['email']):
        errors.append('Invalid email address')
    if len(fields['password']) < MIN_PASSWORD_LENGTH:
        errors.append(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    return errors


def create_user(
    session: Session,
    email: str,
    password: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    role: str = UserRole.CONSULTANT.value,
) -> AppUser:
    """
    Create a user with a hashed password.

    Raises:
        BusinessLogicError: if the email is taken or the role is unknown.
    """
    if role not in [r.value for r in UserRole]:
        raise BusinessLogicError(f'Invalid role: {role}')

    email = email.strip()
    if find_user_by_email(session, email):
        raise BusinessLogicError('User already exists')

    user = AppUser(email=email, first_name=first_name, last_name=last_name, role=role)
    user.set_password(password)
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Same email registered concurrently
        session.rollback()
        raise BusinessLogicError('User already exists')

    logger.info(f"[AUTH] Created {role} user {email} ({user.id})")
    return user


def register_user(session: Session, data: Dict[str, Any]) -> AppUser:
    """Self-registration: always creates a consultant."""
    fields = _read_registration(data)
    errors = _validate_registration(fields)
    if errors:
        raise BusinessLogicError(", ".join(errors))

    return create_user(session, **fields)


def authenticate(session: Session, email: str, password: str) -> AppUser:
    """
    Check credentials.

    Raises:
        BusinessLogicError: if email or password is missing.
        AuthenticationError: if the credentials do not match.
    """
    if not email or not password:
        raise BusinessLogicError('Email and password are required')

    user = find_user_by_email(session, email)
    if not user or not user.check_password(password):
        logger.warning(f"[AUTH] Failed login for {email}")
        raise AuthenticationError('Invalid credentials')

    return user


def get_user(session: Session, user_id: str) -> Optional[AppUser]:
    """Load a user by id, None when it no longer exists."""
    return session.query(AppUser).filter_by(id=user_id).first()


def list_users(session: Session) -> List[AppUser]:
    return session.query(AppUser).order_by(AppUser.created_at.asc()).all()


def set_user_role(session: Session, acting_user, user_id: str, role: str) -> AppUser:
    """
    Change a user's role.

    Raises:
        NotFoundError: unknown user.
        BusinessLogicError: unknown role, or an admin demoting themselves.
    """
    if role not in [r.value for r in UserRole]:
        raise BusinessLogicError(f'Invalid role: {role}')

    user = get_user(session, user_id)
    if user is None:
        raise NotFoundError('User not found')
    if user.id == acting_user.id and role != UserRole.ADMIN.value:
        raise BusinessLogicError('You cannot remove your own admin role')

    user.role = role
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[AUTH] User {user.id} role set to {role} by {acting_user.id}")
    return user
