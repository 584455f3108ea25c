"""Client service: owner-scoped CRUD and search."""
import logging
from typing import Dict, Any, List, Optional

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from opian.decorators.permissions import ensure_can_access, scope_to_owner
from opian.exceptions import BusinessLogicError, NotFoundError
from opian.models import Client, ClientStatus, Quote, Meeting, Document
from opian.utils.number_format import parse_text

logger = logging.getLogger(__name__)

CLIENT_STATUSES = [s.value for s in ClientStatus]
OPTIONAL_FIELDS = ('company', 'email', 'phone', 'address', 'notes')


def _get_client_data(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Extract and sanitize client fields from a JSON body."""
    values = {}

    try:
        if not partial or 'name' in data:
            name = parse_text(data.get('name'), 'name')
            if not name:
                raise BusinessLogicError('Client name is required')
            values['name'] = name

        for field in OPTIONAL_FIELDS:
            if not partial or field in data:
                values[field] = parse_text(data.get(field), field)

        if 'status' in data:
            status = (parse_text(data.get('status'), 'status') or '').lower()
            if status not in CLIENT_STATUSES:
                raise BusinessLogicError(f"Invalid status. Allowed: {', '.join(CLIENT_STATUSES)}")
            values['status'] = status
    except ValueError as e:
        raise BusinessLogicError(str(e))

    return values


def list_clients(session: Session, user, search: Optional[str] = None) -> List[Client]:
    """Clients visible to the user, newest first, optionally filtered."""
    query = scope_to_owner(session.query(Client), Client.created_by, user)

    if search and search.strip():
        term = f'%{search.strip().lower()}%'
        query = query.filter(or_(
            func.lower(Client.name).like(term),
            func.lower(Client.company).like(term),
            func.lower(Client.email).like(term),
        ))

    return query.order_by(Client.created_at.desc()).all()


def get_client(session: Session, user, client_id: str) -> Client:
    """
    Fetch a client the user may access.

    Raises:
        NotFoundError: unknown id.
        UnauthorizedError: owned by another consultant.
    """
    client = session.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError('Client not found')
    ensure_can_access(user, client.created_by, 'client')
    return client


def create_client(session: Session, user, data: Dict[str, Any]) -> Client:
    values = _get_client_data(data)
    client = Client(created_by=user.id, **values)
    session.add(client)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[CLIENTS] Created client {client.id} '{client.name}'")
    return client


def update_client(session: Session, user, client_id: str, data: Dict[str, Any]) -> Client:
    client = get_client(session, user, client_id)
    values = _get_client_data(data, partial=True)
    try:
        for key, value in values.items():
            setattr(client, key, value)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return client


def delete_client(session: Session, user, client_id: str) -> None:
    """
    Delete a client.

    Raises:
        BusinessLogicError: if quotes, meetings or documents still reference it.
    """
    client = get_client(session, user, client_id)

    for model, label in ((Quote, 'quotes'), (Meeting, 'meetings'), (Document, 'documents')):
        in_use = session.query(func.count(model.id)).filter(model.client_id == client.id).scalar()
        if in_use:
            raise BusinessLogicError(f'Client has {in_use} {label}; delete them first')

    try:
        session.delete(client)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[CLIENTS] Deleted client {client_id}")
