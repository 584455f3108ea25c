"""Meeting service: owner-scoped CRUD."""
import logging
from typing import Dict, Any, List

from sqlalchemy.orm import Session

from opian.decorators.permissions import ensure_can_access, scope_to_owner
from opian.exceptions import BusinessLogicError, NotFoundError
from opian.models import Meeting, MeetingStatus, Client
from opian.utils.number_format import parse_datetime, parse_positive_int, parse_text

logger = logging.getLogger(__name__)

MEETING_STATUSES = [s.value for s in MeetingStatus]
TEXT_FIELDS = ('description', 'location', 'agenda', 'notes')


def _get_meeting_data(session: Session, user, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate a JSON body into Meeting column values."""
    values = {}

    if not partial or 'clientId' in data:
        client_id = data.get('clientId')
        client = session.query(Client).filter(Client.id == str(client_id)).first() if client_id else None
        if not client or not (user.is_admin or client.created_by == user.id):
            raise BusinessLogicError('Client not found')
        values['client_id'] = client.id

    if not partial or 'title' in data:
        try:
            title = parse_text(data.get('title'), 'title')
        except ValueError as e:
            raise BusinessLogicError(str(e))
        if not title:
            raise BusinessLogicError('Title is required')
        values['title'] = title

    if not partial or 'scheduledAt' in data:
        try:
            scheduled_at = parse_datetime(data.get('scheduledAt'), 'scheduledAt')
        except ValueError as e:
            raise BusinessLogicError(str(e))
        if scheduled_at is None:
            raise BusinessLogicError('scheduledAt is required')
        values['scheduled_at'] = scheduled_at

    if data.get('duration') is not None:
        try:
            values['duration'] = parse_positive_int(data['duration'], 'duration')
        except ValueError as e:
            raise BusinessLogicError(str(e))

    try:
        for field in TEXT_FIELDS:
            if not partial or field in data:
                values[field] = parse_text(data.get(field), field)
        status = parse_text(data.get('status'), 'status') if 'status' in data else None
    except ValueError as e:
        raise BusinessLogicError(str(e))

    if 'status' in data:
        status = (status or '').lower()
        if status not in MEETING_STATUSES:
            raise BusinessLogicError(f"Invalid status. Allowed: {', '.join(MEETING_STATUSES)}")
        values['status'] = status

    return values


def list_meetings(session: Session, user) -> List[Meeting]:
    """Meetings visible to the user, latest scheduled first."""
    query = scope_to_owner(session.query(Meeting), Meeting.created_by, user)
    return query.order_by(Meeting.scheduled_at.desc()).all()


def get_meeting(session: Session, user, meeting_id: str) -> Meeting:
    meeting = session.query(Meeting).filter(Meeting.id == meeting_id).first()
    if not meeting:
        raise NotFoundError('Meeting not found')
    ensure_can_access(user, meeting.created_by, 'meeting')
    return meeting


def create_meeting(session: Session, user, data: Dict[str, Any]) -> Meeting:
    values = _get_meeting_data(session, user, data)
    meeting = Meeting(created_by=user.id, **values)
    session.add(meeting)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[MEETINGS] Created meeting {meeting.id} at {meeting.scheduled_at}")
    return meeting


def update_meeting(session: Session, user, meeting_id: str, data: Dict[str, Any]) -> Meeting:
    meeting = get_meeting(session, user, meeting_id)
    values = _get_meeting_data(session, user, data, partial=True)
    try:
        for key, value in values.items():
            setattr(meeting, key, value)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return meeting


def delete_meeting(session: Session, user, meeting_id: str) -> None:
    meeting = get_meeting(session, user, meeting_id)
    try:
        session.delete(meeting)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[MEETINGS] Deleted meeting {meeting_id}")
