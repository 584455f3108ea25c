"""Models package - exports all SQLAlchemy models."""
from opian.models.app_user import AppUser, UserRole
from opian.models.client import Client, ClientStatus
from opian.models.quote import Quote, QuoteStatus
from opian.models.quote_line import QuoteLine
from opian.models.meeting import Meeting, MeetingStatus
from opian.models.document import Document

__all__ = [
    'AppUser', 'UserRole',
    'Client', 'ClientStatus',
    'Quote', 'QuoteStatus', 'QuoteLine',
    'Meeting', 'MeetingStatus',
    'Document',
]
