"""Meeting model."""
import enum
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from opian.database import Base, new_id, utcnow
from opian.utils.formatters import iso


class MeetingStatus(enum.Enum):
    """Meeting status enum."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Meeting(Base):
    """Meeting with a client. duration is in minutes."""

    __tablename__ = 'meeting'

    id = Column(String(36), primary_key=True, default=new_id)
    client_id = Column(String(36), ForeignKey('client.id'), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    scheduled_at = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False, default=60)
    location = Column(Text, nullable=True)
    agenda = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=MeetingStatus.SCHEDULED.value)
    created_by = Column(String(36), ForeignKey('app_user.id'), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    client = relationship('Client')

    def to_dict(self):
        return {
            'id': self.id,
            'clientId': self.client_id,
            'title': self.title,
            'description': self.description,
            'scheduledAt': iso(self.scheduled_at),
            'duration': self.duration,
            'location': self.location,
            'agenda': self.agenda,
            'notes': self.notes,
            'status': self.status,
            'createdBy': self.created_by,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Meeting(id={self.id}, title='{self.title}', scheduled_at={self.scheduled_at})>"
