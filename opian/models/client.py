"""Client model."""
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from opian.database import Base, new_id, utcnow
from opian.utils.formatters import iso


class ClientStatus(enum.Enum):
    """Client status enum."""
    ACTIVE = "active"
    PROSPECT = "prospect"
    INACTIVE = "inactive"


class Client(Base):
    """Client of a consultant. Quotes, meetings and documents hang off it."""

    __tablename__ = 'client'

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    company = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ClientStatus.ACTIVE.value)
    created_by = Column(String(36), ForeignKey('app_user.id'), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    owner = relationship('AppUser', foreign_keys=[created_by])

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'company': self.company,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'notes': self.notes,
            'status': self.status,
            'createdBy': self.created_by,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.name}', status='{self.status}')>"
