"""Quote model."""
import enum
from sqlalchemy import Column, String, Numeric, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from opian.database import Base, new_id, utcnow
from opian.utils.formatters import iso, money


class QuoteStatus(enum.Enum):
    """Quote status enum."""
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Quote(Base):
    """
    Quote issued to a client.

    quote_number is the human-facing identifier ("Q2025-001") and is unique
    across all quotes ever created; it is assigned once at creation time by
    the quote number service and never changes afterwards.
    """

    __tablename__ = 'quote'

    id = Column(String(36), primary_key=True, default=new_id)
    client_id = Column(String(36), ForeignKey('client.id'), nullable=False, index=True)
    quote_number = Column(String(64), nullable=False, unique=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=QuoteStatus.DRAFT.value)
    valid_until = Column(DateTime, nullable=True)
    created_by = Column(String(36), ForeignKey('app_user.id'), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    client = relationship('Client')
    lines = relationship(
        'QuoteLine',
        back_populates='quote',
        cascade='all, delete-orphan',
        order_by='QuoteLine.position',
    )

    def to_dict(self):
        return {
            'id': self.id,
            'clientId': self.client_id,
            'quoteNumber': self.quote_number,
            'title': self.title,
            'description': self.description,
            'items': [line.to_dict() for line in self.lines],
            'subtotal': money(self.subtotal),
            'tax': money(self.tax),
            'total': money(self.total),
            'status': self.status,
            'validUntil': iso(self.valid_until),
            'createdBy': self.created_by,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Quote(id={self.id}, number='{self.quote_number}', status='{self.status}', total={self.total})>"
