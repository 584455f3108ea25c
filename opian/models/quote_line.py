"""QuoteLine model for quote line items."""
from sqlalchemy import Column, String, Integer, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from opian.database import Base, new_id
from opian.utils.formatters import money, quantity


class QuoteLine(Base):
    """Quote line item. amount is always quantity * rate."""

    __tablename__ = 'quote_line'

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey('quote.id'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    rate = Column(Numeric(12, 2), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)

    # Relationships
    quote = relationship('Quote', back_populates='lines')

    def to_dict(self):
        return {
            'description': self.description,
            'quantity': quantity(self.quantity),
            'rate': money(self.rate),
            'amount': money(self.amount),
        }

    def __repr__(self):
        return f"<QuoteLine(id={self.id}, quote_id={self.quote_id}, qty={self.quantity}, amount={self.amount})>"
