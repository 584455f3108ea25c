"""Document model - metadata for files kept in object storage."""
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from opian.database import Base, new_id, utcnow
from opian.utils.formatters import iso


class Document(Base):
    """
    Uploaded client document.

    The file body lives in object storage under `path`; this row only keeps
    the metadata needed to list and download it.
    """

    __tablename__ = 'document'

    id = Column(String(36), primary_key=True, default=new_id)
    client_id = Column(String(36), ForeignKey('client.id'), nullable=False, index=True)
    filename = Column(Text, nullable=False)
    original_name = Column(Text, nullable=False)
    mime_type = Column(String(255), nullable=False)
    size = Column(Integer, nullable=False)
    path = Column(Text, nullable=False)
    uploaded_by = Column(String(36), ForeignKey('app_user.id'), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    client = relationship('Client')

    def to_dict(self):
        return {
            'id': self.id,
            'clientId': self.client_id,
            'filename': self.filename,
            'originalName': self.original_name,
            'mimeType': self.mime_type,
            'size': self.size,
            'uploadedBy': self.uploaded_by,
            'createdAt': iso(self.created_at),
        }

    def __repr__(self):
        return f"<Document(id={self.id}, name='{self.original_name}', size={self.size})>"
