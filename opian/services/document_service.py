"""Document service: client documents kept in object storage."""
import logging
import os
import uuid
from typing import List, Tuple

from sqlalchemy.orm import Session
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from opian.exceptions import BusinessLogicError, NotFoundError
from opian.models import Document
from opian.services import storage_service
from opian.services.client_service import get_client

logger = logging.getLogger(__name__)


def build_object_name(client_id: str, original_name: str) -> str:
    """Storage key for a new upload: documents/<client_id>/<uuid><ext>."""
    _, ext = os.path.splitext(secure_filename(original_name) or '')
    return f"documents/{client_id}/{uuid.uuid4().hex}{ext.lower()}"


def list_documents(session: Session, user, client_id: str) -> List[Document]:
    """Documents of a client the user may access, newest first."""
    client = get_client(session, user, client_id)
    return session.query(Document).filter(
        Document.client_id == client.id
    ).order_by(Document.created_at.desc()).all()


def upload_document(session: Session, user, client_id: str, file: FileStorage) -> Document:
    """
    Store an uploaded file and record its metadata.

    The object is written first; if the row cannot be committed the object
    is removed again so storage never keeps files without a row.

    Raises:
        BusinessLogicError: missing or invalid file.
    """
    client = get_client(session, user, client_id)
    if file is None or not file.filename:
        raise BusinessLogicError('No file uploaded')

    storage = storage_service.get_storage_service()
    object_name = build_object_name(client.id, file.filename)
    content_type = storage_service.content_type_for(file)

    try:
        size = storage.upload_file(file, object_name, content_type)
    except ValueError as e:
        raise BusinessLogicError(str(e))

    document = Document(
        client_id=client.id,
        filename=os.path.basename(object_name),
        original_name=file.filename,
        mime_type=content_type,
        size=size,
        path=object_name,
        uploaded_by=user.id,
    )
    session.add(document)
    try:
        session.commit()
    except Exception:
        session.rollback()
        storage.delete_file(object_name)
        raise

    logger.info(f"[DOCUMENTS] Uploaded '{document.original_name}' for client {client.id} ({size} bytes)")
    return document


def get_document(session: Session, user, document_id: str, client_id: str = None) -> Document:
    """
    Fetch a document whose client the user may access.

    Raises:
        NotFoundError: unknown id, or the document belongs to another client.
        UnauthorizedError: the client is owned by another consultant.
    """
    document = session.query(Document).filter(Document.id == document_id).first()
    if not document or (client_id is not None and document.client_id != client_id):
        raise NotFoundError('Document not found')
    get_client(session, user, document.client_id)
    return document


def read_document(session: Session, user, client_id: str, document_id: str) -> Tuple[Document, bytes]:
    """Document metadata plus its file body."""
    document = get_document(session, user, document_id, client_id)
    data = storage_service.get_storage_service().download_file(document.path)
    return document, data


def delete_document(session: Session, user, document_id: str) -> None:
    """Delete the row, then the stored object."""
    document = get_document(session, user, document_id)
    path = document.path
    try:
        session.delete(document)
        session.commit()
    except Exception:
        session.rollback()
        raise

    if not storage_service.get_storage_service().delete_file(path):
        logger.warning(f"[DOCUMENTS] Row {document_id} deleted but object '{path}' remains in storage")
    logger.info(f"[DOCUMENTS] Deleted document {document_id}")
