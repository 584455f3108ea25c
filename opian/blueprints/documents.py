"""Documents blueprint - upload, list, download and delete client files."""
from io import BytesIO

from flask import Blueprint, jsonify, request, g, send_file

from opian.database import get_session
from opian.middleware import require_login
from opian.services import document_service

documents_bp = Blueprint('documents', __name__, url_prefix='/api/documents')


@documents_bp.route('/<client_id>', methods=['GET'])
@require_login
def list_documents(client_id):
    documents = document_service.list_documents(get_session(), g.user, client_id)
    return jsonify([d.to_dict() for d in documents])


@documents_bp.route('/<client_id>/upload', methods=['POST'])
@require_login
def upload_document(client_id):
    """Multipart upload, file field name 'file'."""
    document = document_service.upload_document(
        get_session(), g.user, client_id, request.files.get('file')
    )
    return jsonify(document.to_dict()), 201


@documents_bp.route('/<client_id>/<document_id>/download', methods=['GET'])
@require_login
def download_document(client_id, document_id):
    document, data = document_service.read_document(get_session(), g.user, client_id, document_id)
    return send_file(
        BytesIO(data),
        mimetype=document.mime_type,
        as_attachment=True,
        download_name=document.original_name
    )


@documents_bp.route('/<document_id>', methods=['DELETE'])
@require_login
def delete_document(document_id):
    document_service.delete_document(get_session(), g.user, document_id)
    return '', 204
