"""Clients blueprint - owner-scoped client management."""
from flask import Blueprint, jsonify, request, g

from opian.database import get_session
from opian.middleware import require_login
from opian.services import client_service
from opian.services.dashboard_service import invalidate_dashboard
from opian.utils.http import get_json_body

clients_bp = Blueprint('clients', __name__, url_prefix='/api/clients')


@clients_bp.route('', methods=['GET'])
@require_login
def list_clients():
    """List clients, optionally filtered by ?search= (name, company, email)."""
    search = request.args.get('search') or request.args.get('q')
    clients = client_service.list_clients(get_session(), g.user, search)
    return jsonify([c.to_dict() for c in clients])


@clients_bp.route('', methods=['POST'])
@require_login
def create_client():
    client = client_service.create_client(get_session(), g.user, get_json_body())
    invalidate_dashboard(client.created_by)
    return jsonify(client.to_dict()), 201


@clients_bp.route('/<client_id>', methods=['GET'])
@require_login
def get_client(client_id):
    client = client_service.get_client(get_session(), g.user, client_id)
    return jsonify(client.to_dict())


@clients_bp.route('/<client_id>', methods=['PUT', 'PATCH'])
@require_login
def update_client(client_id):
    client = client_service.update_client(get_session(), g.user, client_id, get_json_body())
    return jsonify(client.to_dict())


@clients_bp.route('/<client_id>', methods=['DELETE'])
@require_login
def delete_client(client_id):
    session = get_session()
    owner_id = client_service.get_client(session, g.user, client_id).created_by
    client_service.delete_client(session, g.user, client_id)
    invalidate_dashboard(owner_id)
    return '', 204
