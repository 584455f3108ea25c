"""Meetings blueprint."""
from flask import Blueprint, jsonify, g

from opian.database import get_session
from opian.middleware import require_login
from opian.services import meeting_service
from opian.services.dashboard_service import invalidate_dashboard
from opian.utils.http import get_json_body

meetings_bp = Blueprint('meetings', __name__, url_prefix='/api/meetings')


@meetings_bp.route('', methods=['GET'])
@require_login
def list_meetings():
    meetings = meeting_service.list_meetings(get_session(), g.user)
    return jsonify([m.to_dict() for m in meetings])


@meetings_bp.route('', methods=['POST'])
@require_login
def create_meeting():
    meeting = meeting_service.create_meeting(get_session(), g.user, get_json_body())
    invalidate_dashboard(meeting.created_by)
    return jsonify(meeting.to_dict()), 201


@meetings_bp.route('/<meeting_id>', methods=['GET'])
@require_login
def get_meeting(meeting_id):
    meeting = meeting_service.get_meeting(get_session(), g.user, meeting_id)
    return jsonify(meeting.to_dict())


@meetings_bp.route('/<meeting_id>', methods=['PUT', 'PATCH'])
@require_login
def update_meeting(meeting_id):
    meeting = meeting_service.update_meeting(get_session(), g.user, meeting_id, get_json_body())
    invalidate_dashboard(meeting.created_by)
    return jsonify(meeting.to_dict())


@meetings_bp.route('/<meeting_id>', methods=['DELETE'])
@require_login
def delete_meeting(meeting_id):
    session = get_session()
    owner_id = meeting_service.get_meeting(session, g.user, meeting_id).created_by
    meeting_service.delete_meeting(session, g.user, meeting_id)
    invalidate_dashboard(owner_id)
    return '', 204
