"""
Dashboard blueprint.
Header cards: clients, quotes awaiting an answer, upcoming meetings and
this month's accepted revenue.
"""

from flask import Blueprint, jsonify, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from opian.database import get_session
from opian.middleware import require_login
from opian.services.dashboard_service import get_cached_dashboard_stats, empty_stats


dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/dashboard')


@dashboard_bp.route('/stats')
@require_login
def stats():
    """Role-scoped stats; zeros when the database cannot be queried."""
    db_session = get_session()
    try:
        data = get_cached_dashboard_stats(
            db_session, g.user, current_app.config.get('CACHE_DASHBOARD_TTL')
        )
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error loading dashboard for user {g.user.id}: {e}", exc_info=True)
        data = empty_stats()
    return jsonify(data)
