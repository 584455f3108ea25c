"""Quotes blueprint - quote management and PDF export."""
from flask import Blueprint, jsonify, request, g, send_file, current_app

from opian.database import get_session
from opian.middleware import require_login
from opian.services import quote_service
from opian.services.dashboard_service import invalidate_dashboard
from opian.utils.http import get_json_body

quotes_bp = Blueprint('quotes', __name__, url_prefix='/api/quotes')


@quotes_bp.route('', methods=['GET'])
@require_login
def list_quotes():
    """List quotes, newest first, optionally filtered by ?status=."""
    quotes = quote_service.list_quotes(get_session(), g.user, request.args.get('status'))
    return jsonify([q.to_dict() for q in quotes])


@quotes_bp.route('', methods=['POST'])
@require_login
def create_quote():
    """
    Create a quote.

    The quote number is allocated server-side; a quoteNumber in the body
    is ignored. createdBy is the session user.
    """
    quote = quote_service.create_quote(
        get_session(),
        g.user,
        get_json_body(),
        prefix=current_app.config.get('QUOTE_NUMBER_PREFIX', 'Q'),
        max_attempts=current_app.config.get('QUOTE_NUMBER_MAX_ATTEMPTS', 3),
    )
    invalidate_dashboard(quote.created_by)
    return jsonify(quote.to_dict()), 201


@quotes_bp.route('/<quote_id>', methods=['GET'])
@require_login
def get_quote(quote_id):
    quote = quote_service.get_quote(get_session(), g.user, quote_id)
    return jsonify(quote.to_dict())


@quotes_bp.route('/<quote_id>', methods=['PUT', 'PATCH'])
@require_login
def update_quote(quote_id):
    quote = quote_service.update_quote(get_session(), g.user, quote_id, get_json_body())
    invalidate_dashboard(quote.created_by)
    return jsonify(quote.to_dict())


@quotes_bp.route('/<quote_id>', methods=['DELETE'])
@require_login
def delete_quote(quote_id):
    session = get_session()
    owner_id = quote_service.get_quote(session, g.user, quote_id).created_by
    quote_service.delete_quote(session, g.user, quote_id)
    invalidate_dashboard(owner_id)
    return '', 204


@quotes_bp.route('/<quote_id>/pdf', methods=['GET'])
@require_login
def download_pdf(quote_id):
    """Generate and download the quote as PDF."""
    quote = quote_service.get_quote(get_session(), g.user, quote_id)

    business_info = {
        'name': current_app.config.get('BUSINESS_NAME', ''),
        'address': current_app.config.get('BUSINESS_ADDRESS', ''),
        'phone': current_app.config.get('BUSINESS_PHONE', ''),
        'email': current_app.config.get('BUSINESS_EMAIL', ''),
    }
    pdf_buffer = quote_service.render_quote_pdf(quote, business_info)

    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"{quote.quote_number}.pdf"
    )
