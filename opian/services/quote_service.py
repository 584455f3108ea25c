"""Quote service: creation with quote number allocation, edits, PDF rendering."""

import logging
from decimal import Decimal, ROUND_HALF_UP
from io import BytesIO
from xml.sax.saxutils import escape
from typing import Dict, Any, List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from opian.blueprints.metrics import quote_number_conflicts_total
from opian.decorators.permissions import ensure_can_access, scope_to_owner
from opian.exceptions import BusinessLogicError, NotFoundError, DuplicateQuoteNumberError
from opian.models import Quote, QuoteLine, QuoteStatus, Client
from opian.services.quote_number_service import next_quote_number, DEFAULT_PREFIX
from opian.utils.formatters import money_display, date_display
from opian.utils.number_format import parse_decimal, parse_datetime, parse_text

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
QUANTITY_STEP = Decimal('0.001')
QUOTE_STATUSES = [s.value for s in QuoteStatus]
DEFAULT_MAX_ATTEMPTS = 3


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def build_line_items(items: Any) -> List[Dict[str, Any]]:
    """
    Validate submitted line items and compute each amount.

    Submitted amounts are ignored: amount is always quantity * rate.

    Raises:
        BusinessLogicError: if items is not a non-empty list of valid lines.
    """
    if not isinstance(items, list) or not items:
        raise BusinessLogicError('At least one line item is required')

    lines = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise BusinessLogicError(f'Line {index}: invalid line item')
        try:
            description = parse_text(item.get('description'), 'description')
            if not description:
                raise ValueError('description is required')
            # Stored precision: quantity to 3 places, rate to cents
            quantity = parse_decimal(item.get('quantity'), 'quantity')
            quantity = quantity.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
            rate = _cents(parse_decimal(item.get('rate'), 'rate'))
        except ValueError as e:
            raise BusinessLogicError(f'Line {index}: {e}')

        lines.append({
            'position': index,
            'description': description,
            'quantity': quantity,
            'rate': rate,
            'amount': _cents(quantity * rate),
        })
    return lines


def compute_totals(lines: List[Dict[str, Any]], tax: Decimal) -> Dict[str, Decimal]:
    """subtotal = sum of line amounts, total = subtotal + tax."""
    subtotal = sum((line['amount'] for line in lines), Decimal('0.00'))
    tax = _cents(tax)
    return {'subtotal': _cents(subtotal), 'tax': tax, 'total': _cents(subtotal + tax)}


def _parse_tax(data: Dict[str, Any]) -> Decimal:
    raw = data.get('tax')
    if raw is None or raw == '':
        return Decimal('0.00')
    try:
        return parse_decimal(raw, 'tax')
    except ValueError as e:
        raise BusinessLogicError(str(e))


def _parse_text(value: Any, field: str) -> Optional[str]:
    try:
        return parse_text(value, field)
    except ValueError as e:
        raise BusinessLogicError(str(e))


def _parse_status(value: Any) -> str:
    status = (value or '').strip().lower() if isinstance(value, str) else value
    if status not in QUOTE_STATUSES:
        raise BusinessLogicError(f"Invalid status. Allowed: {', '.join(QUOTE_STATUSES)}")
    return status


def _parse_valid_until(value: Any):
    try:
        return parse_datetime(value, 'validUntil')
    except ValueError as e:
        raise BusinessLogicError(str(e))


def _get_accessible_client(session: Session, user, client_id: Any) -> Client:
    if not client_id:
        raise BusinessLogicError('Client is required')
    client = session.query(Client).filter(Client.id == str(client_id)).first()
    if not client or not (user.is_admin or client.created_by == user.id):
        raise BusinessLogicError('Client not found')
    return client


def list_quotes(session: Session, user, status: Optional[str] = None) -> List[Quote]:
    """Quotes visible to the user, newest first."""
    query = scope_to_owner(session.query(Quote), Quote.created_by, user)
    if status:
        query = query.filter(Quote.status == _parse_status(status))
    return query.order_by(Quote.created_at.desc()).all()


def get_quote(session: Session, user, quote_id: str) -> Quote:
    """
    Fetch a quote the user may access.

    Raises:
        NotFoundError: if the quote does not exist.
        UnauthorizedError: if it belongs to another consultant.
    """
    quote = session.query(Quote).filter(Quote.id == quote_id).first()
    if not quote:
        raise NotFoundError('Quote not found')
    ensure_can_access(user, quote.created_by, 'quote')
    return quote


def _is_quote_number_taken(session: Session, quote_number: str) -> bool:
    return session.query(Quote.id).filter(Quote.quote_number == quote_number).first() is not None


def create_quote(
    session: Session,
    user,
    data: Dict[str, Any],
    year: Optional[int] = None,
    prefix: str = DEFAULT_PREFIX,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> Quote:
    """
    Create a quote with a freshly allocated quote number.

    Allocation and insert are separate round trips, so a concurrent request
    can take the number first. The unique constraint rejects our insert;
    we roll back, allocate again from the new maximum and retry, up to
    max_attempts times. Nothing is persisted unless the insert commits.

    Raises:
        BusinessLogicError: invalid payload or inaccessible client.
        QuoteNumberReadError / MalformedQuoteNumberError: allocation failed.
        DuplicateQuoteNumberError: every attempt hit a taken number.
    """
    title = _parse_text(data.get('title'), 'title')
    if not title:
        raise BusinessLogicError('Title is required')

    client = _get_accessible_client(session, user, data.get('clientId'))
    lines = build_line_items(data.get('items'))
    totals = compute_totals(lines, _parse_tax(data))
    status = _parse_status(data['status']) if data.get('status') else QuoteStatus.DRAFT.value
    valid_until = _parse_valid_until(data.get('validUntil'))

    fields = {
        'client_id': client.id,
        'title': title,
        'description': _parse_text(data.get('description'), 'description'),
        'status': status,
        'valid_until': valid_until,
        'created_by': user.id,
        **totals,
    }

    quote_number = None
    for attempt in range(1, max_attempts + 1):
        quote_number = next_quote_number(session, year, prefix)
        quote = Quote(quote_number=quote_number, **fields)
        quote.lines = [QuoteLine(**line) for line in lines]
        session.add(quote)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            if not _is_quote_number_taken(session, quote_number):
                raise
            quote_number_conflicts_total.inc()
            logger.warning(
                f"[QUOTES] Quote number {quote_number} taken concurrently "
                f"(attempt {attempt}/{max_attempts}), retrying"
            )
            continue

        logger.info(f"[QUOTES] Created quote {quote.quote_number} ({quote.id}) for client {client.id}")
        return quote

    logger.error(f"[QUOTES] Giving up on quote creation after {max_attempts} attempts (last {quote_number})")
    raise DuplicateQuoteNumberError(quote_number, max_attempts)


def update_quote(session: Session, user, quote_id: str, data: Dict[str, Any]) -> Quote:
    """
    Update a quote in place. The quote number never changes.

    When items or tax are sent, line amounts and totals are recomputed.
    Status transitions are not restricted.
    """
    quote = get_quote(session, user, quote_id)

    try:
        if 'title' in data:
            title = _parse_text(data.get('title'), 'title')
            if not title:
                raise BusinessLogicError('Title is required')
            quote.title = title
        if 'description' in data:
            quote.description = _parse_text(data.get('description'), 'description')
        if 'clientId' in data:
            quote.client_id = _get_accessible_client(session, user, data.get('clientId')).id
        if 'status' in data:
            quote.status = _parse_status(data.get('status'))
        if 'validUntil' in data:
            quote.valid_until = _parse_valid_until(data.get('validUntil'))

        if 'items' in data or 'tax' in data:
            if 'items' in data:
                lines = build_line_items(data.get('items'))
                quote.lines = [QuoteLine(**line) for line in lines]
            else:
                lines = [
                    {'amount': line.amount} for line in quote.lines
                ]
            tax = _parse_tax(data) if 'tax' in data else quote.tax
            totals = compute_totals(lines, tax)
            quote.subtotal = totals['subtotal']
            quote.tax = totals['tax']
            quote.total = totals['total']

        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[QUOTES] Updated quote {quote.quote_number} ({quote.id})")
    return quote


def delete_quote(session: Session, user, quote_id: str) -> None:
    """Hard-delete a quote and its lines."""
    quote = get_quote(session, user, quote_id)
    quote_number = quote.quote_number
    try:
        session.delete(quote)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[QUOTES] Deleted quote {quote_number} ({quote_id})")


def render_quote_pdf(quote: Quote, business_info: Dict[str, Any]) -> BytesIO:
    """Render a persisted quote as an A4 PDF."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=f"Quote {quote.quote_number}",
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'QuoteTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    header_style = ParagraphStyle(
        'QuoteHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Title and business header
    elements.append(Paragraph("QUOTE", title_style))

    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{escape(business_info['name'])}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(escape(business_info['address']), header_style))

    contact_parts = []
    if business_info.get('phone'):
        contact_parts.append(f"Tel: {business_info['phone']}")
    if business_info.get('email'):
        contact_parts.append(f"Email: {business_info['email']}")
    if contact_parts:
        elements.append(Paragraph(escape(" | ".join(contact_parts)), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Quote metadata
    info_rows = [
        ['Quote No.:', quote.quote_number],
        ['Title:', quote.title],
        ['Issued:', date_display(quote.created_at)],
        ['Status:', quote.status.capitalize()],
    ]
    if quote.valid_until:
        info_rows.append(['Valid Until:', date_display(quote.valid_until)])
    if quote.client:
        client_label = quote.client.name
        if quote.client.company:
            client_label = f"{client_label} ({quote.client.company})"
        info_rows.append(['Client:', client_label])

    info_table = Table(info_rows, colWidths=[2*inch, 4*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Line items
    table_data = [['Description', 'Quantity', 'Rate', 'Amount']]
    for line in quote.lines:
        qty = line.quantity
        qty_str = str(int(qty)) if qty % 1 == 0 else f"{qty:.2f}"
        table_data.append([
            Paragraph(escape(line.description), styles['Normal']),
            qty_str,
            money_display(line.rate),
            money_display(line.amount),
        ])

    items_table = Table(table_data, colWidths=[3.5*inch, 0.9*inch, 1.1*inch, 1.2*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('ALIGN', (1, 1), (1, -1), 'CENTER'),
        ('ALIGN', (2, 1), (3, -1), 'RIGHT'),
        ('VALIGN', (0, 1), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Totals
    totals_table = Table([
        ['Subtotal:', money_display(quote.subtotal)],
        ['Tax:', money_display(quote.tax)],
        ['TOTAL:', money_display(quote.total)],
    ], colWidths=[5.5*inch, 1.2*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 2), (-1, 2), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 2), (-1, 2), 14),
        ('TEXTCOLOR', (0, 2), (-1, 2), colors.HexColor('#27AE60')),
        ('BACKGROUND', (0, 2), (-1, 2), colors.HexColor('#E8F8F5')),
        ('BOX', (0, 2), (-1, 2), 2, colors.HexColor('#27AE60')),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 0.4*inch))

    if quote.description:
        footer_style = ParagraphStyle(
            'QuoteFooter', parent=styles['Normal'], fontSize=9,
            textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER
        )
        elements.append(Paragraph(f"<b>Notes:</b> {escape(quote.description)}", footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer
