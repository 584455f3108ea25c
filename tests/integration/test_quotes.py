"""
Integration tests for quote creation, numbering and editing.
"""

import pytest

from conftest import make_quote
from opian.database import utcnow
from opian.models import Quote
from opian.services import quote_service
from opian.services.quote_number_service import next_quote_number as real_next_quote_number

YEAR = utcnow().year


def quote_payload(client_id, **overrides):
    payload = {
        'clientId': client_id,
        'title': 'Website redesign',
        'items': [
            {'description': 'Design', 'quantity': 2, 'rate': '150.00'},
            {'description': 'Development', 'quantity': 10, 'rate': '80'},
        ],
        'tax': '100.00',
    }
    payload.update(overrides)
    return payload


class TestCreateQuote:

    def test_first_quote_of_year(self, auth_client, consultant, client_record):
        response = auth_client.post('/api/quotes', json=quote_payload(client_record.id))

        assert response.status_code == 201
        data = response.json
        assert data['quoteNumber'] == f'Q{YEAR}-001'
        assert data['status'] == 'draft'
        assert data['createdBy'] == consultant.id

    def test_totals_are_computed_server_side(self, auth_client, client_record):
        payload = quote_payload(client_record.id, subtotal='1.00', total='2.00')
        payload['items'][0]['amount'] = '9999.99'

        data = auth_client.post('/api/quotes', json=payload).json

        assert [item['amount'] for item in data['items']] == ['300.00', '800.00']
        assert data['subtotal'] == '1100.00'
        assert data['tax'] == '100.00'
        assert data['total'] == '1200.00'

    def test_sub_cent_rate_is_stored_rounded(self, auth_client, client_record):
        payload = quote_payload(client_record.id, tax='0')
        payload['items'] = [{'description': 'API calls', 'quantity': 100, 'rate': '0.005'}]

        data = auth_client.post('/api/quotes', json=payload).json

        assert data['items'] == [
            {'description': 'API calls', 'quantity': '100.000', 'rate': '0.01', 'amount': '1.00'}
        ]
        assert data['subtotal'] == '1.00'
        assert data['total'] == '1.00'

    def test_update_rejects_non_string_title(self, auth_client, client_record):
        created = auth_client.post('/api/quotes', json=quote_payload(client_record.id)).json

        response = auth_client.put(f"/api/quotes/{created['id']}", json={'title': {'text': 'x'}})

        assert response.status_code == 400
        assert response.json['message'] == 'title must be a string'

    def test_numbers_increase_sequentially(self, auth_client, client_record):
        numbers = [
            auth_client.post('/api/quotes', json=quote_payload(client_record.id)).json['quoteNumber']
            for _ in range(3)
        ]

        assert numbers == [f'Q{YEAR}-001', f'Q{YEAR}-002', f'Q{YEAR}-003']

    def test_client_supplied_number_is_ignored(self, auth_client, client_record):
        data = auth_client.post(
            '/api/quotes', json=quote_payload(client_record.id, quoteNumber='HACK-1')
        ).json
        assert data['quoteNumber'] == f'Q{YEAR}-001'

    def test_continues_after_999(self, auth_client, session, consultant, client_record):
        make_quote(session, consultant, client_record, f'Q{YEAR}-999')

        data = auth_client.post('/api/quotes', json=quote_payload(client_record.id)).json
        assert data['quoteNumber'] == f'Q{YEAR}-1000'

        data = auth_client.post('/api/quotes', json=quote_payload(client_record.id)).json
        assert data['quoteNumber'] == f'Q{YEAR}-1001'

    def test_previous_year_does_not_count(self, auth_client, session, consultant, client_record):
        make_quote(session, consultant, client_record, f'Q{YEAR - 1}-017')

        data = auth_client.post('/api/quotes', json=quote_payload(client_record.id)).json
        assert data['quoteNumber'] == f'Q{YEAR}-001'

    def test_malformed_existing_number_aborts_creation(self, auth_client, session, consultant, client_record):
        make_quote(session, consultant, client_record, f'Q{YEAR}-XYZW')

        response = auth_client.post('/api/quotes', json=quote_payload(client_record.id))

        assert response.status_code == 500
        assert session.query(Quote).count() == 1

    @pytest.mark.parametrize('payload,message', [
        ({'title': ''}, 'Title is required'),
        ({'items': []}, 'At least one line item is required'),
        ({'clientId': None}, 'Client is required'),
        ({'clientId': 'missing'}, 'Client not found'),
        ({'status': 'archived'}, 'Invalid status'),
        ({'tax': '-5'}, 'tax'),
        ({'validUntil': 'next week'}, 'validUntil'),
        ({'title': 123}, 'title must be a string'),
        ({'description': ['scope']}, 'description must be a string'),
        ({'status': 7}, 'Invalid status'),
    ])
    def test_validation(self, auth_client, session, client_record, payload, message):
        response = auth_client.post('/api/quotes', json=quote_payload(client_record.id, **payload))

        assert response.status_code == 400
        assert message in response.json['message']
        assert session.query(Quote).count() == 0

    def test_cannot_quote_for_another_consultants_client(self, other_client, client_record):
        response = other_client.post('/api/quotes', json=quote_payload(client_record.id))

        assert response.status_code == 400
        assert response.json['message'] == 'Client not found'


class TestConcurrentAllocation:
    """Two requests computing the same candidate number."""

    def test_retries_with_fresh_number(self, auth_client, session, consultant, client_record, monkeypatch):
        # Another request committed Q<year>-001 between our read and our insert
        make_quote(session, consultant, client_record, f'Q{YEAR}-001')
        calls = []

        def stale_then_fresh(db_session, year=None, literal='Q'):
            calls.append(year)
            if len(calls) == 1:
                return f'Q{YEAR}-001'
            return real_next_quote_number(db_session, year, literal)

        monkeypatch.setattr(quote_service, 'next_quote_number', stale_then_fresh)

        response = auth_client.post('/api/quotes', json=quote_payload(client_record.id))

        assert response.status_code == 201
        assert response.json['quoteNumber'] == f'Q{YEAR}-002'
        assert len(calls) == 2
        numbers = sorted(q.quote_number for q in session.query(Quote).all())
        assert numbers == [f'Q{YEAR}-001', f'Q{YEAR}-002']

    def test_gives_up_after_max_attempts(self, app, auth_client, session, consultant, client_record, monkeypatch):
        make_quote(session, consultant, client_record, f'Q{YEAR}-001')
        calls = []

        def always_stale(db_session, year=None, literal='Q'):
            calls.append(year)
            return f'Q{YEAR}-001'

        monkeypatch.setattr(quote_service, 'next_quote_number', always_stale)

        response = auth_client.post('/api/quotes', json=quote_payload(client_record.id))

        assert response.status_code == 409
        assert response.json['quoteNumber'] == f'Q{YEAR}-001'
        assert len(calls) == app.config['QUOTE_NUMBER_MAX_ATTEMPTS']
        assert session.query(Quote).count() == 1


class TestReadUpdateDeleteQuote:

    def test_update_keeps_quote_number(self, auth_client, client_record):
        created = auth_client.post('/api/quotes', json=quote_payload(client_record.id)).json

        response = auth_client.put(f"/api/quotes/{created['id']}", json={
            'quoteNumber': 'Q1999-999',
            'status': 'sent',
            'items': [{'description': 'Audit', 'quantity': 1, 'rate': '500'}],
        })

        assert response.status_code == 200
        data = response.json
        assert data['quoteNumber'] == created['quoteNumber']
        assert data['status'] == 'sent'
        assert data['subtotal'] == '500.00'
        assert data['total'] == '600.00'
        assert len(data['items']) == 1

    def test_update_tax_only_recomputes_total(self, auth_client, client_record):
        created = auth_client.post('/api/quotes', json=quote_payload(client_record.id)).json

        data = auth_client.patch(f"/api/quotes/{created['id']}", json={'tax': '0'}).json

        assert data['subtotal'] == '1100.00'
        assert data['total'] == '1100.00'

    def test_status_transitions_are_unrestricted(self, auth_client, client_record):
        quote_id = auth_client.post('/api/quotes', json=quote_payload(client_record.id)).json['id']

        for status in ('sent', 'accepted', 'draft', 'rejected'):
            response = auth_client.put(f'/api/quotes/{quote_id}', json={'status': status})
            assert response.status_code == 200
            assert response.json['status'] == status

    def test_list_filters_by_status(self, auth_client, session, consultant, client_record):
        make_quote(session, consultant, client_record, 'Q2025-001', status='sent')
        make_quote(session, consultant, client_record, 'Q2025-002', status='draft')

        numbers = [q['quoteNumber'] for q in auth_client.get('/api/quotes?status=sent').json]
        assert numbers == ['Q2025-001']
        assert len(auth_client.get('/api/quotes').json) == 2

    def test_delete_quote(self, auth_client, session, consultant, client_record):
        quote = make_quote(session, consultant, client_record, 'Q2025-001')

        assert auth_client.delete(f'/api/quotes/{quote.id}').status_code == 204
        assert session.query(Quote).count() == 0

    def test_deleted_number_is_not_reissued_if_not_highest(self, auth_client, session, consultant, client_record):
        client_id = client_record.id
        first = make_quote(session, consultant, client_record, f'Q{YEAR}-001')
        make_quote(session, consultant, client_record, f'Q{YEAR}-002')
        auth_client.delete(f'/api/quotes/{first.id}')

        data = auth_client.post('/api/quotes', json=quote_payload(client_id)).json
        assert data['quoteNumber'] == f'Q{YEAR}-003'

    def test_other_consultant_is_forbidden(self, other_client, session, consultant, client_record):
        quote = make_quote(session, consultant, client_record, 'Q2025-001')

        assert other_client.get(f'/api/quotes/{quote.id}').status_code == 403
        assert other_client.put(f'/api/quotes/{quote.id}', json={'status': 'sent'}).status_code == 403
        assert other_client.delete(f'/api/quotes/{quote.id}').status_code == 403
        assert other_client.get('/api/quotes').json == []

    def test_admin_can_read_any_quote(self, admin_client, session, consultant, client_record):
        quote = make_quote(session, consultant, client_record, 'Q2025-001')

        response = admin_client.get(f'/api/quotes/{quote.id}')
        assert response.status_code == 200
        assert response.json['quoteNumber'] == 'Q2025-001'

    def test_unknown_quote_is_404(self, auth_client):
        assert auth_client.get('/api/quotes/nope').status_code == 404


class TestQuotePdf:

    def test_download_pdf(self, auth_client, session, consultant, client_record):
        quote = make_quote(session, consultant, client_record, 'Q2025-042', title='Audit & <Review>')

        response = auth_client.get(f'/api/quotes/{quote.id}/pdf')

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')
        assert 'Q2025-042.pdf' in response.headers['Content-Disposition']
