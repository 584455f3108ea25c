"""
Integration tests for document upload and download.
"""

from io import BytesIO

from opian.models import Document


def upload(test_client, client_id, content=b'%PDF-1.4 test', filename='contract.pdf', content_type='application/pdf'):
    return test_client.post(
        f'/api/documents/{client_id}/upload',
        data={'file': (BytesIO(content), filename, content_type)},
        content_type='multipart/form-data',
    )


class TestDocuments:

    def test_upload_list_download(self, auth_client, storage, consultant, client_record):
        response = upload(auth_client, client_record.id)

        assert response.status_code == 201
        data = response.json
        assert data['originalName'] == 'contract.pdf'
        assert data['mimeType'] == 'application/pdf'
        assert data['size'] == len(b'%PDF-1.4 test')
        assert data['uploadedBy'] == consultant.id
        assert data['filename'].endswith('.pdf')
        assert len(storage.objects) == 1
        (path,) = storage.objects
        assert path.startswith(f'documents/{client_record.id}/')
        assert storage.content_types[path] == data['mimeType']

        listed = auth_client.get(f'/api/documents/{client_record.id}').json
        assert [d['id'] for d in listed] == [data['id']]

        download = auth_client.get(f"/api/documents/{client_record.id}/{data['id']}/download")
        assert download.status_code == 200
        assert download.data == b'%PDF-1.4 test'
        assert download.mimetype == 'application/pdf'
        assert 'contract.pdf' in download.headers['Content-Disposition']

    def test_upload_requires_file(self, auth_client, storage, client_record):
        response = auth_client.post(f'/api/documents/{client_record.id}/upload', data={},
                                    content_type='multipart/form-data')

        assert response.status_code == 400
        assert response.json['message'] == 'No file uploaded'

    def test_rejects_disallowed_type(self, auth_client, storage, session, client_record):
        response = upload(auth_client, client_record.id, b'MZ...', 'tool.exe', 'application/x-msdownload')

        assert response.status_code == 400
        assert 'not allowed' in response.json['message']
        assert storage.objects == {}
        assert session.query(Document).count() == 0

    def test_rejects_empty_file(self, auth_client, storage, client_record):
        response = upload(auth_client, client_record.id, b'')
        assert response.status_code == 400

    def test_rejects_oversized_file(self, app, auth_client, storage, client_record, monkeypatch):
        monkeypatch.setitem(app.config, 'MAX_UPLOAD_SIZE', 10)

        response = upload(auth_client, client_record.id, b'x' * 11, 'notes.txt', 'text/plain')

        assert response.status_code == 400
        assert 'too large' in response.json['message']

    def test_download_with_wrong_client_is_404(self, auth_client, storage, session, consultant, client_record):
        from conftest import make_client
        other_id = make_client(session, consultant, name='Second').id
        doc_id = upload(auth_client, client_record.id).json['id']

        response = auth_client.get(f'/api/documents/{other_id}/{doc_id}/download')
        assert response.status_code == 404

    def test_delete_document(self, auth_client, storage, session, client_record):
        doc_id = upload(auth_client, client_record.id).json['id']

        response = auth_client.delete(f'/api/documents/{doc_id}')

        assert response.status_code == 204
        assert storage.objects == {}
        assert session.query(Document).count() == 0

    def test_other_consultant_is_forbidden(self, auth_client, other_client, storage, client_record):
        doc_id = upload(auth_client, client_record.id).json['id']

        assert other_client.get(f'/api/documents/{client_record.id}').status_code == 403
        assert upload(other_client, client_record.id).status_code == 403
        assert other_client.get(f'/api/documents/{client_record.id}/{doc_id}/download').status_code == 403
        assert other_client.delete(f'/api/documents/{doc_id}').status_code == 403
        assert len(storage.objects) == 1
