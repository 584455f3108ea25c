"""
Unit tests for the S3 storage service.
"""

from io import BytesIO

from werkzeug.datastructures import FileStorage

from opian.services import storage_service
from opian.services.storage_service import StorageService, content_type_for


class FakeS3Client:
    def __init__(self):
        self.uploads = []

    def head_bucket(self, Bucket):
        return {}

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        self.uploads.append({'bucket': bucket, 'key': key, 'body': fileobj.read(), 'extra': ExtraArgs})


def make_file(content=b'%PDF-1.4 test', filename='contract.pdf', content_type=None):
    return FileStorage(stream=BytesIO(content), filename=filename, content_type=content_type)


class TestContentType:

    def test_declared_type_wins(self):
        assert content_type_for(make_file(content_type='application/pdf; charset=binary')) == 'application/pdf'

    def test_guessed_from_filename(self):
        assert content_type_for(make_file(filename='notes.txt')) == 'text/plain'

    def test_unknown_falls_back_to_octet_stream(self):
        assert content_type_for(make_file(filename='blob.zzz-unknown')) == 'application/octet-stream'


class TestUploadFile:

    def test_passes_content_type_to_bucket(self, app, monkeypatch):
        fake = FakeS3Client()
        monkeypatch.setattr(storage_service.boto3, 'client', lambda *args, **kwargs: fake)

        with app.app_context():
            storage = StorageService()
            size = storage.upload_file(make_file(content_type='application/pdf'), 'documents/c/1.pdf',
                                       'application/pdf')

        assert size == len(b'%PDF-1.4 test')
        assert fake.uploads == [{
            'bucket': app.config['S3_BUCKET'],
            'key': 'documents/c/1.pdf',
            'body': b'%PDF-1.4 test',
            'extra': {'ContentType': 'application/pdf'},
        }]

    def test_detects_content_type_when_not_given(self, app, monkeypatch):
        fake = FakeS3Client()
        monkeypatch.setattr(storage_service.boto3, 'client', lambda *args, **kwargs: fake)

        with app.app_context():
            StorageService().upload_file(make_file(content_type='application/pdf'), 'documents/c/2.pdf')

        assert fake.uploads[0]['extra'] == {'ContentType': 'application/pdf'}
