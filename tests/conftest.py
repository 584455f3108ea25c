import os
import tempfile
from datetime import timedelta
from decimal import Decimal

import pytest

# Configuration is read from the environment at import time
_db_fd, _db_path = tempfile.mkstemp(suffix='.sqlite')
os.close(_db_fd)
os.environ['DATABASE_URL'] = f'sqlite:///{_db_path}'
os.environ['CACHE_ENABLED'] = 'false'
os.environ['WTF_CSRF_ENABLED'] = 'false'

from opian import create_app
from opian.database import Base, create_all, get_session, utcnow
from opian.models import AppUser, Client, Quote, QuoteLine, Meeting, UserRole
from opian.services import storage_service
from opian.services.storage_service import validate_upload


class FakeStorage:
    """In-memory stand-in for the S3 bucket."""

    def __init__(self):
        self.objects = {}
        self.content_types = {}

    def upload_file(self, file, object_name, content_type=None):
        from flask import current_app
        size = validate_upload(
            file,
            current_app.config['MAX_UPLOAD_SIZE'],
            current_app.config['ALLOWED_MIME_TYPES'],
        )
        file.seek(0)
        self.objects[object_name] = file.read()
        self.content_types[object_name] = content_type
        return size

    def download_file(self, object_name):
        return self.objects[object_name]

    def delete_file(self, object_name):
        return self.objects.pop(object_name, None) is not None


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.Config')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    # Requests share the fixture session and remove it on teardown; fixture
    # objects keep their loaded state once detached
    get_session().configure(expire_on_commit=False)
    create_all()
    yield app
    os.unlink(_db_path)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session; every table is emptied after the test."""
    session = get_session()
    yield session
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.remove()


@pytest.fixture(scope='function')
def storage(monkeypatch):
    fake = FakeStorage()
    monkeypatch.setattr(storage_service, '_storage_service', fake)
    return fake


def _save(session, obj):
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


def make_user(session, email, role=UserRole.CONSULTANT.value, password='password123'):
    user = AppUser(email=email, first_name='Test', last_name='User', role=role)
    user.set_password(password)
    return _save(session, user)


def make_client(session, owner, name='Acme Corp', **fields):
    return _save(session, Client(name=name, created_by=owner.id, **fields))


def make_quote(session, owner, client_record, quote_number, status='draft', total='100.00', **fields):
    total = Decimal(total)
    quote = Quote(
        client_id=client_record.id,
        quote_number=quote_number,
        title=fields.pop('title', f'Quote {quote_number}'),
        subtotal=total,
        tax=Decimal('0.00'),
        total=total,
        status=status,
        created_by=owner.id,
        **fields
    )
    quote.lines = [QuoteLine(position=1, description='Work', quantity=Decimal('1'), rate=total, amount=total)]
    return _save(session, quote)


def make_meeting(session, owner, client_record, scheduled_at=None, **fields):
    meeting = Meeting(
        client_id=client_record.id,
        title=fields.pop('title', 'Kickoff'),
        scheduled_at=scheduled_at or utcnow() + timedelta(days=1),
        created_by=owner.id,
        **fields
    )
    return _save(session, meeting)


def login_as(test_client, user):
    with test_client.session_transaction() as sess:
        sess['user_id'] = user.id
    return test_client


@pytest.fixture(scope='function')
def consultant(session):
    return make_user(session, 'consultant@test.com')


@pytest.fixture(scope='function')
def other_consultant(session):
    return make_user(session, 'other@test.com')


@pytest.fixture(scope='function')
def admin(session):
    return make_user(session, 'admin@test.com', role=UserRole.ADMIN.value)


@pytest.fixture(scope='function')
def auth_client(client, consultant):
    """Test client logged in as the consultant."""
    return login_as(client, consultant)


@pytest.fixture(scope='function')
def admin_client(app, admin):
    return login_as(app.test_client(), admin)


@pytest.fixture(scope='function')
def other_client(app, other_consultant):
    return login_as(app.test_client(), other_consultant)


@pytest.fixture(scope='function')
def client_record(session, consultant):
    """A client owned by the consultant."""
    return make_client(session, consultant, email='contact@acme.test')
