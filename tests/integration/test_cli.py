"""
Tests for the flask CLI commands.
"""

from opian.models import AppUser


class TestCliCommands:

    def test_init_db(self, app):
        result = app.test_cli_runner().invoke(args=['init-db'])

        assert result.exit_code == 0
        assert 'Database tables created' in result.output

    def test_create_admin_user(self, app, session):
        result = app.test_cli_runner().invoke(args=[
            'create-user', '--email', 'root@test.com', '--password', 'password123', '--role', 'admin'
        ])

        assert result.exit_code == 0, result.output
        user = session.query(AppUser).filter_by(email='root@test.com').one()
        assert user.is_admin
        assert user.check_password('password123')

    def test_create_user_rejects_duplicate(self, app, consultant):
        result = app.test_cli_runner().invoke(args=[
            'create-user', '--email', consultant.email, '--password', 'password123'
        ])

        assert result.exit_code != 0
        assert 'User already exists' in result.output

    def test_create_user_rejects_bad_email(self, app):
        result = app.test_cli_runner().invoke(args=[
            'create-user', '--email', 'not-an-email', '--password', 'password123'
        ])

        assert result.exit_code != 0
