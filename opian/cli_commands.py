"""
Flask CLI commands.

Commands:
- flask init-db: Create missing tables
- flask create-user: Create a consultant or admin account
"""

import click

from opian.database import create_all, get_session
from opian.exceptions import BusinessLogicError
from opian.models import UserRole
from opian.services.auth_service import create_user, is_valid_email


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables that do not exist yet."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('create-user')
    @click.option('--email', prompt=True, help='User email address')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='User password')
    @click.option('--first-name', default=None, help='First name')
    @click.option('--last-name', default=None, help='Last name')
    @click.option(
        '--role',
        type=click.Choice([r.value for r in UserRole]),
        default=UserRole.CONSULTANT.value,
        show_default=True,
        help='Account role'
    )
    def create_user_command(email, password, first_name, last_name, role):
        """Create a user, e.g. the first admin of a new installation."""
        if not is_valid_email(email):
            raise click.BadParameter('Invalid email. Use format: user@example.com', param_hint='--email')

        if len(password) < 6:
            raise click.BadParameter('Password must be at least 6 characters.', param_hint='--password')

        try:
            user = create_user(get_session(), email, password, first_name, last_name, role)
        except BusinessLogicError as e:
            raise click.ClickException(e.message)

        click.echo(click.style(f'\nUser created ({role})', fg='green', bold=True))
        click.echo(f'   Email: {user.email}')
        click.echo(f'   ID: {user.id}')
