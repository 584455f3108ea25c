"""Flask application factory."""
import os
import traceback

from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException

from opian.database import init_db


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # JSON clients send the token from /api/auth/csrf in X-CSRFToken
    csrf = CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'Invalid or missing CSRF token'}), 400

    # Sentry only in production with a DSN configured
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    from opian.services.cache_service import init_cache
    init_cache(app)

    from opian.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: HTTPS terminates at the reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    init_db(app)

    from opian.middleware import load_current_user

    @app.before_request
    def before_request_handler():
        """Load the session user for each request."""
        load_current_user()

    # Error Handlers
    from opian.exceptions import OpianError

    @app.errorhandler(OpianError)
    def handle_opian_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"OpianError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"OpianError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception on {request.method} {request.path}: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from opian.blueprints.auth import auth_bp
    from opian.blueprints.main import main_bp
    from opian.blueprints.dashboard import dashboard_bp
    from opian.blueprints.clients import clients_bp
    from opian.blueprints.quotes import quotes_bp
    from opian.blueprints.meetings import meetings_bp
    from opian.blueprints.documents import documents_bp
    from opian.blueprints.users import users_bp
    from opian.blueprints.metrics import metrics_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(quotes_bp)
    app.register_blueprint(meetings_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(metrics_bp)

    # Scraped by Prometheus, never called from a browser
    csrf.exempt(metrics_bp)

    from opian.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
