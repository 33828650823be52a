# Creates the Flask app (App Factory)
from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy
import os
import logging
from .config import Config

# Extensions, bound to the app in create_app
db = SQLAlchemy()
jwt = JWTManager()


def _configure_session_cookie(app):
    """Derive the auth cookie policy from the deployment environment."""
    is_production = app.config['APP_ENV'] == 'production'
    app.config.setdefault('JWT_TOKEN_LOCATION', ['cookies'])
    app.config.setdefault('JWT_ACCESS_COOKIE_NAME', app.config['AUTH_COOKIE_NAME'])
    app.config.setdefault('JWT_COOKIE_SECURE', is_production)
    app.config.setdefault('JWT_COOKIE_SAMESITE', 'Strict' if is_production else 'Lax')
    # Persistent cookie: Max-Age follows the token lifetime
    app.config.setdefault('JWT_SESSION_COOKIE', False)
    app.config.setdefault('JWT_COOKIE_CSRF_PROTECT', False)


# Application Factory Function
def create_app(test_config=None):
    app = Flask(__name__, static_folder=None)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Refuse to start without a signing secret
    if not app.config.get('JWT_SECRET_KEY'):
        raise RuntimeError('Invalid env variable: JWT_SECRET')

    # Logging configuration (DEBUG level by default)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=app.config['LOG_LEVEL'],
                            format='%(asctime)s %(levelname)s %(name)s - %(message)s')
    app.logger.setLevel(app.config['LOG_LEVEL'])

    _configure_session_cookie(app)

    # Ensure folders exist
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Extensions
    db.init_app(app)
    jwt.init_app(app)
    # Cookies cross origins only for an explicitly configured frontend
    if app.config['CORS_ORIGIN']:
        CORS(app, origins=app.config['CORS_ORIGIN'], supports_credentials=True)
    else:
        CORS(app, send_wildcard=True)

    from .errors import register_error_handlers
    register_error_handlers(app)

    # Import and register the blueprint from routes.py
    from .routes import api as api_blueprint
    app.register_blueprint(api_blueprint)

    # Create tables; an unreachable database aborts startup here
    from . import models  # noqa: F401
    with app.app_context():
        db.create_all()

    @app.route('/', methods=['GET'])
    def root():
        return jsonify({'success': True, 'status': 'Server is running'}), 200

    app.logger.debug('Application created and configured (env=%s)', app.config['APP_ENV'])
    return app
