"""
Store Missions Gamification Service
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_cors import CORS
from sqlalchemy import event

from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.logging_config import setup_logging
from .utils.errors import from_exception
from .utils.exceptions import GamificationError

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Import models so their tables register on db.metadata
    from . import models  # noqa: F401

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        with app.app_context():
            enable_sqlite_savepoints(db.engine)

    # Configure CORS - origins from env, comma separated
    cors_origins = [o.strip() for o in os.getenv('CORS_ORIGINS', '').split(',') if o.strip()]
    if not cors_origins and config_name != 'production':
        cors_origins = ['http://localhost:5173', 'http://127.0.0.1:5173']
    CORS(app, origins=cors_origins, allow_headers=['Content-Type', 'X-Store-Id', 'X-Admin-Token'])

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'gamification'}

    logger.info(f'Gamification service created ({config_name})')
    return app


def enable_sqlite_savepoints(engine) -> None:
    """
    Let pysqlite honour SAVEPOINT.

    The driver otherwise manages BEGIN itself and nested transactions
    (used by the ledger's fetch-or-create) misbehave.
    """
    @event.listens_for(engine, 'connect')
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def do_begin(conn):
        conn.exec_driver_sql('BEGIN')


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.gamification import gamification_bp
    from .api.admin import admin_bp

    app.register_blueprint(gamification_bp, url_prefix='/api/gamification')
    app.register_blueprint(admin_bp, url_prefix='/api/admin/gamification')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""

    @app.errorhandler(GamificationError)
    def gamification_error(error):
        db.session.rollback()
        return from_exception(error)

    @app.errorhandler(400)
    def bad_request(error):
        return {'error': {'message': 'Bad request', 'code': 'INVALID_REQUEST'}}, 400

    @app.errorhandler(404)
    def not_found(error):
        return {'error': {'message': 'Not found', 'code': 'NOT_FOUND'}}, 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return {'error': {'message': 'Method not allowed', 'code': 'INVALID_REQUEST'}}, 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        logger.error(f'Unhandled error: {error}')
        return {'error': {'message': 'Internal server error', 'code': 'INTERNAL_ERROR'}}, 500
