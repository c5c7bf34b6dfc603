from flask import Flask, current_app
from werkzeug.exceptions import HTTPException
from werkzeug.http import HTTP_STATUS_CODES
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()

STORAGE_EXTENSION = 'bookflow.storage'


def _error_payload(status: int, detail: str, extra: Optional[Dict[str, Any]] = None):
    body = {
        'status': status,
        'title': HTTP_STATUS_CODES.get(status, 'Error'),
        'detail': detail,
    }
    if extra:
        body.update(extra)
    return {'error': body}, status


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['STORY_PRICE'] = float(os.getenv('STORY_PRICE', '120'))
    app.config['DOMESTIC_COUNTRY'] = os.getenv('DOMESTIC_COUNTRY', 'Egypt')
    app.config['DOMESTIC_COUNTRY_ALIASES'] = os.getenv('DOMESTIC_COUNTRY_ALIASES', 'مصر')
    app.config['UPLOAD_DIR'] = os.getenv('UPLOAD_DIR', 'var/order-files')
    app.config['PUBLIC_FILES_URL'] = os.getenv('PUBLIC_FILES_URL', '/files')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    logging.getLogger('bookflow').setLevel(app.config['LOG_LEVEL'])

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .storage.local_provider import LocalStorageProvider
    app.extensions[STORAGE_EXTENSION] = LocalStorageProvider(app.config['UPLOAD_DIR'], app.config['PUBLIC_FILES_URL'])

    from .routes.auth import auth_bp
    from .routes.orders import orders_bp
    from .routes.directory import directory_bp
    from .routes.accounting import acc_bp
    from .routes.reports import rpt_bp
    from .routes.files import files_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(orders_bp, url_prefix='/orders')
    app.register_blueprint(directory_bp, url_prefix='/directory')
    app.register_blueprint(acc_bp, url_prefix='/accounting')
    app.register_blueprint(rpt_bp, url_prefix='/reports')
    app.register_blueprint(files_bp, url_prefix=app.config['PUBLIC_FILES_URL'])

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.teardown_appcontext
    def remove_session(exc):  # type: ignore
        SessionLocal.remove()

    # JWT failures share the standard error shape
    @jwt.unauthorized_loader
    def missing_token(reason):  # type: ignore
        return _error_payload(401, reason)

    @jwt.invalid_token_loader
    def invalid_token(reason):  # type: ignore
        return _error_payload(401, reason)

    @jwt.expired_token_loader
    def expired_token(header, payload):  # type: ignore
        return _error_payload(401, 'Token has expired')

    from .exceptions import BookflowError

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, BookflowError):
            if e.status_code >= 500:
                app.logger.error('%s: %s %s', e.error_code, e.message, e.details)
            extra = {'code': e.error_code}
            if e.details:
                extra['details'] = e.details
            return _error_payload(e.status_code, e.message, extra)
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            return payload, e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return _error_payload(500, 'Unexpected error')

    return app


def get_db():
    return SessionLocal()


def get_store():
    from .services.store import SqlAlchemyStore
    return SqlAlchemyStore(get_db())


def get_storage():
    return current_app.extensions[STORAGE_EXTENSION]


def domestic_countries():
    cfg = current_app.config
    aliases = [a.strip() for a in str(cfg.get('DOMESTIC_COUNTRY_ALIASES') or '').split(',')]
    return tuple(c for c in [cfg['DOMESTIC_COUNTRY'], *aliases] if c)
