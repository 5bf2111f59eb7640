import logging
import os

import structlog
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from access import LIST_POLICIES
from auth import auth_bp
from errors import ApiError, Unauthenticated
from me import me_bp
from models import db
from tokens import TokenIssuer
from transactions import transactions_bp

log = structlog.get_logger(__name__)


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _configure_logging(level):
    logging.basicConfig(format='%(message)s', level=level)
    logging.getLogger().setLevel(level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt='iso'),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _validate_config(config):
    try:
        config['JWT_EXPIRY_MINUTES'] = int(config['JWT_EXPIRY_MINUTES'])
    except (TypeError, ValueError):
        raise ValueError('JWT_EXPIRY_MINUTES must be an integer number of minutes.') from None
    if config['TRANSACTIONS_LIST_POLICY'] not in LIST_POLICIES:
        raise ValueError(
            f"TRANSACTIONS_LIST_POLICY must be one of {', '.join(LIST_POLICIES)}, "
            f"got {config['TRANSACTIONS_LIST_POLICY']!r}."
        )


# ---------------------- Error Handlers ----------------------
def _register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(exc):
        headers = {'WWW-Authenticate': 'Bearer'} if isinstance(exc, Unauthenticated) else {}
        return jsonify(exc.to_dict()), exc.status_code, headers

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({'message': exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        db.session.rollback()
        log.exception('unhandled_error')
        return jsonify({'message': 'Internal server error.'}), 500


def create_app(config=None):
    app = Flask(__name__)
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///finance.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['JWT_SECRET'] = os.environ.get('JWT_SECRET') or app.config['SECRET_KEY']
    app.config['JWT_ALGORITHM'] = os.environ.get('JWT_ALGORITHM', 'HS256')
    app.config['JWT_EXPIRY_MINUTES'] = os.environ.get('JWT_EXPIRY_MINUTES', 60)
    app.config['JWT_ISSUER'] = os.environ.get('JWT_ISSUER')
    app.config['JWT_AUDIENCE'] = os.environ.get('JWT_AUDIENCE')
    app.config['JWT_VERIFY_ISSUER'] = _env_bool('JWT_VERIFY_ISSUER')
    app.config['JWT_VERIFY_AUDIENCE'] = _env_bool('JWT_VERIFY_AUDIENCE')
    app.config['PASSWORD_HASH_METHOD'] = os.environ.get('PASSWORD_HASH_METHOD', 'scrypt')
    app.config['TRANSACTIONS_LIST_POLICY'] = os.environ.get('TRANSACTIONS_LIST_POLICY', 'authenticated')
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')
    if config:
        app.config.update(config)
    _validate_config(app.config)

    _configure_logging(app.config['LOG_LEVEL'])
    app.extensions['token_issuer'] = TokenIssuer.from_config(app.config)

    db.init_app(app)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(me_bp, url_prefix='/me')
    app.register_blueprint(transactions_bp, url_prefix='/transactions')
    _register_error_handlers(app)

    with app.app_context():
        db.create_all()
    log.info('app_started', list_policy=app.config['TRANSACTIONS_LIST_POLICY'],
             token_expiry_minutes=app.config['JWT_EXPIRY_MINUTES'],
             verify_issuer=app.config['JWT_VERIFY_ISSUER'],
             verify_audience=app.config['JWT_VERIFY_AUDIENCE'])
    return app


# ---------------------- Run App ----------------------
if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=_env_bool('FLASK_DEBUG'))
