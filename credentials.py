"""Registration and password verification."""

import structlog
from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from errors import Conflict, InvalidCredentials
from models import Credential, User, db

log = structlog.get_logger(__name__)

# Checked when the email is unknown so both failure paths do the same work.
_DUMMY_HASHES = {}


def _hash_method():
    return current_app.config['PASSWORD_HASH_METHOD']


def hash_password(password):
    return generate_password_hash(password, method=_hash_method())


def _dummy_hash():
    method = _hash_method()
    if method not in _DUMMY_HASHES:
        _DUMMY_HASHES[method] = generate_password_hash('not-a-real-password', method=method)
    return _DUMMY_HASHES[method]


def _needs_rehash(password_hash):
    # Werkzeug hashes look like "method:params$salt$hash".
    stored = password_hash.split('$', 1)[0]
    wanted = _hash_method()
    return not (stored == wanted or stored.startswith(wanted + ':'))


def register(name, email, password):
    """Create a user with a hashed password, raising Conflict on a taken email."""
    if User.query.filter_by(email=email).first():
        log.info('registration_conflict', email=email)
        raise Conflict('User already exists.')

    user = User(name=name, email=email)
    user.credential = Credential(password_hash=hash_password(password))
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race against another registration at the unique index.
        db.session.rollback()
        log.info('registration_conflict', email=email)
        raise Conflict('User already exists.')
    log.info('user_registered', user_id=user.id, email=email)
    return user


def verify_credentials(email, password):
    user = User.query.filter_by(email=email).first()
    if user is None or user.credential is None:
        check_password_hash(_dummy_hash(), password)
        log.info('login_failed', email=email, reason='unknown email')
        raise InvalidCredentials()

    password_hash = user.credential.password_hash
    if not check_password_hash(password_hash, password):
        log.info('login_failed', email=email, reason='wrong password')
        raise InvalidCredentials()

    if _needs_rehash(password_hash):
        user.credential.password_hash = hash_password(password)
        db.session.commit()
        log.info('password_rehashed', user_id=user.id, method=_hash_method())

    log.info('login_succeeded', user_id=user.id)
    return user
