"""Per-request caller resolution and transaction ownership checks."""

from functools import wraps

import structlog
from flask import current_app, request

from errors import Forbidden, NotFound, Unauthenticated
from models import Transaction, User, db

log = structlog.get_logger(__name__)

LIST_POLICIES = ('anonymous', 'authenticated', 'owner')


def bearer_token(header):
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        return None
    return parts[1]


def resolve_caller(claim):
    """Map a verified subject id to a User, or None when there is no such user."""
    if not claim:
        return None
    user = db.session.get(User, claim)
    if user is None:
        log.info('caller_unknown', subject=claim)
    return user


def caller_from_request(req):
    token = bearer_token(req.headers.get('Authorization'))
    if token is None:
        return None
    issuer = current_app.extensions['token_issuer']
    return resolve_caller(issuer.verify(token))


def with_caller(view_func):
    """Resolve the caller once and hand it to the view as ``caller``."""
    @wraps(view_func)
    def wrapped(*args, **kwargs):
        return view_func(*args, caller=caller_from_request(request), **kwargs)
    return wrapped


def require_caller(caller):
    if caller is None:
        raise Unauthenticated()
    return caller


def require_owner(caller, transaction_id):
    """Load a transaction the caller is allowed to read or change.

    Unauthenticated comes first, then NotFound for an unknown id, then
    Forbidden when the record belongs to someone else.
    """
    require_caller(caller)
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        log.info('transaction_not_found', transaction_id=transaction_id, user_id=caller.id)
        raise NotFound('No transaction with the specified ID was found.')
    if transaction.owner_id != caller.id:
        log.info('transaction_forbidden', transaction_id=transaction_id, user_id=caller.id)
        raise Forbidden('You do not have access to this transaction.')
    return transaction


def list_policy():
    return current_app.config['TRANSACTIONS_LIST_POLICY']
