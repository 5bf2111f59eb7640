import structlog
from flask import Blueprint, jsonify, request

from access import require_caller, with_caller
from schemas import parse_type_filter
from transactions import list_transactions

log = structlog.get_logger(__name__)

me_bp = Blueprint('me', __name__)


@me_bp.route('', methods=['GET'])
@with_caller
def me(caller):
    user = require_caller(caller)
    return jsonify(user.to_dict())


@me_bp.route('/transactions', methods=['GET'])
@with_caller
def my_transactions(caller):
    """Caller's own transactions, newest first, optionally filtered by ?type=."""
    user = require_caller(caller)
    tx_type = parse_type_filter(request.args.get('type'))
    txs = list_transactions(tx_type, owner_id=user.id)
    log.info('own_transactions_listed', user_id=user.id, count=len(txs))
    return jsonify([tx.to_dict() for tx in txs])
