import structlog
from flask import Blueprint, jsonify, request, url_for
from sqlalchemy.orm.exc import StaleDataError

from access import list_policy, require_caller, require_owner, with_caller
from errors import NotFound
from models import Transaction, db
from schemas import TransactionRequest, parse_body, parse_type_filter

log = structlog.get_logger(__name__)

transactions_bp = Blueprint('transactions', __name__)


# ---------------------- Store ----------------------
def list_transactions(tx_type=None, owner_id=None):
    q = Transaction.query
    if owner_id is not None:
        q = q.filter_by(owner_id=owner_id)
    if tx_type is not None:
        q = q.filter_by(ttype=tx_type)
    return q.order_by(Transaction.created_at.desc()).all()


def find_transaction(transaction_id):
    return db.session.get(Transaction, transaction_id)


def transaction_exists(transaction_id):
    return db.session.query(Transaction.id).filter_by(id=transaction_id).first() is not None


def create_transaction(owner, payload):
    tx = Transaction(
        owner_id=owner.id,
        name=payload.name,
        description=payload.description,
        amount=payload.amount,
        ttype=payload.type,
    )
    db.session.add(tx)
    db.session.commit()
    log.info('transaction_created', transaction_id=tx.id, user_id=owner.id)
    return tx


def update_transaction(tx, payload):
    transaction_id = tx.id
    tx.name = payload.name
    tx.description = payload.description
    tx.amount = payload.amount
    tx.ttype = payload.type
    _commit_versioned(transaction_id)
    log.info('transaction_updated', transaction_id=transaction_id)
    return tx


def delete_transaction(tx):
    transaction_id = tx.id
    db.session.delete(tx)
    _commit_versioned(transaction_id)
    log.info('transaction_deleted', transaction_id=transaction_id)


def _commit_versioned(transaction_id):
    """Commit, turning a write against a concurrently deleted row into NotFound."""
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        if not transaction_exists(transaction_id):
            log.warning('transaction_vanished', transaction_id=transaction_id)
            raise NotFound('No transaction with the specified ID was found.')
        raise


# ---------------------- Routes ----------------------
@transactions_bp.route('', methods=['GET'])
@with_caller
def list_all(caller):
    policy = list_policy()
    if policy != 'anonymous':
        require_caller(caller)
    tx_type = parse_type_filter(request.args.get('type'))
    owner_id = caller.id if policy == 'owner' else None
    txs = list_transactions(tx_type, owner_id)
    log.info('transactions_listed', policy=policy, count=len(txs))
    return jsonify([tx.to_dict() for tx in txs])


@transactions_bp.route('/<transaction_id>', methods=['GET'])
@with_caller
def get_one(transaction_id, caller):
    if caller is None and list_policy() == 'anonymous':
        tx = find_transaction(transaction_id)
        if tx is None:
            raise NotFound('No transaction with the specified ID was found.')
    else:
        tx = require_owner(caller, transaction_id)
    return jsonify(tx.to_dict())


@transactions_bp.route('', methods=['POST'])
@with_caller
def create(caller):
    require_caller(caller)
    payload = parse_body(TransactionRequest)
    tx = create_transaction(caller, payload)
    location = url_for('transactions.get_one', transaction_id=tx.id)
    return jsonify(tx.to_dict()), 201, {'Location': location}


@transactions_bp.route('/<transaction_id>', methods=['PUT'])
@with_caller
def update(transaction_id, caller):
    tx = require_owner(caller, transaction_id)
    payload = parse_body(TransactionRequest)
    tx = update_transaction(tx, payload)
    return jsonify(tx.to_dict())


@transactions_bp.route('/<transaction_id>', methods=['DELETE'])
@with_caller
def delete(transaction_id, caller):
    tx = require_owner(caller, transaction_id)
    delete_transaction(tx)
    return '', 204
