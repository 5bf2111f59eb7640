import enum
import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

MAX_AMOUNT = 2**31 - 1


def _new_id():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class TransactionType(enum.Enum):
    EXPENSE = 'Expense'
    INCOME = 'Income'

    @classmethod
    def parse(cls, value):
        """Match a type name case-insensitively ('expense' -> EXPENSE)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        raise ValueError("Type must be either 'Expense' or 'Income'.")


class User(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    credential = db.relationship('Credential', backref='user', uselist=False, lazy=True, cascade="all, delete-orphan")
    transactions = db.relationship('Transaction', backref='owner', lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'email': self.email}


class Credential(db.Model):
    # Storage-only: never serialized, never reachable from User.to_dict().
    user_id = db.Column(db.String(36), db.ForeignKey('user.id', ondelete='CASCADE'), primary_key=True)
    password_hash = db.Column(db.String(255), nullable=False)


class Transaction(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    owner_id = db.Column(db.String(36), db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.String(4096), nullable=False, default='')
    amount = db.Column(db.Integer, nullable=False)  # minor currency units, always positive
    ttype = db.Column(db.Enum(TransactionType, name='transaction_type'), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}

    def to_dict(self):
        created_at = self.created_at
        if created_at.tzinfo is None:
            # SQLite hands back naive datetimes; they were stored as UTC.
            created_at = created_at.replace(tzinfo=timezone.utc)
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description or '',
            'amount': self.amount,
            'type': self.ttype.value,
            'createdAt': created_at.isoformat(),
            'ownerId': self.owner_id,
        }
