"""Request bodies accepted by the API, validated with pydantic."""

import re
from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from flask import request
from pydantic import AfterValidator, BaseModel, Field, ValidationError, field_validator

from errors import InvalidRequest
from models import MAX_AMOUNT, TransactionType

PASSWORD_PATTERN = re.compile(r'(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}')


def check_email(value):
    # Syntax only; the address is stored exactly as given so lookups stay case-sensitive.
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError(str(exc)) from exc
    return value


Email = Annotated[str, AfterValidator(check_email)]


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: Email
    password: str = Field(min_length=8, max_length=32)

    @field_validator('password')
    @classmethod
    def password_complexity(cls, value):
        if not PASSWORD_PATTERN.fullmatch(value):
            raise ValueError(
                'Password must contain at least one lowercase letter, one uppercase letter, '
                'one digit, and one special character (@$!%*?&).'
            )
        return value


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(min_length=1)


class TransactionRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default='', max_length=4096)
    amount: int = Field(gt=0, le=MAX_AMOUNT, strict=True)
    type: TransactionType

    @field_validator('type', mode='before')
    @classmethod
    def parse_type(cls, value):
        return TransactionType.parse(value)

    @field_validator('description')
    @classmethod
    def default_description(cls, value):
        return value or ''


def parse_body(schema):
    """Validate the JSON request body against ``schema`` or raise InvalidRequest."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest('Request body must be a JSON object.')
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise InvalidRequest.from_pydantic(exc) from exc


def parse_type_filter(raw):
    """Parse the optional ``?type=`` query parameter."""
    if raw is None:
        return None
    try:
        return TransactionType.parse(raw)
    except ValueError as exc:
        raise InvalidRequest('Invalid transaction type.', {'type': [str(exc)]}) from exc
