"""
Request body parsing helpers.

Each helper appends a field-level message to ``errors`` instead of raising,
so a route can report every problem with a body at once.
"""
import re
from datetime import datetime, date
from decimal import Decimal, InvalidOperation

from flask import request

from errors import ValidationError, field_error

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def get_json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def parse_date(value, field, errors, required=True):
    if value in (None, ''):
        if required:
            errors.append(field_error(field, f'{field} is required'))
        return None
    if isinstance(value, date):
        return value
    try:
        # Accept plain dates and full ISO timestamps
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).date()
    except ValueError:
        errors.append(field_error(field, f'{field} must be a valid date'))
        return None


def parse_enum(enum_cls, value, field, errors, required=True):
    if value in (None, ''):
        if required:
            errors.append(field_error(field, f'{field} is required'))
        return None
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        allowed = ', '.join(e.value for e in enum_cls)
        errors.append(field_error(field, f'{field} must be one of {allowed}'))
        return None


def parse_int(value, field, errors, required=True):
    if value in (None, ''):
        if required:
            errors.append(field_error(field, f'{field} is required'))
        return None
    if isinstance(value, bool):
        errors.append(field_error(field, f'{field} must be a number'))
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        errors.append(field_error(field, f'{field} must be a number'))
        return None


def parse_decimal(value, field, errors, required=True, minimum=None):
    if value in (None, ''):
        if required:
            errors.append(field_error(field, f'{field} is required'))
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        errors.append(field_error(field, f'{field} must be a number'))
        return None
    if not number.is_finite() or (minimum is not None and number < minimum):
        errors.append(field_error(field, f'{field} must be a number of at least {minimum or 0}'))
        return None
    return number


def parse_text(value, field, errors, required=True):
    text = str(value).strip() if value is not None else ''
    if not text:
        if required:
            errors.append(field_error(field, f'{field} is required'))
        return None
    return text


def parse_email(value, field, errors, required=True):
    text = parse_text(value, field, errors, required)
    if text is not None and not EMAIL_RE.match(text):
        errors.append(field_error(field, 'Valid email is required'))
        return None
    return text


def raise_if_errors(errors):
    if errors:
        raise ValidationError('Validation error', errors)
