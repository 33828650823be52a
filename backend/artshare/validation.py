# Input checks shared by the user and image routes

import logging
import math
import re
from urllib.parse import urlparse

import requests

from .errors import ValidationError
from .models import IMAGE_CATEGORIES

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MIN_PASSWORD_LENGTH = 8


def require_fields(data, fields):
    """Raise a ValidationError naming every field that is missing or blank."""
    missing = {}
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing[field] = 'This field is required'
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)


def reject_unknown_fields(data, allowed):
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValidationError(
            f"Unknown fields: {', '.join(unknown)}",
            fields={field: 'This field cannot be set' for field in unknown},
        )


def require_string(data, field, max_length=None):
    value = data.get(field)
    if not isinstance(value, str):
        raise ValidationError(f'Invalid {field}', fields={field: 'Must be a string'})
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f'Invalid {field}',
                              fields={field: f'Must be at most {max_length} characters'})
    return value


def optional_string(data, field, max_length=None):
    """Like require_string, but None or blank clears the field."""
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_string(data, field, max_length)


def validate_email(value) -> str:
    if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
        raise ValidationError('Invalid email', fields={'email': 'Must be a valid email address'})
    return value.strip().lower()


def validate_password(value) -> str:
    if not isinstance(value, str) or len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            'Invalid password',
            fields={'password': f'Must be at least {MIN_PASSWORD_LENGTH} characters'},
        )
    return value


def parse_price(value):
    """Return ``value`` as a float if it is a finite number greater than zero, else None."""
    if isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def validate_price(value) -> float:
    price = parse_price(value)
    if price is None:
        raise ValidationError('Invalid price', fields={'price': 'Must be a positive number'})
    return price


def validate_category(value) -> str:
    if value not in IMAGE_CATEGORIES:
        raise ValidationError('Invalid category',
                              fields={'category': f"Must be one of: {', '.join(IMAGE_CATEGORIES)}"})
    return value


def is_valid_url(value) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def link_is_reachable(url: str, timeout: float) -> bool:
    """Best-effort check that ``url`` answers with HTTP 200 right now."""
    try:
        response = requests.get(url, stream=True, timeout=timeout, allow_redirects=True)
    except requests.RequestException as e:
        logging.debug(f'Image link {url} unreachable: {e}')
        return False
    try:
        logging.debug(f'Image link {url} answered {response.status_code}')
        return response.status_code == 200
    finally:
        response.close()


def validate_image_link(value, timeout: float) -> str:
    if not is_valid_url(value) or not link_is_reachable(value.strip(), timeout):
        raise ValidationError('Invalid or inaccessible image link',
                              fields={'imageLink': 'Must be a reachable http(s) URL'})
    return value.strip()
