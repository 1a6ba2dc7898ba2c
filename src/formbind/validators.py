"""
Reusable field validators.

A validator is a callable receiving the field's bound FormData. It returns
nothing on success and raises ValidationError on failure:

    field.validators = validators.new(
        validators.min_length(3),
        validators.regex('<<alphanumeric>>', can_be_empty=False),
    )
"""

import re
from email.utils import parseaddr
from typing import Callable, Dict, List

from .errors import ValidationError
from .values import FormData


Validator = Callable[[FormData], None]

# Named placeholders accepted by regex(), e.g. regex('<<int>>-<<int>>')
REGEX_PLACEHOLDERS: Dict[str, str] = {
    'email': r'[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}',
    'float': r'[+-]?(?:\d+\.?\d*|\.\d+)',
    'int': r'[+-]?\d+',
    'alpha': r'[A-Za-z]+',
    'alphanumeric': r'[A-Za-z0-9]+',
    'phone': r'\+?[0-9 ()\-]{7,20}',
    'url': r'https?://[^\s/$.?#][^\s]*',
    'date': r'\d{4}-\d{2}-\d{2}',
    'hex': r'(?:0[xX])?[0-9A-Fa-f]+',
}

_PLACEHOLDER_RE = re.compile(r'<<(\w+)>>')


def new(*validators: Validator) -> List[Validator]:
    return list(validators)


def _first(data: FormData, missing: str) -> str:
    values = data.value() if data is not None else []
    if not values:
        raise ValidationError(missing)
    return values[0]


def max_length(maximum: int) -> Validator:
    """Check that the value is at most ``maximum`` characters long."""
    def validate(data: FormData) -> None:
        value = _first(data, 'value is required')
        if len(value) > maximum:
            raise ValidationError('value is too long')
    return validate


def min_length(minimum: int) -> Validator:
    """Check that the value is at least ``minimum`` characters long."""
    def validate(data: FormData) -> None:
        value = _first(data, 'value is required')
        if len(value) < minimum:
            raise ValidationError('value is too short')
    return validate


def length(minimum: int, maximum: int) -> Validator:
    """Check that the value length lies within ``[minimum, maximum]``."""
    def validate(data: FormData) -> None:
        value = _first(data, 'value is required')
        if len(value) < minimum:
            raise ValidationError('value is too short')
        if len(value) > maximum:
            raise ValidationError('value is too long')
    return validate


def email(data: FormData) -> None:
    """Verify that the value is a single, well-formed email address."""
    value = _first(data, 'email is required')
    _, address = parseaddr(value)
    local, sep, domain = address.rpartition('@')
    if not sep or not local or '@' in local:
        raise ValidationError(f'invalid email address: {value}')
    if '.' not in domain or domain.startswith('.') or domain.endswith('.'):
        raise ValidationError(f'invalid email address: {value}')


def password_strength(minlen: int, maxlen: int, needs_special: bool) -> Validator:
    """
    Build a password policy validator.

    The password must:
        - be between minlen and maxlen characters long
        - contain at least one uppercase and one lowercase letter
        - contain at least one digit and one non-digit
        - contain no whitespace
        - contain a special character, if needs_special is set
    """
    def validate(data: FormData) -> None:
        pw = _first(data, 'password is required')
        if len(pw) < minlen:
            raise ValidationError('password is too short')
        if len(pw) > maxlen:
            raise ValidationError('password is too long')

        upper = sum(1 for c in pw if c.isupper())
        lower = sum(1 for c in pw if c.islower())
        digits = sum(1 for c in pw if c.isdigit())
        spaces = sum(1 for c in pw if c.isspace())

        if upper == 0 or lower == 0:
            raise ValidationError(
                'password must contain at least one uppercase letter, and at least one lowercase letter'
            )
        if digits == 0 or digits == len(pw):
            raise ValidationError('password must contain at least one digit, and at least one non-digit')
        if spaces > 0:
            raise ValidationError('password must not contain spaces')
        if needs_special and len(pw) == upper + lower + digits:
            raise ValidationError('password must contain at least one special character')
    return validate


def expand_regex(pattern: str) -> str:
    """
    Replace ``<<name>>`` placeholders with their built-in expressions.

    Raises:
        ValueError: If a placeholder name is unknown
    """
    def replace(match):
        name = match.group(1).lower()
        if name not in REGEX_PLACEHOLDERS:
            raise ValueError(f'Unknown regex placeholder: <<{match.group(1)}>>')
        return f'(?:{REGEX_PLACEHOLDERS[name]})'

    return _PLACEHOLDER_RE.sub(replace, pattern)


def regex(pattern: str, can_be_empty: bool = False) -> Validator:
    """
    Check that the whole value matches ``pattern``.

    Examples:
        regex('<<email>>') rejects 'email' with "not a match"
        regex('<<float>>') accepts '0.01'

    Args:
        pattern: Regular expression, optionally containing placeholders
        can_be_empty: Whether a missing or empty value is accepted
    """
    compiled = re.compile(expand_regex(pattern))

    def validate(data: FormData) -> None:
        values = data.value() if data is not None else []
        if not values or values[0] == '':
            if can_be_empty:
                return
            raise ValidationError('value is required to match regex')
        if not compiled.fullmatch(values[0]):
            raise ValidationError('not a match')
    return validate
