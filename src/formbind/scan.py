"""
Type-directed conversion of bound string values.

Targets are either types (``str``, ``int``, ``float``, ``bool``, ``Decimal``,
``datetime``, ``date`` and ``List[...]`` of those) or objects implementing
the Scanner protocol, which parse the string into themselves.
"""

import datetime
import decimal
import typing
from typing import Any, Callable, Dict, List, Protocol, Tuple, runtime_checkable

from .errors import ScanError


@runtime_checkable
class Scanner(Protocol):
    """
    Implemented by any destination that is not a primitive or a list of
    primitives. The object must be able to scan a string into itself.
    """

    def scan_str(self, s: str) -> None:
        ...


TRUE_VALUES = ('true', 'yes', '1', 'on', 'checked', 'selected')
FALSE_VALUES = ('false', 'no', '0')


def parse_bool(s: str) -> bool:
    """
    Parse a form boolean.

    Raises:
        ScanError: If ``s`` is not a recognised boolean spelling
    """
    lowered = s.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ScanError('invalid boolean')


def _parse_int(s: str) -> int:
    try:
        return int(s.strip(), 10)
    except ValueError:
        raise ScanError('invalid integer')


def _parse_float(s: str) -> float:
    try:
        return float(s)
    except ValueError:
        raise ScanError('invalid float')


def _parse_decimal(s: str) -> decimal.Decimal:
    try:
        return decimal.Decimal(s.strip())
    except decimal.InvalidOperation:
        raise ScanError('invalid decimal')


def _parse_datetime(s: str) -> datetime.datetime:
    try:
        return datetime.datetime.fromisoformat(s.strip())
    except ValueError:
        raise ScanError('invalid date')


def _parse_date(s: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(s.strip())
    except ValueError:
        raise ScanError('invalid date')


PARSERS: Dict[type, Callable[[str], Any]] = {
    str: str,
    bool: parse_bool,
    int: _parse_int,
    float: _parse_float,
    decimal.Decimal: _parse_decimal,
    datetime.datetime: _parse_datetime,
    datetime.date: _parse_date,
}


def _unwrap_optional(target: Any) -> Any:
    """Reduce ``Optional[T]`` to ``T``."""
    if typing.get_origin(target) is typing.Union:
        args = [a for a in typing.get_args(target) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return target


def _list_element(target: Any) -> Tuple[bool, Any]:
    """Return (is_list, element_type) for ``list``, ``List[T]`` and ``list[T]``."""
    if target is list:
        return True, str
    if typing.get_origin(target) in (list, List):
        args = typing.get_args(target)
        return True, args[0] if args else str
    return False, None


def scan_values(values: List[str], target: Any) -> Any:
    """
    Convert a field's bound values to ``target``.

    Scalar targets use the first value; list targets convert every value.
    Scanner objects are updated in place and returned.

    Args:
        values: Bound string values (must be non-empty)
        target: Destination type or Scanner instance

    Returns:
        The converted value

    Raises:
        ScanError: If a value does not parse or the target is unsupported
    """
    first = values[0]
    target = _unwrap_optional(target)

    if isinstance(target, type) and target not in PARSERS and issubclass(target, Scanner):
        target = target()

    if isinstance(target, Scanner):
        try:
            target.scan_str(first)
        except Exception as e:
            raise ScanError(f'invalid value, {e}') from e
        return target

    is_list, element = _list_element(target)
    if is_list:
        parser = PARSERS.get(element)
        if parser is None:
            raise ScanError(f'invalid list element type, {getattr(element, "__name__", element)}')
        return [parser(v) for v in values]

    parser = PARSERS.get(target)
    if parser is None:
        raise ScanError(f'invalid field type, {getattr(target, "__name__", target)}')
    return parser(first)
