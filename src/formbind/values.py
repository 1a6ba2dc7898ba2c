"""
Bound field values for formbind.
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, BinaryIO, List, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class Valuer(Protocol):
    """Returns the underlying value represented as a string."""

    def string_value(self) -> str:
        ...


@dataclass
class FormData:
    """
    The value bound to a single field.

    A field submitted several times (multi-select, repeated checkboxes) keeps
    every value in ``values``. File fields carry the uploaded filename and an
    open binary stream instead.

    Attributes:
        values: Submitted string values, in request order
        filename: Original filename of an uploaded file
        file: Readable binary stream of the uploaded file
        content_type: MIME type reported by the client for the file
    """
    values: List[str] = field(default_factory=list)
    filename: str = ''
    file: Optional[BinaryIO] = None
    content_type: str = ''

    def __str__(self) -> str:
        """Return the first value, or an empty string."""
        if not self.values:
            return ''
        return self.values[0]

    def value(self) -> List[str]:
        return self.values

    def is_file(self) -> bool:
        return self.file is not None and self.filename != ''

    def get_file(self) -> Tuple[str, Optional[BinaryIO]]:
        return self.filename, self.file


@dataclass
class Option:
    """A single ``<option>`` of a select field."""
    value: Optional[FormData] = None
    text: str = ''
    selected: bool = False


def new_value(s: str) -> FormData:
    """Build a single-valued FormData."""
    return FormData(values=[s])


def as_form_data(obj: Any) -> FormData:
    """
    Convert a Python value to FormData.

    Args:
        obj: Value to convert (primitive, bytes, date/time, Valuer, or an
            object with its own ``__str__``)

    Returns:
        Single-valued FormData

    Raises:
        TypeError: If the value has no string representation
    """
    # bool before int: bool is an int subclass
    if isinstance(obj, bool):
        return new_value('true' if obj else 'false')
    if isinstance(obj, int):
        return new_value(str(obj))
    if isinstance(obj, float):
        return new_value(repr(obj))
    if isinstance(obj, str):
        return new_value(obj)
    if isinstance(obj, (bytes, bytearray)):
        return new_value(bytes(obj).decode('utf-8'))
    if isinstance(obj, Valuer):
        return new_value(obj.string_value())
    if isinstance(obj, (datetime.datetime, datetime.date, datetime.time)):
        return new_value(obj.isoformat())
    if obj is not None and type(obj).__str__ is not object.__str__:
        return new_value(str(obj))
    raise TypeError(
        f'unsupported type {type(obj).__name__} must implement the formbind.Valuer protocol'
    )
