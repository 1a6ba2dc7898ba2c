"""
Field generation from dataclasses.

A dataclass field opts in by carrying a ``form`` tag in its metadata, most
easily declared through ``form_field``:

    @dataclass
    class Signup:
        name: str = form_field('', 'label:Name; placeholder:Your name; required:true')
        age: int = form_field(0, 'label:Age; min:18; max:130')
        plan: List[str] = form_field(default_factory=lambda: ['free', 'pro'], tag='label:Plan')

Tag format: ``key:value`` pairs separated by ``;``. The value runs to the end
of the pair, so it may itself contain ``:``. Recognised keys:

    name         - The field name (defaults to the attribute name)
    type         - The field type (text, password, email, number, range, textarea,
                   checkbox, radio, select, hidden, file, date, time, datetime-local)
    label        - The label text
    placeholder  - The placeholder text
    class        - The CSS class of the control
    id           - The element id
    autocomplete - The autocomplete hint
    required     - Whether the field is required (true unless "false", "no" or "0")
    readonly     - Whether the field is read-only
    disabled     - Whether the field is disabled
    min          - The minimum length (or value, for numbers)
    max          - The maximum length (or value, for numbers)
    regex        - A pattern the value must fully match (see validators.regex)
"""

import dataclasses
import logging
from typing import Any, List, Tuple

from .fields import (
    TYPE_CHECKBOX,
    TYPE_NUMBER,
    TYPE_SELECT,
    TYPE_TEXT,
    Field,
)
from . import validators
from .values import FormData, Option, as_form_data


logger = logging.getLogger(__name__)

TAG_KEY = 'form'

_FALSE_FLAGS = ('false', 'no', '0')


def form_field(default: Any = dataclasses.MISSING, tag: str = '', **kwargs) -> Any:
    """
    Declare a dataclass field carrying a form tag.

    Args:
        default: Default value (as for dataclasses.field)
        tag: Form tag, e.g. ``'label:Email; type:email; required:true'``
        **kwargs: Passed through to dataclasses.field

    Returns:
        A dataclasses.Field
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[TAG_KEY] = tag
    return dataclasses.field(default=default, metadata=metadata, **kwargs)


def parse_tag(tag: str) -> List[Tuple[str, str]]:
    """
    Split a form tag into (key, value) pairs.

    Keys are lower-cased; pieces without a ``:`` are ignored.
    """
    pairs = []
    for piece in tag.split(';'):
        key, sep, value = piece.partition(':')
        if not sep:
            continue
        pairs.append((key.strip().lower(), value.strip()))
    return pairs


def _parse_int(key: str, value: str, attr: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f'Invalid {key} for field {attr}: {value!r} is not an integer')


def _apply_tag(f: Field, pairs: List[Tuple[str, str]], attr: str) -> None:
    for key, value in pairs:
        if key == 'name':
            f.name = value
        elif key == 'type':
            f.type = value
        elif key == 'label':
            f.label_text = value
        elif key == 'placeholder':
            f.placeholder = value
        elif key == 'class':
            f.class_ = value
        elif key == 'id':
            f.id = value
        elif key == 'autocomplete':
            f.autocomplete = value
        elif key == 'required':
            f.required = value.lower() not in _FALSE_FLAGS
        elif key == 'readonly':
            f.readonly = value.lower() not in _FALSE_FLAGS
        elif key == 'disabled':
            f.disabled = value.lower() not in _FALSE_FLAGS
        elif key == 'min':
            f.min = _parse_int(key, value, attr)
        elif key == 'max':
            f.max = _parse_int(key, value, attr)
        elif key == 'regex':
            pass  # applied once "required" is known
        else:
            logger.debug('Ignoring unknown form tag key %r on %s', key, attr)

    for key, value in pairs:
        if key == 'regex':
            f.validators.append(validators.regex(value, can_be_empty=not f.required))


def _current_value(obj: Any, dc_field: dataclasses.Field) -> Any:
    if not isinstance(obj, type):
        return getattr(obj, dc_field.name)
    if dc_field.default is not dataclasses.MISSING:
        return dc_field.default
    if dc_field.default_factory is not dataclasses.MISSING:
        return dc_field.default_factory()
    return None


def _options_from(values: Any) -> List[Option]:
    options = []
    for item in values:
        data = as_form_data(item)
        options.append(Option(value=data, text=str(data)))
    return options


def generate_fields(obj: Any) -> List[Field]:
    """
    Generate fields from a dataclass instance or class.

    For an instance the current attribute values are bound to the fields; for
    a class the defaults are used.

    Args:
        obj: Dataclass instance or dataclass type

    Returns:
        List of Field, in declaration order

    Raises:
        TypeError: If ``obj`` is not a dataclass, or a value cannot be represented
        ValueError: If a ``min``/``max`` tag value is not an integer
    """
    if not dataclasses.is_dataclass(obj):
        raise TypeError('not a dataclass')

    fields = []
    for dc_field in dataclasses.fields(obj):
        tag = dc_field.metadata.get(TAG_KEY)
        if tag is None:
            continue

        f = Field(name=dc_field.name, type='')
        _apply_tag(f, parse_tag(tag), dc_field.name)

        value = _current_value(obj, dc_field)
        is_sequence = isinstance(value, (list, tuple))
        if value is not None and not is_sequence:
            f.form_value = as_form_data(value)

        if not f.type:
            f.type = _infer_type(value)
            if f.type == TYPE_SELECT and is_sequence:
                f.options = _options_from(value)
                f.form_value = FormData()
            elif f.type == TYPE_CHECKBOX:
                # a checked box submits "on"
                f.checked = value is True
                f.form_value = FormData()
        elif is_sequence:
            f.options = _options_from(value)
            f.form_value = FormData()

        fields.append(f)
    return fields


def _infer_type(value: Any) -> str:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return TYPE_CHECKBOX
    if isinstance(value, (int, float)):
        return TYPE_NUMBER
    if isinstance(value, (list, tuple)):
        return TYPE_SELECT
    return TYPE_TEXT

