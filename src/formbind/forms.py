"""
Form: a collection of fields bound, validated and rendered together.
"""

import logging
import typing
from typing import Any, Callable, List, Optional, Sequence

from . import validators
from .errors import FormError, FormErrors, ValidationError
from .fields import (
    TYPE_BUTTON,
    TYPE_CHECKBOX,
    TYPE_EMAIL,
    TYPE_FILE,
    TYPE_HIDDEN,
    TYPE_NUMBER,
    TYPE_PASSWORD,
    TYPE_RADIO,
    TYPE_RESET,
    TYPE_SELECT,
    TYPE_SUBMIT,
    TYPE_TEXT,
    TYPE_TEXTAREA,
    Field,
    FormElement,
)
from .generate import generate_fields
from .markup import Element, escape_html
from .request import BODY_METHODS, QUERY_METHODS, Request
from .scan import Scanner, scan_values
from .values import Option, new_value


logger = logging.getLogger(__name__)


def default_title_caser(name: str) -> str:
    """Derive label text from a field name: ``first_name`` -> ``First Name``."""
    return name.replace('_', ' ').title()


# Used by the field builders to derive label text; replace to localize.
title_caser: Callable[[str], str] = default_title_caser

VALIDATION_ERROR_NAME = 'Validation'

Hook = Callable[[Request, 'Form'], None]


class Form:
    """
    An ordered collection of fields.

    Typical request handling:

        form = Form()
        form.text_field('name', placeholder='Your name').set_required(True)
        form.number_field('age', value=0)
        if form.fill(Request.from_wsgi(environ)):
            name, age = form.scan(['name', 'age'], str, int)
        html = form.as_p()

    Hooks run inside fill(): ``before_valid`` ahead of field validation and
    ``after_valid`` only when every field validated. A hook rejects the
    submission by raising ValidationError.
    """

    def __init__(
        self,
        fields: Optional[List[FormElement]] = None,
        before_valid: Optional[Hook] = None,
        after_valid: Optional[Hook] = None
    ):
        self.fields: List[FormElement] = list(fields or [])
        self.errors = FormErrors()
        self.before_valid = before_valid
        self.after_valid = after_valid

    @classmethod
    def from_dataclass(cls, obj: Any, **kwargs) -> 'Form':
        """Build a form from the tagged fields of a dataclass instance or class."""
        return cls(fields=generate_fields(obj), **kwargs)

    def __iter__(self):
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __html__(self) -> str:
        return str(self.as_p())

    # Binding and validation

    def validate(self) -> bool:
        """
        Validate every field.

        Failures are recorded both on the form and on the failing field.

        Returns:
            True if all fields are valid
        """
        valid = True
        for field in self.fields:
            field.errors.clear()
            try:
                field.validate()
            except ValidationError as e:
                valid = False
                self.errors.append(FormError(field.get_name(), e))
                field.add_error(e)
                logger.debug('Field %s failed validation: %s', field.get_name(), e)
        return valid

    def fill(self, request: Request) -> bool:
        """
        Bind request data onto the fields, run the hooks and validate.

        ``GET``, ``HEAD`` and ``DELETE`` bind from the query string; ``POST``,
        ``PUT`` and ``PATCH`` bind from the request body, with file fields
        taking the first uploaded file of their name.

        Args:
            request: The incoming request

        Returns:
            True if the submission is valid and both hooks accepted it
        """
        self.errors = FormErrors()

        if request.method in QUERY_METHODS:
            self._fill_values(request.query)
        elif request.method in BODY_METHODS:
            self._fill_body(request)
        else:
            logger.debug('Not binding fields for %s request', request.method)

        if self.before_valid is not None:
            try:
                self.before_valid(request, self)
            except ValidationError as e:
                self.add_error(VALIDATION_ERROR_NAME, e)
                return False

        valid = self.validate()

        if self.after_valid is not None and valid:
            try:
                self.after_valid(request, self)
            except ValidationError as e:
                self.add_error(VALIDATION_ERROR_NAME, e)
                return False

        return valid

    def _fill_values(self, values):
        for field in self.fields:
            field.set_value(values.get(field.get_name(), []))

    def _fill_body(self, request: Request):
        for field in self.fields:
            name = field.get_name()
            if field.is_file():
                uploads = request.files.get(name)
                if not uploads:
                    continue
                upload = uploads[0]
                field.set_file(upload.filename, upload.open(), upload.content_type)
                continue
            field.set_value(request.form.get(name, []))

    def clear(self):
        for field in self.fields:
            field.clear()

    # Lookup and mutation

    def field(self, name: str) -> Optional[FormElement]:
        for field in self.fields:
            if field.get_name() == name:
                return field
        return None

    def get(self, name: str):
        """Return the FormData bound to ``name``, or None."""
        field = self.field(name)
        if field is None:
            return None
        return field.value()

    def add_fields(self, *fields: FormElement):
        self.fields.extend(fields)

    def add_error(self, name: str, err: Exception):
        self.errors.append(FormError(name, err))

    def without(self, *names: str):
        """Remove the named fields (case-insensitive)."""
        lowered = {n.lower() for n in names}
        self.fields = [f for f in self.fields if f.get_name().lower() not in lowered]

    def disabled(self, *names: str) -> 'Form':
        """Disable the named fields (case-insensitive), or every field when no names are given."""
        lowered = {n.lower() for n in names}
        for field in self.fields:
            if not names or field.get_name().lower() in lowered:
                field.set_disabled(True)
        return self

    # Rendering

    def as_p(self) -> Element:
        """Render each field's label and control, and its errors, in ``<p>`` elements."""
        parts = []
        for field in self.fields:
            if field.has_label():
                parts.append(f'<p>{field.label()}</p>')
            parts.append(f'<p>{field.field()}</p>')
            for error in field.errors:
                parts.append(f'<p class="errors">{escape_html(str(error))}</p>')
        return Element(''.join(parts))

    # Field builders

    def csrf_token(self, token: str) -> 'Form':
        """Append a hidden ``csrf_token`` field carrying ``token``."""
        field = _new_field(TYPE_HIDDEN, 'csrf_token', 'csrf_token', '', '', token)
        field.label_text = ''
        self.add_fields(field)
        return self

    def text_field(self, name: str, id: str = '', classes: str = '', placeholder: str = '', value: str = '') -> Field:
        return self._add(_new_field(TYPE_TEXT, name, id, classes, placeholder, value))

    def password_field(self, name: str, id: str = '', classes: str = '', placeholder: str = '', value: str = '') -> Field:
        return self._add(_new_field(TYPE_PASSWORD, name, id, classes, placeholder, value))

    def email_field(self, name: str, id: str = '', classes: str = '', placeholder: str = '', value: str = '') -> Field:
        field = _new_field(TYPE_EMAIL, name, id, classes, placeholder, value)
        field.validators = validators.new(validators.email)
        return self._add(field)

    def number_field(self, name: str, id: str = '', classes: str = '', placeholder: str = '', value: int = 0) -> Field:
        return self._add(_new_field(TYPE_NUMBER, name, id, classes, placeholder, str(value)))

    def file_field(self, name: str, id: str = '', classes: str = '', placeholder: str = '', label: str = '') -> Field:
        field = _new_field(TYPE_FILE, name, id, classes, placeholder, '')
        if label:
            field.label_text = label
        return self._add(field)

    def hidden_field(self, name: str, id: str = '', classes: str = '', placeholder: str = '', value: str = '') -> Field:
        return self._add(_new_field(TYPE_HIDDEN, name, id, classes, placeholder, value))

    def text_area_field(self, name: str, id: str = '', classes: str = '', placeholder: str = '', value: str = '') -> Field:
        return self._add(_new_field(TYPE_TEXTAREA, name, id, classes, placeholder, value))

    def select_field(self, name: str, id: str = '', classes: str = '', options: Optional[List[Option]] = None) -> Field:
        field = _new_field(TYPE_SELECT, name, id, classes, '', '')
        field.options = list(options or [])
        return self._add(field)

    def checkbox_field(self, name: str, id: str = '', classes: str = '', placeholder: str = '', value: bool = False) -> Field:
        field = _new_field(TYPE_CHECKBOX, name, id, classes, placeholder, '')
        field.set_checked(value)
        return self._add(field)

    def radio_field(self, name: str, id: str = '', classes: str = '', placeholder: str = '', value: bool = False) -> Field:
        field = _new_field(TYPE_RADIO, name, id, classes, placeholder, '')
        field.set_checked(value)
        return self._add(field)

    def submit_button(self, name: str, id: str = '', classes: str = '', value: str = '') -> Field:
        return self._add(_new_field(TYPE_SUBMIT, name, id, classes, '', value))

    def reset_button(self, name: str, id: str = '', classes: str = '', value: str = '') -> Field:
        return self._add(_new_field(TYPE_RESET, name, id, classes, '', value))

    def button(self, name: str, id: str = '', classes: str = '', value: str = '') -> Field:
        return self._add(_new_field(TYPE_BUTTON, name, id, classes, '', value))

    def _add(self, field: Field) -> Field:
        self.add_fields(field)
        return field

    # Scanning

    def _resolve(self, names: Optional[Sequence[str]], count: int) -> List[FormElement]:
        all_fields = not names or names[0] == '*'
        if all_fields:
            ordered = list(self.fields)
        else:
            if len(names) != count:
                raise ValueError(
                    "fields and targets must be of same length, otherwise fields must be '*' or empty"
                )
            ordered = []
            for name in names:
                for field in self.fields:
                    if field.get_name().lower() == name.lower():
                        ordered.append(field)
                        break

        if len(ordered) != count:
            raise ValueError('Length mismatch between fields and targets')
        return ordered

    def scan(self, names: Optional[Sequence[str]], *targets: Any) -> List[Any]:
        """
        Convert bound values to typed Python values.

        Fields are matched to targets positionally. ``names`` selects and
        orders the fields (matched case-insensitively); ``None``, ``[]`` or
        ``['*']`` means every field in form order.

        Each target is a type (``str``, ``int``, ``float``, ``bool``,
        ``Decimal``, ``datetime``, ``date``, ``List[T]`` of those, or a class
        implementing Scanner) or a Scanner instance, which is updated in place.

        Args:
            names: Field names, or None/[]/['*'] for all fields
            *targets: One target per selected field

        Returns:
            Converted values; None for fields that are unbound or blank

        Raises:
            ValueError: If the number of fields and targets differ
            ScanError: If a value cannot be converted
        """
        results = []
        for field, target in zip(self._resolve(names, len(targets)), targets):
            data = field.value()
            if _blank(data):
                results.append(None)
                continue
            results.append(scan_values(data.value(), target))
        return results

    def scan_into(self, obj: Any, names: Optional[Sequence[str]] = None) -> Any:
        """
        Set attributes of ``obj`` from the bound values.

        Each field is matched to the attribute of the same name (exact, then
        case-insensitive). The target type comes from the class's type hints;
        attributes holding a Scanner are scanned in place. Fields without a
        matching attribute, or with a blank value, leave ``obj`` untouched.

        Args:
            obj: Destination object, typically a dataclass instance
            names: Field names to scan, or None for all fields

        Returns:
            ``obj``

        Raises:
            ScanError: If a value cannot be converted
        """
        hints = typing.get_type_hints(type(obj))
        by_lower = {attr.lower(): attr for attr in hints}

        selected = self.fields if not names or names[0] == '*' else [
            f for f in self.fields if f.get_name().lower() in {n.lower() for n in names}
        ]
        for field in selected:
            name = field.get_name()
            attr = name if name in hints else by_lower.get(name.lower())
            if attr is None:
                logger.debug('No attribute on %s for field %s', type(obj).__name__, name)
                continue

            data = field.value()
            if _blank(data):
                continue

            current = getattr(obj, attr, None)
            if isinstance(current, Scanner) and not isinstance(current, type):
                target = current
            else:
                target = hints[attr]
            setattr(obj, attr, scan_values(data.value(), target))
        return obj


def _new_field(typ: str, name: str, id: str, classes: str, placeholder: str, value: str) -> Field:
    return Field(
        name=name,
        type=typ,
        label_text=title_caser(name),
        id=id,
        class_=classes,
        placeholder=placeholder,
        form_value=new_value(value),
    )


def _blank(data) -> bool:
    return data is None or not data.value() or data.value()[0] == ''
