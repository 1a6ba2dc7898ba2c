"""
Form fields: binding, validation and rendering.
"""

import math
from typing import BinaryIO, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .errors import FormError, FormErrors, ValidationError
from .markup import Element, build_tag, escape_html
from .validators import Validator
from .values import FormData, Option


TYPE_TEXT = 'text'
TYPE_PASSWORD = 'password'
TYPE_EMAIL = 'email'
TYPE_NUMBER = 'number'
TYPE_RANGE = 'range'
TYPE_TEXTAREA = 'textarea'
TYPE_CHECKBOX = 'checkbox'
TYPE_RADIO = 'radio'
TYPE_SELECT = 'select'
TYPE_HIDDEN = 'hidden'
TYPE_FILE = 'file'
TYPE_SUBMIT = 'submit'
TYPE_BUTTON = 'button'
TYPE_RESET = 'reset'

BUTTON_TYPES = {TYPE_SUBMIT, TYPE_RESET, TYPE_BUTTON}
NUMERIC_TYPES = {TYPE_NUMBER, TYPE_RANGE}


@runtime_checkable
class FormElement(Protocol):
    """Anything a Form can bind, validate and render."""

    errors: FormErrors

    def get_name(self) -> str: ...
    def has_label(self) -> bool: ...
    def label(self) -> Element: ...
    def field(self) -> Element: ...

    def set_value(self, values: List[str]) -> None: ...
    def set_file(self, filename: str, file: BinaryIO, content_type: str = '') -> None: ...
    def value(self) -> Optional[FormData]: ...
    def clear(self) -> None: ...
    def get_file(self) -> Tuple[str, Optional[BinaryIO]]: ...
    def get_value(self) -> List[str]: ...
    def get_options(self) -> List[Option]: ...

    def validate(self) -> None: ...

    def add_error(self, err: Exception) -> None: ...
    def has_error(self) -> bool: ...

    def set_read_only(self, read_only: bool) -> None: ...
    def set_disabled(self, disabled: bool) -> None: ...
    def set_required(self, required: bool) -> None: ...
    def set_hidden(self, hidden: bool) -> None: ...
    def set_checked(self, checked: bool) -> None: ...
    def set_selected(self, selected: bool) -> None: ...

    def is_file(self) -> bool: ...


class Field:
    """
    A single form control.

    Message formats receive the label text through ``%s``, e.g.
    ``field.error_message_required = 'Please fill in %s'``.

    ``render`` and ``render_label`` replace the default markup when set; they
    receive the field and return the HTML string to use.
    """

    def __init__(
        self,
        name: str = '',
        type: str = TYPE_TEXT,
        label_text: str = '',
        *,
        label_class: str = '',
        id: str = '',
        class_: str = '',
        placeholder: str = '',
        form_value: Optional[FormData] = None,
        max: Optional[int] = None,
        min: Optional[int] = None,
        required: bool = False,
        disabled: bool = False,
        readonly: bool = False,
        checked: bool = False,
        selected: bool = False,
        options: Optional[List[Option]] = None,
        autocomplete: str = '',
        validators: Optional[List[Validator]] = None,
        error_message_required: str = '',
        error_message_max: str = '',
        error_message_min: str = '',
        error_message_nan: str = '',
        render: Optional[Callable[['Field'], str]] = None,
        render_label: Optional[Callable[['Field'], str]] = None,
    ):
        self.name = name
        self.type = type
        self.label_text = label_text
        self.label_class = label_class
        self.id = id
        self.class_ = class_
        self.placeholder = placeholder
        self.form_value = form_value
        self.max = max
        self.min = min
        self.required = required
        self.disabled = disabled
        self.readonly = readonly
        self.checked = checked
        self.selected = selected
        self.options: List[Option] = options or []
        self.autocomplete = autocomplete
        self.validators: List[Validator] = validators or []
        self.error_message_required = error_message_required
        self.error_message_max = error_message_max
        self.error_message_min = error_message_min
        self.error_message_nan = error_message_nan
        self.render = render
        self.render_label = render_label
        self.errors = FormErrors()

    def __repr__(self) -> str:
        return f'Field(name={self.name!r}, type={self.type!r})'

    def __str__(self) -> str:
        return str(self.label()) + str(self.field())

    def __html__(self) -> str:
        return str(self)

    # Binding

    def get_name(self) -> str:
        return self.name

    def set_value(self, values: Optional[List[str]]) -> None:
        self.form_value = FormData(values=list(values or []))

    def value(self) -> Optional[FormData]:
        return self.form_value

    def get_value(self) -> List[str]:
        if self.form_value is None:
            return []
        return self.form_value.values

    def set_file(self, filename: str, file: BinaryIO, content_type: str = '') -> None:
        """
        Bind an uploaded file.

        Raises:
            ValueError: If this is not a file field
        """
        if self.type != TYPE_FILE:
            raise ValueError(f'field {self.name} is not a file field')
        self.form_value = FormData(filename=filename, file=file, content_type=content_type)

    def get_file(self) -> Tuple[str, Optional[BinaryIO]]:
        if self.form_value is None:
            return '', None
        return self.form_value.get_file()

    def is_file(self) -> bool:
        return self.type == TYPE_FILE

    def clear(self) -> None:
        self.form_value = FormData()

    def get_options(self) -> List[Option]:
        return self.options

    def set_options(self, options: List[Option]) -> None:
        self.options = options

    # Errors

    def add_error(self, err: Exception) -> None:
        self.errors.append(FormError(self.name, err))

    def has_error(self) -> bool:
        return len(self.errors) > 0

    # Attributes

    def has_label(self) -> bool:
        return self.label_text != ''

    def set_read_only(self, read_only: bool) -> None:
        self.readonly = read_only

    def set_disabled(self, disabled: bool) -> None:
        self.disabled = disabled

    def set_required(self, required: bool) -> None:
        self.required = required

    def set_hidden(self, hidden: bool) -> None:
        if hidden:
            self.type = TYPE_HIDDEN

    def set_checked(self, checked: bool) -> None:
        self.checked = checked

    def set_selected(self, selected: bool) -> None:
        self.selected = selected

    # Validation

    def _single_value(self) -> str:
        if self.form_value is None:
            return ''
        return str(self.form_value)

    def _message(self, custom: str, default: str, *args) -> str:
        if custom:
            # only the label is substituted; other % signs stay literal
            return custom.replace('%s', self.label_text, 1)
        return default % ((self.label_text,) + args)

    def validate(self) -> None:
        """
        Validate the bound value.

        Raises:
            ValidationError: On the first failed check
        """
        value = self._single_value()
        bound_file = self.form_value is not None and self.form_value.is_file()

        if self.required and not value and not bound_file:
            raise ValidationError(self._message(self.error_message_required, '%s is required'))
        if self.form_value is None or (not value and not bound_file):
            return

        if self.type in NUMERIC_TYPES:
            try:
                number = float(value)
            except ValueError:
                number = math.nan
            if not math.isfinite(number):
                raise ValidationError(
                    self._message(self.error_message_nan, '%s is not a valid number (%s)', value)
                )
            if self.max is not None and number > self.max:
                raise ValidationError(self._message(self.error_message_max, '%s is too large'))
            if self.min is not None and number < self.min:
                raise ValidationError(self._message(self.error_message_min, '%s is too small'))
        elif self.type != TYPE_FILE:
            if self.max is not None and len(value) > self.max:
                raise ValidationError(self._message(
                    self.error_message_max, '%s is too long by %d characters', len(value) - self.max
                ))
            if self.min is not None and len(value) < self.min:
                raise ValidationError(self._message(
                    self.error_message_min, '%s is too short by %d characters', self.min - len(value)
                ))

        for validator in self.validators:
            validator(self.form_value)

    # Rendering

    def _attrs(self, value: str) -> Dict[str, Optional[str]]:
        attrs: Dict[str, Optional[str]] = {
            'type': self.type or TYPE_TEXT,
            'id': self.id or self.name,
        }
        if self.name:
            attrs['name'] = self.name
        if self.placeholder:
            attrs['placeholder'] = self.placeholder
        if self.class_:
            attrs['class'] = self.class_
        if value and self.type not in (TYPE_FILE, TYPE_TEXTAREA):
            attrs['value'] = value
        if self.max is not None:
            attrs['max'] = str(self.max)
        if self.min is not None:
            attrs['min'] = str(self.min)
        if self.required:
            attrs['required'] = None
        if self.disabled:
            attrs['disabled'] = None
        if self.readonly:
            attrs['readonly'] = None
        if self.checked:
            attrs['checked'] = None
        if self.selected:
            attrs['selected'] = None
        if self.autocomplete:
            attrs['autocomplete'] = self.autocomplete
        return attrs

    def field(self) -> Element:
        """Render the form control."""
        if self.render is not None:
            return Element(self.render(self))

        value = self._single_value()
        attrs = self._attrs(value)

        if self.type in BUTTON_TYPES:
            return Element(build_tag('button', attrs) + escape_html(self.label_text) + '</button>\n')

        if self.type == TYPE_TEXTAREA:
            del attrs['type']
            return Element(build_tag('textarea', attrs) + escape_html(value) + '</textarea>\n')

        if self.type == TYPE_FILE:
            filename = self.form_value.filename if self.form_value is not None else ''
            shown = filename or value
            preview = f'<p class="form-control">{escape_html(shown)}</p>' if shown else ''
            return Element(preview + build_tag('input', attrs) + '\n')

        if self.type == TYPE_CHECKBOX:
            if value.lower() in ('on', 'true'):
                attrs['checked'] = None
            return Element(build_tag('input', attrs) + '\n')

        if self.type == TYPE_SELECT:
            return Element(self._render_select(attrs))

        return Element(build_tag('input', attrs) + '\n')

    def _render_select(self, attrs: Dict[str, Optional[str]]) -> str:
        del attrs['type']
        attrs.pop('value', None)
        bound = set(self.get_value())
        parts = [build_tag('select', attrs) + '\n']
        for option in self.options:
            option_value = str(option.value) if option.value is not None else ''
            option_attrs: Dict[str, Optional[str]] = {'value': option_value}
            if option.selected or option_value in bound:
                option_attrs['selected'] = None
            parts.append(build_tag('option', option_attrs) + escape_html(option.text) + '</option>\n')
        parts.append('</select>\n')
        return ''.join(parts)

    def label(self) -> Element:
        """Render the ``<label>`` for this field (empty without label text)."""
        if self.render_label is not None:
            return Element(self.render_label(self))
        if not self.label_text:
            return Element('')
        attrs: Dict[str, Optional[str]] = {'for': self.id or self.name}
        if self.label_class:
            attrs['class'] = self.label_class
        return Element(build_tag('label', attrs) + escape_html(self.label_text) + '</label>\n')
