"""
formbind - Server-side HTML forms: define fields, render them, bind request data,
validate, and scan the bound values back into typed Python values.

Licensed under the MIT License.

Usage:

    from formbind import Form, Request

    form = Form()
    form.csrf_token(session_token)
    form.text_field('name', placeholder='Your name').set_required(True)
    form.email_field('email')
    form.number_field('age', value=18).min = 18

    # In a WSGI app
    if form.fill(Request.from_wsgi(environ)):
        name, email, age = form.scan(['name', 'email', 'age'], str, str, int)
    html = form.as_p()

    # Declarative with dataclasses
    from dataclasses import dataclass
    from formbind import form_field

    @dataclass
    class Signup:
        name: str = form_field('', 'label:Name; required:true; max:50')
        age: int = form_field(18, 'label:Age; min:18')

    form = Form.from_dataclass(Signup)
    if form.fill(request):
        signup = form.scan_into(Signup())
"""

__version__ = "0.1.0"

from formbind.errors import FormError, FormErrors, ScanError, UploadTooLarge, ValidationError
from formbind.fields import Field, FormElement
from formbind.forms import Form
from formbind.generate import form_field, generate_fields
from formbind.markup import Element
from formbind.multipart import UploadedFile
from formbind.request import Request
from formbind.scan import Scanner
from formbind.values import FormData, Option, Valuer, as_form_data, new_value

__all__ = [
    # Forms and fields
    'Form',
    'Field',
    'FormElement',
    'Element',
    # Values
    'FormData',
    'Option',
    'Valuer',
    'Scanner',
    'new_value',
    'as_form_data',
    # Request binding
    'Request',
    'UploadedFile',
    # Generation
    'form_field',
    'generate_fields',
    # Errors
    'FormError',
    'FormErrors',
    'ValidationError',
    'ScanError',
    'UploadTooLarge',
]
