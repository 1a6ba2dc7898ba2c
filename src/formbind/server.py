"""
Preview server: serve a form, bind submissions and report the first valid one.
"""

import logging
import secrets
import tempfile
import time
import webbrowser
from typing import Any, Callable, Dict, Iterable, List, Optional
from wsgiref.simple_server import WSGIRequestHandler, make_server

from .errors import UploadTooLarge, ValidationError
from .fields import BUTTON_TYPES
from .forms import Form, VALIDATION_ERROR_NAME
from .markup import build_tag, escape_html, render_page
from .output import save_files
from .request import Request


logger = logging.getLogger(__name__)

CSRF_FIELD = 'csrf_token'


def form_html(form: Form, action: str = '', method: str = 'POST') -> str:
    """
    Render a complete ``<form>`` element.

    Adds ``enctype="multipart/form-data"`` when the form has a file field, a
    submit button when the form has none, and the form-level errors (those not
    attached to a field, such as hook failures) above the fields.
    """
    attrs: Dict[str, Optional[str]] = {'method': method}
    if action:
        attrs['action'] = action
    if any(f.is_file() for f in form.fields):
        attrs['enctype'] = 'multipart/form-data'

    parts = [build_tag('form', attrs)]
    field_names = {f.get_name() for f in form.fields}
    for error in form.errors:
        if error.name not in field_names:
            parts.append(f'<p class="errors">{escape_html(str(error))}</p>')
    parts.append(str(form.as_p()))

    has_submit = any(getattr(f, 'type', '') in BUTTON_TYPES for f in form.fields)
    if not has_submit:
        parts.append('<button type="submit">Submit</button>')
    parts.append('</form>')
    return '\n'.join(parts)


class _QuietHandler(WSGIRequestHandler):
    """Route wsgiref's access log to the module logger instead of stderr."""

    def log_message(self, format, *args):
        logger.debug('%s - %s', self.address_string(), format % args)


class PreviewServer:
    """
    Single-submission form server with CSRF protection and a timeout.

    The server is a WSGI application; ``serve()`` runs it on wsgiref until a
    submission validates or the timeout expires. Each request builds a fresh
    form from ``form_factory``.
    """

    def __init__(
        self,
        form_factory: Callable[[], Form],
        host: str = '127.0.0.1',
        port: Optional[int] = None,
        title: Optional[str] = None,
        text: Optional[str] = None,
        max_file_size: Optional[int] = None,
        max_total_size: Optional[int] = None,
        timeout: int = 300,
        upload_dir: Optional[str] = None
    ):
        """
        Initialize the preview server.

        Args:
            form_factory: Returns a new, unbound Form
            host: Host to bind to
            port: Port to bind to (None = auto-select)
            title: Page title
            text: Instructional text above the form
            max_file_size: Maximum individual file size in bytes
            max_total_size: Maximum request body size in bytes
            timeout: Seconds to wait for a valid submission
            upload_dir: Directory for uploaded files (default: a new temp dir)
        """
        self.form_factory = form_factory
        self.host = host
        self.port = port or 0  # 0 = auto-select free port
        self.title = title
        self.text = text
        self.max_file_size = max_file_size
        self.max_total_size = max_total_size
        self.timeout = timeout
        self.upload_dir = upload_dir or tempfile.mkdtemp(prefix='formbind_')

        self.csrf_token = secrets.token_hex(16)
        self.endpoint = '/formbind_' + secrets.token_hex(8)

        self.result: Optional[Form] = None
        self.file_metadata: Dict[str, Dict[str, Any]] = {}
        self.url = ''

    def build_form(self) -> Form:
        """Create a form with the CSRF field and check attached."""
        form = self.form_factory()
        form.csrf_token(self.csrf_token)

        user_hook = form.before_valid

        def check_csrf(request: Request, form: Form) -> None:
            submitted = request.form.get(CSRF_FIELD, [''])
            # compare_digest only accepts ASCII str, so compare bytes
            if not submitted or not secrets.compare_digest(
                submitted[0].encode('utf-8'), self.csrf_token.encode('utf-8')
            ):
                raise ValidationError('Invalid CSRF token')
            if user_hook is not None:
                user_hook(request, form)

        form.before_valid = check_csrf
        return form

    def __call__(self, environ: Dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        path = environ.get('PATH_INFO', '')
        method = environ.get('REQUEST_METHOD', 'GET').upper()

        if path != self.endpoint:
            return self._respond(start_response, '404 Not Found', self._message_page('Not Found', 'Unknown path'))

        if method == 'GET':
            return self._respond(start_response, '200 OK', self._form_page(self.build_form()))
        if method != 'POST':
            return self._respond(
                start_response, '405 Method Not Allowed',
                self._message_page('Method Not Allowed', f'{method} is not supported'),
                [('Allow', 'GET, POST')]
            )

        try:
            request = Request.from_wsgi(environ, self.max_file_size, self.max_total_size)
        except UploadTooLarge as e:
            logger.warning('Upload limit exceeded: %s', e)
            return self._respond(start_response, '413 Payload Too Large', self._message_page('Payload Too Large', str(e)))
        except ValueError as e:
            return self._respond(
                start_response, '400 Bad Request',
                self._message_page('Bad Request', f'Failed to parse form data: {e}')
            )

        form = self.build_form()
        if not form.fill(request):
            status = '403 Forbidden' if _csrf_failed(form) else '422 Unprocessable Entity'
            logger.info('Submission rejected: %s', '; '.join(form.errors.messages()))
            # fill() bound the submitted token; the re-rendered page must carry ours
            token_field = form.field(CSRF_FIELD)
            if token_field is not None:
                token_field.set_value([self.csrf_token])
            return self._respond(start_response, status, self._form_page(form))

        form.without(CSRF_FIELD)
        self.file_metadata = save_files(form.fields, self.upload_dir)
        self.result = form
        logger.info('Accepted submission with %d field(s)', len(form.fields))
        return self._respond(
            start_response, '200 OK',
            self._message_page('Success', 'Form submitted successfully. You may now close this window.', back_link=False)
        )

    def _respond(self, start_response: Callable, status: str, body: str,
                 headers: Optional[List] = None) -> List[bytes]:
        payload = body.encode('utf-8')
        start_response(status, [
            ('Content-Type', 'text/html; charset=utf-8'),
            ('Content-Length', str(len(payload))),
            ('Cache-Control', 'no-store, no-cache, must-revalidate'),
        ] + (headers or []))
        return [payload]

    def _form_page(self, form: Form) -> str:
        return render_page(form_html(form, action=self.endpoint), self.title, self.text)

    def _message_page(self, title: str, message: str, back_link: bool = True) -> str:
        body = f'<h2>{escape_html(title)}</h2>\n<p>{escape_html(message)}</p>'
        if back_link:
            body += f'\n<p><a href="{self.endpoint}">Go back</a></p>'
        return render_page(body, title)

    def serve(self, launch_browser: bool = False) -> bool:
        """
        Serve until a valid submission arrives or the timeout expires.

        Args:
            launch_browser: Open the form in the system default browser

        Returns:
            True if a submission was accepted (see ``result``), False on timeout

        Raises:
            OSError: If binding the port fails
        """
        httpd = make_server(self.host, self.port, self, handler_class=_QuietHandler)
        httpd.timeout = 1.0
        try:
            actual_port = httpd.server_address[1]
            url_host = f'[{self.host}]' if ':' in self.host else self.host
            self.url = f'http://{url_host}:{actual_port}{self.endpoint}'
            logger.info('Serving form at %s', self.url)

            if launch_browser and not webbrowser.open(self.url):
                logger.warning('Failed to launch browser for %s', self.url)

            deadline = time.monotonic() + self.timeout
            while self.result is None and time.monotonic() < deadline:
                httpd.handle_request()
        finally:
            httpd.server_close()

        return self.result is not None


def _csrf_failed(form: Form) -> bool:
    return any(
        e.name == VALIDATION_ERROR_NAME and str(e) == 'Invalid CSRF token'
        for e in form.errors
    )
