"""
Core orchestration for the formbind command line.
"""

import copy
import dataclasses
import importlib
import logging
import sys
from typing import Any, Callable, Dict

from .errors import ScanError
from .forms import Form
from .markup import render_page
from .multipart import parse_size_limit
from .output import collect_fields, format_json_output
from .server import PreviewServer, form_html


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_INTERNAL_ERROR = 1
EXIT_INVALID_TARGET = 2
EXIT_TIMEOUT = 5
EXIT_INVALID_ARGUMENT = 7

# Form error name for values that validated but could not be converted
SCAN_ERROR_NAME = 'Scan'


def load_target(spec: str) -> Any:
    """
    Import the object named by ``module:attribute``.

    Args:
        spec: Target specification, e.g. ``myapp.forms:Signup``

    Returns:
        The referenced object

    Raises:
        ValueError: If the specification has no ``:attribute`` part
        ImportError: If the module cannot be imported
        AttributeError: If the attribute does not exist
    """
    module_name, sep, attr_path = spec.partition(':')
    if not sep or not module_name or not attr_path:
        raise ValueError(f'Invalid target: {spec} (expected module:attribute)')

    obj = importlib.import_module(module_name)
    for attr in attr_path.split('.'):
        obj = getattr(obj, attr)
    return obj


def make_form_factory(target: Any) -> Callable[[], Form]:
    """
    Build a factory returning fresh forms for ``target``.

    A target may be a dataclass (class or instance), a Form instance, or a
    callable returning a Form.

    Raises:
        TypeError: If the target cannot produce a Form
    """
    if isinstance(target, Form):
        return lambda: copy.deepcopy(target)
    if dataclasses.is_dataclass(target):
        return lambda: Form.from_dataclass(target)
    if callable(target):
        def factory() -> Form:
            form = target()
            if not isinstance(form, Form):
                raise TypeError(f'{target!r} returned {type(form).__name__}, expected Form')
            return form
        return factory
    raise TypeError(f'Cannot build a form from {type(target).__name__}')


def scanned_fields(target: Any, form: Form) -> Dict[str, Any]:
    """
    Convert the submitted form to output values.

    Dataclass targets are scanned into a copy of the instance (or a default
    instance of the class) so the output carries typed values; other targets
    report the raw bound strings.
    """
    if not dataclasses.is_dataclass(target):
        return collect_fields(form.fields)

    if isinstance(target, type):
        try:
            instance = target()
        except TypeError as e:
            logger.warning('Cannot instantiate %s without arguments (%s), reporting raw values',
                           target.__name__, e)
            return collect_fields(form.fields)
    else:
        instance = copy.deepcopy(target)

    return dataclasses.asdict(form.scan_into(instance))


def run_render(args) -> int:
    """
    Print the rendered form document.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    try:
        factory = make_form_factory(load_target(args.target))
        form = factory()
    except (ValueError, ImportError, AttributeError, TypeError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return EXIT_INVALID_TARGET

    markup = form_html(form, action=args.action)
    if args.fragment:
        print(markup)
    else:
        print(render_page(markup, args.title, args.text))
    return EXIT_SUCCESS


def run_serve(args) -> int:
    """
    Serve the form until a valid submission arrives and print it as JSON.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    try:
        target = load_target(args.target)
        factory = make_form_factory(target)
    except (ValueError, ImportError, AttributeError, TypeError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return EXIT_INVALID_TARGET

    try:
        max_file_size = parse_size_limit(args.max_file_size)
        max_total_size = parse_size_limit(args.max_total_size)
    except ValueError as e:
        print(f'Error: {e}', file=sys.stderr)
        print('       Use format like: 5M, 200K, 1G, or plain bytes', file=sys.stderr)
        return EXIT_INVALID_ARGUMENT

    if args.host in ('0.0.0.0', '::'):
        print(
            'Warning: Binding to all interfaces. Form will be accessible from other machines.',
            file=sys.stderr
        )

    server = PreviewServer(
        factory,
        host=args.host,
        port=args.port,
        title=args.title,
        text=args.text,
        max_file_size=max_file_size,
        max_total_size=max_total_size,
        timeout=args.timeout,
        upload_dir=args.upload_dir
    )

    try:
        accepted = server.serve(launch_browser=args.launch_browser)
    except OSError as e:
        print(f'Error: Failed to bind to {args.host}:{args.port}: {e}', file=sys.stderr)
        return EXIT_INTERNAL_ERROR

    if not accepted:
        print(format_json_output({}, {}, success=False, error='timeout'))
        print('Error: Timeout waiting for submission', file=sys.stderr)
        return EXIT_TIMEOUT

    try:
        fields = scanned_fields(target, server.result)
    except ScanError as e:
        server.result.add_error(SCAN_ERROR_NAME, e)
        print(format_json_output(collect_fields(server.result.fields), server.file_metadata,
                                 errors=server.result.errors.as_dict(),
                                 success=False, error=f'scan_error: {e}'))
        return EXIT_INTERNAL_ERROR

    print(format_json_output(fields, server.file_metadata))
    return EXIT_SUCCESS
