"""
Command-line interface for formbind.
"""

import argparse
import logging
import sys


class FormBindArgumentParser:
    """Argument parser for the formbind command."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog='formbind',
            description='Render and preview forms built with formbind',
        )
        self.parser.add_argument(
            '-v', '--verbose',
            action='store_true',
            help='Enable debug logging on stderr'
        )
        subparsers = self.parser.add_subparsers(dest='command', metavar='<command>')
        subparsers.required = True

        render = subparsers.add_parser('render', help='Print the form as HTML')
        self._add_target(render)
        self._add_presentation(render)
        render.add_argument(
            '--action',
            metavar='<url>',
            default='',
            help='Form action URL (default: none, submit to the current page)'
        )
        render.add_argument(
            '--fragment',
            action='store_true',
            help='Print only the <form> element instead of a full document'
        )

        serve = subparsers.add_parser(
            'serve',
            help='Serve the form locally and print the first valid submission as JSON'
        )
        self._add_target(serve)
        self._add_presentation(serve)
        self._setup_server_arguments(serve)

    @staticmethod
    def _add_target(parser: argparse.ArgumentParser):
        parser.add_argument(
            'target',
            metavar='<module:object>',
            help='A dataclass, Form, or function returning a Form, e.g. myapp.forms:Signup'
        )

    @staticmethod
    def _add_presentation(parser: argparse.ArgumentParser):
        group = parser.add_argument_group('presentation options')
        group.add_argument('--title', metavar='<string>', help='Page title shown above the form')
        group.add_argument('--text', metavar='<string>', help='Instructional text shown above the form')

    @staticmethod
    def _setup_server_arguments(parser: argparse.ArgumentParser):
        server_group = parser.add_argument_group('server configuration')
        server_group.add_argument(
            '--host',
            metavar='<ip>',
            default='127.0.0.1',
            help='Host/IP to bind to (default: 127.0.0.1)'
        )
        server_group.add_argument(
            '--port',
            type=int,
            metavar='<int>',
            help='TCP port (default: auto-select free port)'
        )
        server_group.add_argument(
            '--timeout',
            type=int,
            metavar='<seconds>',
            default=300,
            help='Max time to wait for a valid submission in seconds (default: 300)'
        )
        server_group.add_argument(
            '--launch-browser',
            action='store_true',
            help='Open the form in the system default browser'
        )

        upload_group = parser.add_argument_group('upload options')
        upload_group.add_argument(
            '--max-file-size',
            metavar='<limit>',
            help='Maximum individual upload size (e.g., 5M, 200K)'
        )
        upload_group.add_argument(
            '--max-total-size',
            metavar='<limit>',
            help='Maximum total request size (e.g., 20M, 1G)'
        )
        upload_group.add_argument(
            '--upload-dir',
            metavar='<path>',
            help='Directory for uploaded files (default: a new temporary directory)'
        )

    def parse_args(self, args=None):
        """Parse command-line arguments and validate."""
        parsed = self.parser.parse_args(args)
        self._validate_args(parsed)
        return parsed

    def _validate_args(self, args):
        """Validate argument combinations."""
        if args.command != 'serve':
            return

        if args.timeout <= 0:
            self.parser.error('--timeout must be a positive integer')

        if args.port is not None and (args.port < 1 or args.port > 65535):
            self.parser.error('--port must be between 1 and 65535')


def main(argv=None):
    """Main entry point for the formbind CLI."""
    parser = FormBindArgumentParser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr
    )

    from .core import run_render, run_serve

    try:
        if args.command == 'render':
            return run_render(args)
        return run_serve(args)
    except KeyboardInterrupt:
        print('\n\nInterrupted by user', file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
