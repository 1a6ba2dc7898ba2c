"""
Framework-neutral request input for Form.fill().
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import UploadTooLarge
from .multipart import UploadedFile, parse_multipart, parse_urlencoded


logger = logging.getLogger(__name__)


# Maximum request body size when no limit is configured (prevents memory exhaustion)
DEFAULT_MAX_BODY_SIZE = 20 * 1024 * 1024  # 20 MB

QUERY_METHODS = ('GET', 'HEAD', 'DELETE')
BODY_METHODS = ('POST', 'PUT', 'PATCH')


@dataclass
class Request:
    """
    The data a form binds from.

    Host frameworks adapt their own request objects into this shape; WSGI
    applications can use ``Request.from_wsgi``.

    Attributes:
        method: HTTP method, upper-case
        query: Query string values by name
        form: Body field values by name
        files: Uploaded files by field name
    """
    method: str = 'GET'
    query: Dict[str, List[str]] = field(default_factory=dict)
    form: Dict[str, List[str]] = field(default_factory=dict)
    files: Dict[str, List[UploadedFile]] = field(default_factory=dict)

    def __post_init__(self):
        self.method = self.method.upper()

    @classmethod
    def from_wsgi(
        cls,
        environ: Dict[str, Any],
        max_file_size: Optional[int] = None,
        max_total_size: Optional[int] = None
    ) -> 'Request':
        """
        Build a Request from a WSGI environ.

        Args:
            environ: WSGI environment
            max_file_size: Maximum individual upload size in bytes
            max_total_size: Maximum request body size in bytes

        Returns:
            Request instance

        Raises:
            UploadTooLarge: If the body exceeds the size limit
            ValueError: If the Content-Length header or multipart body is malformed
        """
        method = environ.get('REQUEST_METHOD', 'GET').upper()
        query_string = environ.get('QUERY_STRING', '')
        query = parse_urlencoded(query_string.encode('latin-1')).fields

        request = cls(method=method, query=query)
        if method not in BODY_METHODS:
            return request

        try:
            content_length = int(environ.get('CONTENT_LENGTH') or 0)
        except (ValueError, TypeError):
            raise ValueError('Invalid Content-Length header')
        if content_length < 0:
            raise ValueError('Invalid Content-Length header')

        effective_max = max_total_size if max_total_size else DEFAULT_MAX_BODY_SIZE
        if content_length > effective_max:
            raise UploadTooLarge(
                f'Total upload size ({content_length} bytes) exceeds limit ({effective_max} bytes)'
            )

        body = environ['wsgi.input'].read(content_length) if content_length else b''
        content_type = environ.get('CONTENT_TYPE', '')

        if 'multipart/form-data' in content_type:
            data = parse_multipart(body, content_type, max_file_size, max_total_size)
        else:
            data = parse_urlencoded(body)

        logger.debug(
            '%s request with %d field(s) and %d file field(s)',
            method, len(data.fields), len(data.files)
        )
        request.form = data.fields
        request.files = data.files
        return request
