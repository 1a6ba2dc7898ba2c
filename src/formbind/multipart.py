"""
Request body parsing for formbind.

Implements RFC 7578 (multipart/form-data) and application/x-www-form-urlencoded
parsing without the removed cgi module.
"""

import io
import logging
import os
import re
from email.parser import BytesParser
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs

from .errors import UploadTooLarge


logger = logging.getLogger(__name__)


class UploadedFile:
    """An uploaded file held in memory."""

    def __init__(self, filename: str, content: bytes, content_type: str = 'application/octet-stream'):
        self.filename = filename
        self.content = content
        self.content_type = content_type
        self.size = len(content)

    def __repr__(self) -> str:
        return f'UploadedFile({self.filename!r}, size={self.size}, content_type={self.content_type!r})'

    def open(self) -> io.BytesIO:
        """Return a fresh readable stream over the file content."""
        return io.BytesIO(self.content)

    def save(self, directory: str) -> str:
        """
        Save the file to a directory.

        The filename is sanitized and suffixed (``_1``, ``_2``, ...) when a
        file with the same name already exists.

        Args:
            directory: Target directory

        Returns:
            Full path to the saved file
        """
        filename = sanitize_filename(self.filename)
        filepath = os.path.join(directory, filename)

        if os.path.exists(filepath):
            base, ext = os.path.splitext(filename)
            counter = 1
            while os.path.exists(filepath):
                filename = f'{base}_{counter}{ext}'
                filepath = os.path.join(directory, filename)
                counter += 1

        with open(filepath, 'wb') as f:
            f.write(self.content)

        logger.debug('Saved upload %s to %s', self.filename, filepath)
        return filepath


class RequestData:
    """Parsed request body.

    Every name maps to a list, so repeated fields (multi-select, checkbox
    groups, multiple file inputs) keep all their values in order.
    """

    def __init__(self):
        self.fields: Dict[str, List[str]] = {}
        self.files: Dict[str, List[UploadedFile]] = {}

    def add_field(self, name: str, value: str) -> None:
        self.fields.setdefault(name, []).append(value)

    def add_file(self, name: str, uploaded_file: UploadedFile) -> None:
        self.files.setdefault(name, []).append(uploaded_file)


def parse_size_limit(limit_str: Optional[str]) -> Optional[int]:
    """
    Parse size limit string to bytes.

    Examples:
        "5M" -> 5242880
        "200K" -> 204800
        "1G" -> 1073741824

    Args:
        limit_str: Size limit string (e.g., "5M", "200K")

    Returns:
        Size in bytes or None if no limit

    Raises:
        ValueError: If the format is not recognised
    """
    if not limit_str:
        return None

    limit_str = limit_str.strip().upper()
    multipliers = {
        'K': 1024,
        'M': 1024 * 1024,
        'G': 1024 * 1024 * 1024,
    }

    match = re.match(r'^(\d+)([KMG])?$', limit_str)
    if not match:
        raise ValueError(f'Invalid size limit format: {limit_str}')

    value = int(match.group(1))
    unit = match.group(2)

    if unit:
        return value * multipliers[unit]
    return value


def parse_multipart(
    body: bytes,
    content_type: str,
    max_file_size: Optional[int] = None,
    max_total_size: Optional[int] = None
) -> RequestData:
    """
    Parse multipart/form-data request body.

    Args:
        body: Request body as bytes
        content_type: Content-Type header value
        max_file_size: Maximum size for individual files
        max_total_size: Maximum total size (checked before parsing)

    Returns:
        RequestData instance

    Raises:
        UploadTooLarge: If a size limit is exceeded
        ValueError: If the Content-Type carries no boundary
    """
    if max_total_size and len(body) > max_total_size:
        raise UploadTooLarge(f'Total upload size {len(body)} exceeds limit {max_total_size}')

    boundary = extract_boundary(content_type)
    if not boundary:
        raise ValueError('No boundary found in Content-Type header')

    data = RequestData()
    for part in split_multipart_body(body, boundary):
        headers, content = parse_part(part)
        disposition = headers.get('content-disposition', '')

        name = extract_value_from_header(disposition, 'name')
        filename = extract_value_from_header(disposition, 'filename')
        if name is None:
            logger.debug('Skipping multipart part without a name: %r', disposition)
            continue

        if filename:
            if max_file_size and len(content) > max_file_size:
                raise UploadTooLarge(
                    f'File {filename} size {len(content)} exceeds limit {max_file_size}'
                )
            part_type = headers.get('content-type', 'application/octet-stream')
            data.add_file(name, UploadedFile(filename, content, part_type))
        elif filename is not None:
            # A file input submitted without a selection
            continue
        else:
            try:
                data.add_field(name, content.decode('utf-8'))
            except UnicodeDecodeError:
                logger.warning('Field %s is not valid UTF-8, binding empty value', name)
                data.add_field(name, '')

    return data


def parse_urlencoded(body: bytes) -> RequestData:
    """
    Parse application/x-www-form-urlencoded data.

    Args:
        body: Request body (or query string) as bytes

    Returns:
        RequestData instance
    """
    data = RequestData()
    try:
        parsed = parse_qs(body.decode('utf-8'), keep_blank_values=True)
    except UnicodeDecodeError:
        logger.warning('Discarding url-encoded body that is not valid UTF-8')
        return data

    for key, values in parsed.items():
        data.fields[key] = values
    return data


def extract_boundary(content_type: str) -> Optional[str]:
    """
    Extract boundary from Content-Type header.

    Args:
        content_type: Content-Type header value

    Returns:
        Boundary string or None
    """
    match = re.search(r'boundary=([^;]+)', content_type, re.IGNORECASE)
    if match:
        boundary = match.group(1).strip()
        if boundary.startswith('"') and boundary.endswith('"'):
            boundary = boundary[1:-1]
        return boundary
    return None


def split_multipart_body(body: bytes, boundary: str) -> List[bytes]:
    """
    Split multipart body into individual parts.

    Args:
        body: Request body
        boundary: Boundary string

    Returns:
        List of part bodies (headers and content)
    """
    # Boundary appears as --boundary between parts and --boundary-- at the end
    parts = body.split(('--' + boundary).encode('utf-8'))

    result = []
    for part in parts[1:]:  # Skip preamble
        if part.startswith(b'--'):
            break
        if part.startswith(b'\r\n'):
            part = part[2:]
        elif part.startswith(b'\n'):
            part = part[1:]
        if part:
            result.append(part)

    return result


def parse_part(part: bytes) -> Tuple[Dict[str, str], bytes]:
    """
    Parse a single multipart part into headers and content.

    Args:
        part: Part body

    Returns:
        Tuple of (headers_dict, content)
    """
    if b'\r\n\r\n' in part:
        header_data, content = part.split(b'\r\n\r\n', 1)
    elif b'\n\n' in part:
        header_data, content = part.split(b'\n\n', 1)
    else:
        header_data = part
        content = b''

    # The delimiter line break belongs to the boundary, not the content
    if content.endswith(b'\r\n'):
        content = content[:-2]
    elif content.endswith(b'\n'):
        content = content[:-1]

    msg = BytesParser().parsebytes(header_data + b'\r\n\r\n', headersonly=True)
    headers = {key.lower(): str(value) for key, value in msg.items()}

    return headers, content


def extract_value_from_header(header: str, param: str) -> Optional[str]:
    """
    Extract parameter value from Content-Disposition header.

    Args:
        header: Header value (e.g., 'form-data; name="field1"; filename="test.txt"')
        param: Parameter name to extract (e.g., 'name', 'filename')

    Returns:
        Parameter value, '' for an explicitly empty value, or None if absent
    """
    pattern = rf'(?:^|[;\s]){param}=(?:"([^"]*)"|([^;\s]+))'
    match = re.search(pattern, header, re.IGNORECASE)
    if match:
        if match.group(1) is not None:
            return match.group(1)
        return match.group(2)
    return None


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent directory traversal.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    filename = filename.replace('\\', '/')
    filename = os.path.basename(filename)
    filename = re.sub(r'[^\w\s.-]', '_', filename)
    if len(filename) > 255:
        filename = filename[:255]
    if not filename or filename in ('.', '..'):
        filename = 'upload'
    return filename
