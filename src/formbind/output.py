"""
JSON output for bound forms.
"""

import json
from typing import Any, Dict, List, Optional, Union

from .fields import FormElement
from .multipart import UploadedFile


def collect_fields(fields: List[FormElement]) -> Dict[str, Union[str, List[str]]]:
    """
    Collect the bound values of non-file fields.

    Single values are returned as strings, repeated values as lists. Unbound
    fields are omitted.
    """
    collected: Dict[str, Union[str, List[str]]] = {}
    for field in fields:
        if field.is_file():
            continue
        data = field.value()
        if data is None:
            continue
        values = data.value()
        collected[field.get_name()] = values[0] if len(values) == 1 else list(values)
    return collected


def save_files(fields: List[FormElement], directory: str) -> Dict[str, Dict[str, Any]]:
    """
    Write bound uploads to ``directory``.

    Args:
        fields: Form fields
        directory: Target directory

    Returns:
        File field name -> metadata (filename, path, size, content_type)
    """
    metadata = {}
    for field in fields:
        data = field.value()
        if not field.is_file() or data is None or not data.is_file():
            continue
        filename, stream = data.get_file()
        stream.seek(0)
        upload = UploadedFile(filename, stream.read(), data.content_type or 'application/octet-stream')
        path = upload.save(directory)
        metadata[field.get_name()] = {
            'filename': upload.filename,
            'path': path,
            'size': upload.size,
            'content_type': upload.content_type,
        }
    return metadata


def format_json_output(
    fields: Optional[Dict[str, Any]],
    files: Optional[Dict[str, Dict[str, Any]]],
    errors: Optional[Dict[str, List[str]]] = None,
    success: bool = True,
    error: Optional[str] = None
) -> str:
    """
    Format form data as JSON with consistent envelope.

    Args:
        fields: Dictionary of field names to values
        files: Dictionary of file field names to file metadata
        errors: Validation messages grouped by field name
        success: Whether the submission was accepted
        error: Error description if not successful (e.g., 'timeout')

    Returns:
        JSON string with consistent schema:
        {
            "success": bool,
            "fields": {...},
            "files": {...},
            "errors": {...},
            "error": string | null
        }
    """
    output = {
        'success': success,
        'fields': fields if fields is not None else {},
        'files': files if files is not None else {},
        'errors': errors if errors is not None else {},
        'error': error
    }
    # default=str covers Decimal, date and datetime values produced by scanning
    return json.dumps(output, indent=2, ensure_ascii=False, default=str)
