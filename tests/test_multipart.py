"""
Tests for multipart and url-encoded body parsing.
"""

import os

import pytest
from formbind.errors import UploadTooLarge
from formbind.multipart import (
    UploadedFile,
    extract_boundary,
    extract_value_from_header,
    parse_multipart,
    parse_size_limit,
    parse_urlencoded,
    sanitize_filename,
)


BOUNDARY = '----WebKitFormBoundary7MA4YWxkTrZu0gW'
CONTENT_TYPE = f'multipart/form-data; boundary={BOUNDARY}'


def build_body(*parts):
    """Build a multipart body from (headers, content) pairs."""
    chunks = []
    for headers, content in parts:
        chunks.append(f'--{BOUNDARY}\r\n'.encode())
        chunks.append(headers.encode() + b'\r\n\r\n')
        chunks.append(content + b'\r\n')
    chunks.append(f'--{BOUNDARY}--\r\n'.encode())
    return b''.join(chunks)


def text_part(name, value):
    return f'Content-Disposition: form-data; name="{name}"', value.encode('utf-8')


def file_part(name, filename, content, content_type='text/plain'):
    headers = (
        f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
        f'Content-Type: {content_type}'
    )
    return headers, content


class TestParseSizeLimit:
    """Test size limit parsing."""

    def test_parse_bytes(self):
        assert parse_size_limit('1024') == 1024

    def test_parse_units(self):
        assert parse_size_limit('5K') == 5 * 1024
        assert parse_size_limit('10m') == 10 * 1024 * 1024
        assert parse_size_limit('1G') == 1024 * 1024 * 1024

    def test_parse_none(self):
        assert parse_size_limit(None) is None
        assert parse_size_limit('') is None

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_size_limit('invalid')
        with pytest.raises(ValueError):
            parse_size_limit('5X')


class TestExtractBoundary:
    """Test boundary extraction from Content-Type."""

    def test_extract_simple(self):
        assert extract_boundary('multipart/form-data; boundary=----WebKitFormBoundary') == '----WebKitFormBoundary'

    def test_extract_quoted(self):
        assert extract_boundary('multipart/form-data; boundary="abc def"') == 'abc def'

    def test_extract_with_charset(self):
        assert extract_boundary('multipart/form-data; charset=utf-8; boundary=abc123') == 'abc123'

    def test_extract_none(self):
        assert extract_boundary('application/json') is None


class TestExtractValueFromHeader:
    """Test Content-Disposition parameter extraction."""

    def test_name_not_confused_with_filename(self):
        header = 'form-data; filename="a.txt"; name="upload"'
        assert extract_value_from_header(header, 'name') == 'upload'
        assert extract_value_from_header(header, 'filename') == 'a.txt'

    def test_empty_value(self):
        assert extract_value_from_header('form-data; name="f"; filename=""', 'filename') == ''

    def test_absent(self):
        assert extract_value_from_header('form-data; name="f"', 'filename') is None

    def test_unquoted(self):
        assert extract_value_from_header('form-data; name=field1', 'name') == 'field1'


class TestParseURLEncoded:
    """Test URL-encoded form parsing."""

    def test_parse_simple(self):
        data = parse_urlencoded(b'name=John&email=john%40example.com')
        assert data.fields['name'] == ['John']
        assert data.fields['email'] == ['john@example.com']

    def test_repeated_names(self):
        data = parse_urlencoded(b'tag=a&tag=b&tag=c')
        assert data.fields['tag'] == ['a', 'b', 'c']

    def test_blank_values_kept(self):
        data = parse_urlencoded(b'name=&age=3')
        assert data.fields['name'] == ['']

    def test_plus_is_space(self):
        data = parse_urlencoded(b'msg=hello+world%21')
        assert data.fields['msg'] == ['hello world!']

    def test_parse_empty(self):
        data = parse_urlencoded(b'')
        assert data.fields == {}
        assert data.files == {}

    def test_invalid_utf8(self):
        data = parse_urlencoded(b'name=\xff\xfe')
        assert data.fields == {}


class TestParseMultipart:
    """Test multipart/form-data parsing."""

    def test_text_fields(self):
        body = build_body(text_part('name', 'John'), text_part('bio', 'line one\r\nline two'))
        data = parse_multipart(body, CONTENT_TYPE)
        assert data.fields == {'name': ['John'], 'bio': ['line one\r\nline two']}
        assert data.files == {}

    def test_repeated_fields(self):
        body = build_body(text_part('tag', 'a'), text_part('tag', 'b'))
        data = parse_multipart(body, CONTENT_TYPE)
        assert data.fields['tag'] == ['a', 'b']

    def test_empty_field(self):
        data = parse_multipart(build_body(text_part('name', '')), CONTENT_TYPE)
        assert data.fields['name'] == ['']

    def test_unicode_field(self):
        data = parse_multipart(build_body(text_part('city', 'Zürich')), CONTENT_TYPE)
        assert data.fields['city'] == ['Zürich']

    def test_file(self):
        content = b'\x89PNG\r\n\x1a\n\x00binary'
        body = build_body(file_part('photo', 'me.png', content, 'image/png'))
        data = parse_multipart(body, CONTENT_TYPE)
        upload = data.files['photo'][0]
        assert upload.filename == 'me.png'
        assert upload.content == content
        assert upload.content_type == 'image/png'
        assert upload.size == len(content)

    def test_multiple_files_same_name(self):
        body = build_body(
            file_part('docs', 'a.txt', b'A'),
            file_part('docs', 'b.txt', b'B'),
        )
        data = parse_multipart(body, CONTENT_TYPE)
        assert [f.filename for f in data.files['docs']] == ['a.txt', 'b.txt']

    def test_empty_file_input_skipped(self):
        body = build_body(file_part('photo', '', b'', 'application/octet-stream'), text_part('name', 'x'))
        data = parse_multipart(body, CONTENT_TYPE)
        assert data.files == {}
        assert 'photo' not in data.fields
        assert data.fields['name'] == ['x']

    def test_part_without_name_skipped(self):
        body = build_body(('Content-Disposition: form-data', b'orphan'), text_part('name', 'x'))
        data = parse_multipart(body, CONTENT_TYPE)
        assert data.fields == {'name': ['x']}

    def test_invalid_utf8_field_binds_empty(self):
        body = build_body(('Content-Disposition: form-data; name="raw"', b'\xff\xfe'))
        data = parse_multipart(body, CONTENT_TYPE)
        assert data.fields['raw'] == ['']

    def test_no_boundary(self):
        with pytest.raises(ValueError, match='No boundary'):
            parse_multipart(b'', 'multipart/form-data')

    def test_file_too_large(self):
        body = build_body(file_part('doc', 'big.txt', b'x' * 100))
        with pytest.raises(UploadTooLarge, match='big.txt'):
            parse_multipart(body, CONTENT_TYPE, max_file_size=50)

    def test_total_too_large(self):
        body = build_body(text_part('name', 'x' * 100))
        with pytest.raises(UploadTooLarge):
            parse_multipart(body, CONTENT_TYPE, max_total_size=10)

    def test_within_limits(self):
        body = build_body(file_part('doc', 'small.txt', b'x' * 10))
        data = parse_multipart(body, CONTENT_TYPE, max_file_size=50, max_total_size=10000)
        assert data.files['doc'][0].size == 10


class TestUploadedFile:
    """Test UploadedFile helpers."""

    def test_open_returns_fresh_stream(self):
        upload = UploadedFile('a.txt', b'hello')
        assert upload.open().read() == b'hello'
        assert upload.open().read() == b'hello'

    def test_default_content_type(self):
        assert UploadedFile('a.bin', b'').content_type == 'application/octet-stream'

    def test_save(self, tmp_path):
        path = UploadedFile('report.txt', b'data').save(str(tmp_path))
        assert path == os.path.join(str(tmp_path), 'report.txt')
        with open(path, 'rb') as f:
            assert f.read() == b'data'

    def test_save_duplicate_names(self, tmp_path):
        first = UploadedFile('report.txt', b'1').save(str(tmp_path))
        second = UploadedFile('report.txt', b'2').save(str(tmp_path))
        third = UploadedFile('report.txt', b'3').save(str(tmp_path))
        assert os.path.basename(first) == 'report.txt'
        assert os.path.basename(second) == 'report_1.txt'
        assert os.path.basename(third) == 'report_2.txt'

    def test_save_sanitizes_name(self, tmp_path):
        path = UploadedFile('../../etc/passwd', b'x').save(str(tmp_path))
        assert os.path.dirname(path) == str(tmp_path)
        assert os.path.basename(path) == 'passwd'


class TestSanitizeFilename:
    """Test filename sanitization."""

    def test_simple(self):
        assert sanitize_filename('report.pdf') == 'report.pdf'

    def test_directory_traversal(self):
        assert sanitize_filename('../../etc/passwd') == 'passwd'
        assert sanitize_filename('..\\..\\windows\\system.ini') == 'system.ini'

    def test_special_characters(self):
        assert sanitize_filename('my<file>.txt') == 'my_file_.txt'

    def test_empty(self):
        assert sanitize_filename('') == 'upload'
        assert sanitize_filename('..') == 'upload'

    def test_long_name(self):
        assert len(sanitize_filename('a' * 300 + '.txt')) == 255
