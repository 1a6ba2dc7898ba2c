"""
Tests for building a Request from a WSGI environ.
"""

import io

import pytest
from formbind.errors import UploadTooLarge
from formbind.request import DEFAULT_MAX_BODY_SIZE, Request


def environ(method='GET', query='', body=b'', content_type='application/x-www-form-urlencoded',
            content_length=None):
    env = {
        'REQUEST_METHOD': method,
        'QUERY_STRING': query,
        'CONTENT_TYPE': content_type,
        'CONTENT_LENGTH': str(len(body)) if content_length is None else content_length,
        'wsgi.input': io.BytesIO(body),
    }
    return env


class TestRequest:
    """Test the Request container."""

    def test_method_upper_cased(self):
        assert Request('patch').method == 'PATCH'

    def test_defaults(self):
        request = Request()
        assert request.method == 'GET'
        assert request.query == {}
        assert request.form == {}
        assert request.files == {}


class TestFromWSGI:
    """Test Request.from_wsgi()."""

    def test_get_query(self):
        request = Request.from_wsgi(environ('GET', query='name=John&tag=a&tag=b'))
        assert request.method == 'GET'
        assert request.query == {'name': ['John'], 'tag': ['a', 'b']}
        assert request.form == {}

    def test_get_does_not_read_body(self):
        env = environ('GET', body=b'name=John')
        request = Request.from_wsgi(env)
        assert request.form == {}
        assert env['wsgi.input'].tell() == 0

    def test_post_urlencoded(self):
        request = Request.from_wsgi(environ('POST', query='next=/', body=b'name=John&age=30'))
        assert request.query == {'next': ['/']}
        assert request.form == {'name': ['John'], 'age': ['30']}

    def test_post_multipart(self):
        boundary = 'XyZ'
        body = (
            b'--XyZ\r\n'
            b'Content-Disposition: form-data; name="name"\r\n\r\n'
            b'John\r\n'
            b'--XyZ\r\n'
            b'Content-Disposition: form-data; name="cv"; filename="cv.txt"\r\n'
            b'Content-Type: text/plain\r\n\r\n'
            b'hello\r\n'
            b'--XyZ--\r\n'
        )
        request = Request.from_wsgi(environ(
            'POST', body=body, content_type=f'multipart/form-data; boundary={boundary}'
        ))
        assert request.form == {'name': ['John']}
        assert request.files['cv'][0].content == b'hello'
        assert request.files['cv'][0].content_type == 'text/plain'

    def test_missing_content_length(self):
        request = Request.from_wsgi(environ('POST', body=b'name=John', content_length=''))
        assert request.form == {}

    def test_invalid_content_length(self):
        with pytest.raises(ValueError, match='Invalid Content-Length'):
            Request.from_wsgi(environ('POST', body=b'x', content_length='abc'))

    def test_negative_content_length(self):
        env = environ('POST', body=b'name=' + b'x' * 100, content_length='-1')
        with pytest.raises(ValueError, match='Invalid Content-Length'):
            Request.from_wsgi(env, max_total_size=10)
        assert env['wsgi.input'].tell() == 0

    def test_body_over_limit(self):
        with pytest.raises(UploadTooLarge):
            Request.from_wsgi(environ('POST', body=b'name=' + b'x' * 20), max_total_size=10)

    def test_default_limit(self):
        env = environ('POST', content_length=str(DEFAULT_MAX_BODY_SIZE + 1))
        with pytest.raises(UploadTooLarge):
            Request.from_wsgi(env)

    def test_file_over_limit(self):
        body = (
            b'--B\r\n'
            b'Content-Disposition: form-data; name="f"; filename="big.bin"\r\n\r\n'
            + b'x' * 100 + b'\r\n'
            b'--B--\r\n'
        )
        env = environ('POST', body=body, content_type='multipart/form-data; boundary=B')
        with pytest.raises(UploadTooLarge):
            Request.from_wsgi(env, max_file_size=10)

    def test_utf8_query(self):
        # WSGI delivers the query string as latin-1 decoded bytes
        raw = 'city=Zürich'.encode('utf-8').decode('latin-1')
        request = Request.from_wsgi(environ('GET', query=raw))
        assert request.query == {'city': ['Zürich']}
