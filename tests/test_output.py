"""
Tests for output formatting.
"""

import datetime
import io
import json
import os
from decimal import Decimal

from formbind.fields import Field
from formbind.output import collect_fields, format_json_output, save_files
from formbind.values import new_value


class TestFormatJSONOutput:
    """Test JSON output formatting."""

    def test_format_simple(self):
        output = format_json_output({'name': 'John', 'email': 'john@example.com'}, {})

        data = json.loads(output)
        assert data['success'] is True
        assert data['fields']['name'] == 'John'
        assert data['fields']['email'] == 'john@example.com'
        assert data['files'] == {}
        assert data['errors'] == {}
        assert data['error'] is None

    def test_format_with_files(self):
        files = {'resume': {'filename': 'cv.pdf', 'path': '/tmp/formbind_abc/cv.pdf'}}
        data = json.loads(format_json_output({'name': 'Alice'}, files))
        assert data['files']['resume']['filename'] == 'cv.pdf'
        assert data['files']['resume']['path'] == '/tmp/formbind_abc/cv.pdf'

    def test_format_unicode(self):
        output = format_json_output({'name': 'José', 'message': '你好'}, {})
        assert 'José' in output
        assert '你好' in output

    def test_format_typed_values(self):
        fields = {
            'age': 30,
            'price': Decimal('9.99'),
            'day': datetime.date(2024, 5, 1),
            'tags': ['a', 'b'],
            'subscribed': True,
        }
        data = json.loads(format_json_output(fields, {}))
        assert data['fields'] == {
            'age': 30,
            'price': '9.99',
            'day': '2024-05-01',
            'tags': ['a', 'b'],
            'subscribed': True,
        }

    def test_format_timeout(self):
        data = json.loads(format_json_output({}, {}, success=False, error='timeout'))
        assert data['success'] is False
        assert data['error'] == 'timeout'

    def test_format_none_values(self):
        data = json.loads(format_json_output(None, None, success=False))
        assert data['fields'] == {}
        assert data['files'] == {}

    def test_format_errors(self):
        errors = {'name': ['Name is required']}
        data = json.loads(format_json_output({}, {}, errors=errors, success=False))
        assert data['errors'] == errors


class TestCollectFields:
    """Test collect_fields()."""

    def test_single_and_multiple_values(self):
        tags = Field('tags')
        tags.set_value(['a', 'b'])
        fields = [Field('name', form_value=new_value('John')), tags]
        assert collect_fields(fields) == {'name': 'John', 'tags': ['a', 'b']}

    def test_skips_unbound_and_file_fields(self):
        upload = Field('cv', 'file')
        upload.set_file('cv.pdf', io.BytesIO(b'x'))
        assert collect_fields([Field('name'), upload]) == {}

    def test_empty_value_list(self):
        field = Field('name')
        field.set_value([])
        assert collect_fields([field]) == {'name': []}


class TestSaveFiles:
    """Test save_files()."""

    def test_saves_uploads(self, tmp_path):
        upload = Field('cv', 'file')
        upload.set_file('cv.pdf', io.BytesIO(b'%PDF-1.4'), 'application/pdf')
        metadata = save_files([upload, Field('name')], str(tmp_path))

        assert list(metadata) == ['cv']
        info = metadata['cv']
        assert info['filename'] == 'cv.pdf'
        assert info['size'] == 8
        assert info['content_type'] == 'application/pdf'
        assert info['path'] == os.path.join(str(tmp_path), 'cv.pdf')
        with open(info['path'], 'rb') as f:
            assert f.read() == b'%PDF-1.4'

    def test_rewinds_stream(self, tmp_path):
        stream = io.BytesIO(b'data')
        stream.read()
        upload = Field('doc', 'file')
        upload.set_file('doc.txt', stream)
        metadata = save_files([upload], str(tmp_path))
        assert metadata['doc']['size'] == 4
        assert metadata['doc']['content_type'] == 'application/octet-stream'

    def test_skips_unbound_file_fields(self, tmp_path):
        assert save_files([Field('cv', 'file')], str(tmp_path)) == {}
