"""Tests for response key conversion."""

import uuid

from api.serialize import camel_case, camelize

def test_camel_case():
    assert camel_case('builder_email') == 'builderEmail'
    assert camel_case('kpi_count') == 'kpiCount'
    assert camel_case('id') == 'id'
    assert camel_case('from') == 'from'

def test_camelize_nested():
    task_id = uuid.uuid4()
    value = {
        'task_id': task_id,
        'supporting_files': [{'file_url': '/uploads/a.png'}],
        'builder': {'wallet_address': None},
    }
    assert camelize(value) == {
        'taskId': task_id,
        'supportingFiles': [{'fileUrl': '/uploads/a.png'}],
        'builder': {'walletAddress': None},
    }
