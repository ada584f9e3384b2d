"""Schema v2 - Profile links and task stream settings.

Adds twitter handle to users, and stream_duration / max_applicants to tasks.
"""
import copy

from .v1 import schema as v1_schema

NEW_COLUMNS = {
    'users': [
        {'name': 'twitter', 'type': 'TEXT'}
    ],
    'tasks': [
        {'name': 'stream_duration', 'type': 'INT8'},  # Seconds
        {'name': 'max_applicants', 'type': 'INT8'}
    ]
}

def _tables():
    tables = copy.deepcopy(v1_schema['tables'])
    for table in tables:
        # Both tables end with created_at/updated_at; keep those last
        extra = NEW_COLUMNS.get(table['name'], [])
        table['columns'][-2:-2] = copy.deepcopy(extra)
    return tables

schema = {
    'version': 2,
    'tables': _tables(),
    'migrations': [
        '''
        ALTER TABLE users
        ADD COLUMN IF NOT EXISTS twitter TEXT;
        ''',
        '''
        ALTER TABLE tasks
        ADD COLUMN IF NOT EXISTS stream_duration INT8,
        ADD COLUMN IF NOT EXISTS max_applicants INT8;
        '''
    ]
}
