"""Tests for schema versioning and migrations."""

import pytest

from database import DatabaseSchemaError, SchemaManager
from conftest import db_calls

TABLES = [
    'users', 'tasks', 'kpis', 'applications', 'submissions',
    'submission_kpi_results', 'submission_files', 'payments'
]

def test_load_schema_files(pool):
    schema_files = SchemaManager(pool).load_schema_files()

    assert list(schema_files) == [1, 2]
    latest = schema_files[2]
    assert [table['name'] for table in latest['tables']] == TABLES

    users = next(t for t in latest['tables'] if t['name'] == 'users')
    columns = [c['name'] for c in users['columns']]
    assert columns.index('twitter') < columns.index('created_at')

    tasks = next(t for t in latest['tables'] if t['name'] == 'tasks')
    assert {'stream_duration', 'max_applicants'} <= {c['name'] for c in tasks['columns']}

def test_v2_does_not_modify_v1(pool):
    schema_files = SchemaManager(pool).load_schema_files()
    v1_users = next(t for t in schema_files[1]['tables'] if t['name'] == 'users')
    assert 'twitter' not in [c['name'] for c in v1_users['columns']]

def test_table_definition():
    sql = SchemaManager.table_definition({
        'name': 'users',
        'columns': [
            {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
            {'name': 'email', 'type': 'TEXT', 'nullable': False, 'unique': True},
            {'name': 'role', 'type': 'TEXT', 'nullable': False, 'default': "'builder'"},
        ]
    })
    assert sql == (
        "CREATE TABLE IF NOT EXISTS users ("
        "id UUID DEFAULT gen_random_uuid(), "
        "email TEXT NOT NULL, "
        "role TEXT DEFAULT 'builder' NOT NULL, "
        "PRIMARY KEY (id), UNIQUE (email))"
    )

@pytest.mark.asyncio
async def test_fresh_install_creates_latest_schema(pool, conn):
    conn.fetchrow.return_value = None

    manager = SchemaManager(pool)
    await manager.initialize()

    assert manager.current_version == 2
    statements = [q for _, q in db_calls(conn, 'execute')]
    created = [
        q.split()[5] for q in statements
        if q.startswith('CREATE TABLE IF NOT EXISTS') and 'schema_version' not in q
    ]
    assert created == TABLES
    assert any('ON DELETE CASCADE' in q for q in statements)
    assert any(q.startswith('CREATE UNIQUE INDEX IF NOT EXISTS idx_applications_task_builder') for q in statements)
    assert conn.execute.call_args.args[1] == 2

@pytest.mark.asyncio
async def test_migrates_from_v1(pool, conn):
    conn.fetchrow.return_value = {'version': 1}

    manager = SchemaManager(pool)
    await manager.initialize()

    assert manager.current_version == 2
    statements = [q for _, q in db_calls(conn, 'execute')]
    assert any(q.startswith('ALTER TABLE users ADD COLUMN IF NOT EXISTS twitter') for q in statements)
    assert any('max_applicants' in q for q in statements)
    assert not any(q.startswith('CREATE TABLE IF NOT EXISTS users') for q in statements)
    assert conn.execute.call_args.args[1:] == (2,)

@pytest.mark.asyncio
async def test_up_to_date_schema_untouched(pool, conn):
    conn.fetchrow.return_value = {'version': 2}

    await SchemaManager(pool).initialize()

    conn.transaction.assert_not_called()

@pytest.mark.asyncio
async def test_missing_schema_files(pool, conn, tmp_path):
    conn.fetchrow.return_value = None
    with pytest.raises(DatabaseSchemaError, match="No valid schema files"):
        await SchemaManager(pool, schema_dir=tmp_path / "missing").initialize()

@pytest.mark.asyncio
async def test_failed_migration_raises_schema_error(pool, conn):
    conn.fetchrow.return_value = {'version': 1}
    conn.execute.side_effect = [None, RuntimeError("syntax error")]

    with pytest.raises(DatabaseSchemaError, match="Failed to apply schema migrations"):
        await SchemaManager(pool).initialize()
