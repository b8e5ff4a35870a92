"""
Schema tests: the model metadata must build on a fresh database.
"""
import asyncio
from collections import Counter

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from app.core.database.base import Base
from app.core.database.engine import import_models
from app.features.audit_logs.models import AuditAction


def test_index_names_are_unique():
    import_models()
    names = Counter(index.name for table in Base.metadata.tables.values() for index in table.indexes)

    assert [name for name, count in names.items() if count > 1] == []


def test_create_all_on_fresh_database(tmp_path):
    import_models()
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fresh.db'}", poolclass=NullPool)

    async def build():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            return await conn.run_sync(
                lambda sync_conn: {index["name"] for index in inspect(sync_conn).get_indexes("audit_logs")}
            )

    try:
        indexes = asyncio.run(build())
    finally:
        asyncio.run(engine.dispose())

    assert {"ix_audit_logs_resource", "ix_audit_logs_resource_ref"} <= indexes


def test_audit_actions_are_all_written_by_routes():
    assert {action.value for action in AuditAction} == {
        "LOGIN", "LOGIN_FAILED",
        "TASK_CREATE", "TASK_UPDATE", "TASK_DELETE",
        "USER_CREATE", "USER_UPDATE", "USER_DELETE", "USER_ROLE_CHANGE",
        "ORG_CREATE", "ORG_UPDATE", "ORG_DELETE",
        "ACCESS_DENIED",
    }
