"""
Dialect-aware DML helpers
"""

from typing import Any, Dict, Type

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def insert_ignore(session: AsyncSession, model: Type[Any], values: Dict[str, Any]):
    """
    INSERT that silently does nothing when a unique constraint would be violated.

    Used for set-semantics tables: item views keyed on (item, user) and
    collection memberships keyed on (collection, item).
    """
    dialect = session.get_bind().dialect.name

    if dialect == "postgresql":
        return postgresql.insert(model).values(**values).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite.insert(model).values(**values).on_conflict_do_nothing()

    from sqlalchemy import insert
    return insert(model).values(**values).prefix_with("IGNORE")
