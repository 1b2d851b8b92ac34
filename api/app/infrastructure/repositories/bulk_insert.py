"""
Insert masivo idempotente (ON CONFLICT DO NOTHING) para PostgreSQL y SQLite.
"""
from typing import Any, Dict, List, Sequence

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def chunked(items: Sequence[Any], size: int) -> List[Sequence[Any]]:
    """Divide una secuencia en bloques de `size` elementos."""
    if size <= 0:
        raise ValueError("size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


async def insert_ignoring_conflicts(
    db: AsyncSession,
    model: Any,
    records: Sequence[Dict[str, Any]],
    *,
    conflict_column: str,
    batch_size: int,
) -> int:
    """
    Inserta `records` en bloques; las filas cuya clave ya existe se ignoran.

    Returns:
        Cantidad de filas insertadas.
    """
    if not records:
        return 0

    dialect = db.get_bind().dialect.name
    insert_fn = _INSERTS.get(dialect)
    if insert_fn is None:
        raise NotImplementedError(f"Dialecto no soportado para bulk insert: {dialect}")

    inserted = 0
    for chunk in chunked(list(records), batch_size):
        stmt = insert_fn(model).values(list(chunk)).on_conflict_do_nothing(
            index_elements=[conflict_column]
        )
        result = await db.execute(stmt)
        # Algunos drivers no informan rowcount (-1)
        inserted += result.rowcount if result.rowcount >= 0 else len(chunk)

    await db.flush()
    return inserted
