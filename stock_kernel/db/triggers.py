"""
Module: stock_kernel.db.triggers
Responsibility: Installing, removing and verifying database-level
    immutability triggers on stock_events.  This is the database-level
    complement to the ORM listeners in models/stock_event.py.
Architecture position: Kernel > DB.  MUST NOT import from models/,
    services/, selectors/, domain/, or outer layers.

Invariants enforced:
    IMMUTABILITY -- stock_events rows: no UPDATE, no DELETE, ever.

Failure modes:
    - PostgreSQL RAISE EXCEPTION / SQLite RAISE(ABORT) on any violation
      (surfaced by SQLAlchemy as an IntegrityError or OperationalError).

Even if the ORM layer is bypassed (raw SQL, bulk operations, direct psql
access), the triggers reject modification of stored stock events.
"""

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

ALL_TRIGGER_NAMES = [
    "trg_stock_event_immutability_update",
    "trg_stock_event_immutability_delete",
]

_POSTGRES_INSTALL = [
    """
    CREATE OR REPLACE FUNCTION stock_event_immutable() RETURNS trigger AS $$
    BEGIN
        RAISE EXCEPTION 'stock_events are immutable: % on event_id %',
            TG_OP, OLD.event_id;
    END;
    $$ LANGUAGE plpgsql
    """,
    "DROP TRIGGER IF EXISTS trg_stock_event_immutability_update ON stock_events",
    """
    CREATE TRIGGER trg_stock_event_immutability_update
    BEFORE UPDATE ON stock_events
    FOR EACH ROW EXECUTE FUNCTION stock_event_immutable()
    """,
    "DROP TRIGGER IF EXISTS trg_stock_event_immutability_delete ON stock_events",
    """
    CREATE TRIGGER trg_stock_event_immutability_delete
    BEFORE DELETE ON stock_events
    FOR EACH ROW EXECUTE FUNCTION stock_event_immutable()
    """,
]

_POSTGRES_UNINSTALL = [
    "DROP TRIGGER IF EXISTS trg_stock_event_immutability_update ON stock_events",
    "DROP TRIGGER IF EXISTS trg_stock_event_immutability_delete ON stock_events",
    "DROP FUNCTION IF EXISTS stock_event_immutable()",
]

_SQLITE_INSTALL = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_stock_event_immutability_update
    BEFORE UPDATE ON stock_events
    BEGIN
        SELECT RAISE(ABORT, 'stock_events are immutable');
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_stock_event_immutability_delete
    BEFORE DELETE ON stock_events
    BEGIN
        SELECT RAISE(ABORT, 'stock_events are immutable');
    END
    """,
]

_SQLITE_UNINSTALL = [
    "DROP TRIGGER IF EXISTS trg_stock_event_immutability_update",
    "DROP TRIGGER IF EXISTS trg_stock_event_immutability_delete",
]


def _statements(engine: Engine, install: bool) -> list[str]:
    dialect = engine.dialect.name
    if dialect == "postgresql":
        return _POSTGRES_INSTALL if install else _POSTGRES_UNINSTALL
    if dialect == "sqlite":
        return _SQLITE_INSTALL if install else _SQLITE_UNINSTALL
    raise NotImplementedError(f"No immutability triggers for dialect {dialect!r}")


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level immutability triggers on stock_events.

    Preconditions: stock_events exists (call after metadata.create_all()).
    Postconditions: Every trigger in ALL_TRIGGER_NAMES is installed.
        Installation is idempotent.
    """
    with engine.begin() as conn:
        for statement in _statements(engine, install=True):
            conn.execute(text(statement))


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove the stock_events immutability triggers.

    WARNING: Only for test teardown and schema migrations.  Re-install
    immediately afterwards.
    """
    with engine.begin() as conn:
        for statement in _statements(engine, install=False):
            conn.execute(text(statement))


def get_installed_triggers(engine: Engine) -> list[str]:
    """Get the immutability triggers currently present in the database."""
    if engine.dialect.name == "postgresql":
        query = "SELECT tgname FROM pg_trigger WHERE tgname IN :names ORDER BY tgname"
    else:
        query = (
            "SELECT name FROM sqlite_master WHERE type = 'trigger' "
            "AND name IN :names ORDER BY name"
        )

    stmt = text(query).bindparams(bindparam("names", expanding=True))
    with engine.connect() as conn:
        return [row[0] for row in conn.execute(stmt, {"names": ALL_TRIGGER_NAMES})]


def triggers_installed(engine: Engine) -> bool:
    """Check if all immutability triggers are installed."""
    return len(get_installed_triggers(engine)) == len(ALL_TRIGGER_NAMES)
