from __future__ import annotations

"""
Table layout and the store-side version token generator.

English: ``products_with_version.row_version`` is never written by callers.
Two triggers advance a database-wide counter and stamp the row after every
INSERT or UPDATE, whichever code path issued it.
"""

PRODUCTS = "products"
VERSIONED_PRODUCTS = "products_with_version"
CLOCK = "rowversion_clock"

# columns callers may write; id and row_version are store-owned
WRITABLE_COLUMNS = ("name", "stock", "price")

TABLES = f"""
CREATE TABLE IF NOT EXISTS {CLOCK} (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    value INTEGER NOT NULL
);
INSERT OR IGNORE INTO {CLOCK} (id, value) VALUES (1, 0);

CREATE TABLE IF NOT EXISTS {PRODUCTS} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL CHECK (length(name) <= 100),
    stock INTEGER NOT NULL,
    price TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS {VERSIONED_PRODUCTS} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL CHECK (length(name) <= 100),
    stock INTEGER NOT NULL,
    price TEXT NOT NULL,
    row_version INTEGER NOT NULL DEFAULT 0
);
"""

_STAMP = f"""
    UPDATE {CLOCK} SET value = value + 1 WHERE id = 1;
    UPDATE {VERSIONED_PRODUCTS}
       SET row_version = (SELECT value FROM {CLOCK} WHERE id = 1)
     WHERE id = NEW.id;
"""

# one statement per entry so async adapters without executescript can run them
ROWVERSION_TRIGGERS = (
    f"""
CREATE TRIGGER IF NOT EXISTS {VERSIONED_PRODUCTS}_stamp_insert
AFTER INSERT ON {VERSIONED_PRODUCTS}
FOR EACH ROW
BEGIN{_STAMP}END;
""",
    f"""
CREATE TRIGGER IF NOT EXISTS {VERSIONED_PRODUCTS}_stamp_update
AFTER UPDATE ON {VERSIONED_PRODUCTS}
FOR EACH ROW
BEGIN{_STAMP}END;
""",
)


def schema_statements() -> list[str]:
    """All DDL as individual statements, in execution order."""
    statements = [s.strip() + ";" for s in TABLES.split(";") if s.strip()]
    statements.extend(t.strip() for t in ROWVERSION_TRIGGERS)
    return statements


def install_schema(adapter) -> None:
    """Create tables and triggers on a connected sync adapter (idempotent)."""
    # the stamping UPDATE inside a trigger must not fire the trigger again
    adapter.execute("PRAGMA recursive_triggers = OFF;")
    adapter.executescript(TABLES)
    for trigger in ROWVERSION_TRIGGERS:
        adapter.execute(trigger)
    adapter.commit()


async def install_schema_async(adapter) -> None:
    """Async counterpart of :func:`install_schema`."""
    await adapter.execute("PRAGMA recursive_triggers = OFF;")
    for statement in schema_statements():
        await adapter.execute(statement)
    await adapter.commit()
