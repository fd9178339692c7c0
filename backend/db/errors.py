"""Classification of store constraint violations"""
from typing import Literal, Optional
from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION = "unique"
FOREIGN_KEY_VIOLATION = "foreign_key"

ViolationKind = Literal["unique", "foreign_key"]

# PostgreSQL SQLSTATE codes
_PG_CODES = {
    "23505": UNIQUE_VIOLATION,
    "23503": FOREIGN_KEY_VIOLATION,
}

# SQLite extended result code names (Python 3.11+)
_SQLITE_NAMES = {
    "SQLITE_CONSTRAINT_UNIQUE": UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_PRIMARYKEY": UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_FOREIGNKEY": FOREIGN_KEY_VIOLATION,
}


def classify_integrity_error(exc: IntegrityError) -> Optional[ViolationKind]:
    orig = getattr(exc, "orig", None)

    code = (
        getattr(orig, "sqlstate", None)
        or getattr(orig, "pgcode", None)
        or getattr(getattr(orig, "__cause__", None), "sqlstate", None)  # asyncpg wrapped by the adapter
    )
    if code in _PG_CODES:
        return _PG_CODES[code]

    name = getattr(orig, "sqlite_errorname", None)
    if name in _SQLITE_NAMES:
        return _SQLITE_NAMES[name]

    # Older sqlite3 modules only expose the message
    message = str(orig or exc)
    if "UNIQUE constraint failed" in message:
        return UNIQUE_VIOLATION
    if "FOREIGN KEY constraint failed" in message:
        return FOREIGN_KEY_VIOLATION
    return None
