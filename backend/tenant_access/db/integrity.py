from __future__ import annotations

from sqlalchemy.exc import IntegrityError

# SQLSTATE unique_violation
_PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    True when the failed statement hit a UNIQUE constraint.
    Foreign key, NOT NULL and CHECK failures return False.
    """
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == _PG_UNIQUE_VIOLATION
    # sqlite: "UNIQUE constraint failed: <table>.<column>, ..."
    return "unique constraint" in str(orig).lower()
