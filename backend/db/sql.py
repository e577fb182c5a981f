"""
SQL execution helper with enforced query conventions.

Rules enforced:
1. Use :name param style only (SQLAlchemy bind params)
2. Never use percent-paren psycopg2-specific style
3. Never interpolate values into SQL; IN lists go through expanding binds
4. Table names come from qualified_table() so DB_SCHEMA is honored

Usage:
    from db.sql import run_sql, qualified_table

    rows = run_sql(
        db,
        f'''
        SELECT DISTINCT v.vname AS "VNAME"
        FROM {qualified_table('vertical')} v
        WHERE v.vstatus = 'ACTIVE'
          AND v.vid IN :vids
        ''',
        expanding=('vids',),
        vids=[1, 2, 3],
    )
"""
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple
from sqlalchemy import bindparam, text


# Regex patterns for validation
PSYCOPG2_PARAM_PATTERN = re.compile(r'%\([a-zA-Z_][a-zA-Z0-9_]*\)s')
SQLALCHEMY_PARAM_PATTERN = re.compile(r'(?<!:):([a-zA-Z_][a-zA-Z0-9_]*)')
IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


class SQLParamStyleError(Exception):
    """Raised when SQL uses incorrect parameter style."""
    pass


class SQLParamMissingError(Exception):
    """Raised when SQL references a :name param that was not supplied."""
    pass


def validate_sql_text(sql: str) -> None:
    """
    Validate that SQL text uses correct :name param style.

    Raises SQLParamStyleError if psycopg2 percent-paren style is detected.
    """
    matches = PSYCOPG2_PARAM_PATTERN.findall(sql)
    if matches:
        raise SQLParamStyleError(
            f"SQL contains psycopg2-style params: {matches}. "
            f"Use SQLAlchemy :name style instead."
        )


def extract_param_names(sql: str) -> List[str]:
    """Extract :name parameter names from SQL text."""
    return SQLALCHEMY_PARAM_PATTERN.findall(sql)


def validate_params(sql: str, params: Dict[str, Any]) -> None:
    """Every :name referenced by the SQL must be supplied."""
    missing = sorted(set(extract_param_names(sql)) - set(params))
    if missing:
        raise SQLParamMissingError(f"Missing SQL params: {missing}")


def qualified_table(name: str, schema: Optional[str] = None) -> str:
    """
    Return a table name qualified with the configured schema.

    Args:
        name: Bare table name
        schema: Explicit schema; defaults to DB_SCHEMA from the Flask config
                (or none outside an app context)
    """
    if schema is None:
        schema = _configured_schema()
    for part in (name, schema):
        if part and not IDENTIFIER_PATTERN.match(part):
            raise ValueError(f"Invalid SQL identifier: {part!r}")
    return f"{schema}.{name}" if schema else name


def _configured_schema() -> str:
    from flask import current_app, has_app_context

    if not has_app_context():
        return ''
    return current_app.config.get('DB_SCHEMA', '') or ''


def _build_statement(sql: str, expanding: Iterable[str]):
    stmt = text(sql)
    names = tuple(expanding)
    if names:
        stmt = stmt.bindparams(*(bindparam(n, expanding=True) for n in names))
    return stmt


def run_sql(
    db,
    sql: str,
    validate: bool = True,
    expanding: Iterable[str] = (),
    **params
) -> List[Tuple]:
    """
    Execute SQL with param-style and missing-param validation.

    Args:
        db: SQLAlchemy database session (or object with .session.execute)
        sql: SQL text using :name param style
        validate: Whether to validate SQL and params (default True)
        expanding: Names of list params rendered as IN (...) bind lists
        **params: Named parameters to pass to the query

    Returns:
        List of result rows

    Raises:
        SQLParamStyleError: If SQL uses psycopg2 percent-paren style
        SQLParamMissingError: If a referenced param was not supplied
    """
    if validate:
        validate_sql_text(sql)
        validate_params(sql, params)

    # Get session - handle both db and db.session patterns
    session = getattr(db, 'session', db)

    result = session.execute(_build_statement(sql, expanding), params)
    return result.fetchall()


def run_sql_dicts(
    db,
    sql: str,
    validate: bool = True,
    expanding: Iterable[str] = (),
    **params
) -> List[Dict[str, Any]]:
    """Execute SQL and return rows as plain dicts keyed by column label."""
    rows = run_sql(db, sql, validate=validate, expanding=expanding, **params)
    return [dict(row._mapping) for row in rows]


def run_sql_scalar(
    db,
    sql: str,
    validate: bool = True,
    **params
) -> Any:
    """
    Execute SQL and return a single scalar value.

    Useful for lookups like the bucket level name.
    """
    if validate:
        validate_sql_text(sql)
        validate_params(sql, params)

    session = getattr(db, 'session', db)
    result = session.execute(text(sql), params)
    row = result.fetchone()
    return row[0] if row else None
