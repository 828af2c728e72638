"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)

FilterValue = str | int | float | bool | None


class DatabaseError(Exception):
    """Raised when a database operation fails."""


class RecordNotFoundError(DatabaseError):
    """Raised when a record with the requested id does not exist."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _stringify_id(record: dict[str, Any]) -> dict[str, Any]:
    """Return the record with its integer primary key converted to a string."""
    converted = record.copy()
    if isinstance(converted.get("id"), int):
        converted["id"] = str(converted["id"])
    return converted


def _encode_value(value: Any) -> Any:
    """Convert Python values into something SQLite can bind."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return value


def _parse_record_id(collection: str, record_id: str) -> int:
    """Parse a string id into the integer primary key, treating garbage as not found."""
    if not isinstance(record_id, str) or not record_id.isdigit():
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    return int(record_id)


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> FilterValue:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        return f"%{value}%"

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


_SQL_OPERATORS = {
    "=": "=",
    "!=": "!=",
    ">": ">",
    "<": "<",
    ">=": ">=",
    "<=": "<=",
    "~": "LIKE",
}


def _parse_single_comparison(comparison: str) -> tuple[str, FilterValue]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.match(
        r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])(.*)\3$""",
        comparison.strip(),
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field, op, _quote, raw_value = match.groups()
    sql_op = _SQL_OPERATORS[op]
    value = _parse_value(raw_value, is_like=sql_op == "LIKE")
    return f"{field} {sql_op} ?", value


def parse_filter(filter_query: str) -> tuple[str, list[FilterValue]]:
    """Parse `field = "value" && other ~ "text"` syntax into a SQL WHERE clause and parameters."""
    if not filter_query:
        return "", []

    conditions = []
    params: list[FilterValue] = []
    for part in filter_query.split("&&"):
        cond, value = _parse_single_comparison(part)
        conditions.append(cond)
        params.append(value)

    return " AND ".join(conditions), params


def parse_sort(sort: str) -> str:
    """Translate `-field` / `+field` / `field` into an ORDER BY clause, defaulting to id."""
    match = re.match(r"^([+-]?)([A-Za-z_][A-Za-z0-9_]*)$", sort.strip()) if sort else None
    if not match:
        if sort:
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
        return "id ASC"
    direction = "DESC" if match.group(1) == "-" else "ASC"
    return f"{match.group(2)} {direction}"


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    path = get_db_path(db_path)
    cache_key = (thread_id, id(loop), str(path))

    cached_conn = _db_connections.get(cache_key)
    if cached_conn is not None:
        return cached_conn

    async with _db_lock:
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info("Created new SQLite connection", extra={"db_path": str(path), "thread_id": thread_id})
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    path = get_db_path(db_path)
    cache_key = (thread_id, id(loop), str(path))

    async with _db_lock:
        conn = _db_connections.pop(cache_key, None)
    if conn is None:
        return

    try:
        await conn.close()
        logger.info("Closed SQLite connection", extra={"db_path": str(path)})
    except aiosqlite.Error as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": str(path)})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


def _rows_to_records(cursor: aiosqlite.Cursor, rows: list[Any]) -> list[dict[str, Any]]:
    columns = [description[0] for description in cursor.description]
    return [_stringify_id(dict(zip(columns, row, strict=True))) for row in rows]


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    _validate_collection_name(collection)
    try:
        conn = await get_connection()

        columns = list(data.keys())
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_encode_value(data[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()
        record_id = cursor.lastrowid
    except aiosqlite.OperationalError as e:
        if "no such table" in str(e):
            logger.error("Table not found", extra={"collection": collection})
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            raise DatabaseError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        raise DatabaseError(f"Failed to create record in {collection}: {e}") from e
    except aiosqlite.Error as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        raise DatabaseError(f"Failed to create record in {collection}: {e}") from e

    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=str(record_id))


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    pk = _parse_record_id(collection, record_id)
    try:
        conn = await get_connection()
        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (pk,))
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise DatabaseError(f"Failed to get record from {collection}: {e}") from e

    if row is None:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    return _rows_to_records(cursor, [row])[0]


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    pk = _parse_record_id(collection, record_id)
    try:
        conn = await get_connection()

        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [_encode_value(val) for val in data.values()]
        values.append(datetime.now(UTC).isoformat().replace("+00:00", "Z"))
        values.append(pk)

        query = f"UPDATE {collection} SET {set_clause}, updated = ? WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise DatabaseError(f"Failed to update record in {collection}: {e}") from e

    if cursor.rowcount == 0:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    pk = _parse_record_id(collection, record_id)
    try:
        conn = await get_connection()
        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (pk,))
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise DatabaseError(f"Failed to delete record from {collection}: {e}") from e

    if cursor.rowcount == 0:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    _validate_collection_name(collection)
    where_clause, params = parse_filter(filter_query)
    where_sql = f"WHERE {where_clause}" if where_clause else ""
    order_sql = parse_sort(sort)
    offset = (page - 1) * per_page

    try:
        conn = await get_connection()
        query = f"SELECT * FROM {collection} {where_sql} ORDER BY {order_sql} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, [*params, per_page, offset])
        rows = await cursor.fetchall()
    except aiosqlite.Error as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        raise DatabaseError(f"Failed to list records from {collection}: {e}") from e

    records = _rows_to_records(cursor, list(rows))
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records
