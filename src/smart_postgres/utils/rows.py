"""JSON-safe conversion of result rows."""

from typing import Any, Mapping

from fastapi.encoders import jsonable_encoder


def _encode_bytes(value: bytes | bytearray | memoryview) -> str:
    # psql's hex output format for bytea
    return "\\x" + bytes(value).hex()


ROW_ENCODERS = {
    bytes: _encode_bytes,
    bytearray: _encode_bytes,
    memoryview: _encode_bytes,
}


def json_safe_value(value: Any) -> Any:
    """Encode one column value for JSON.

    Types the encoder does not know (asyncpg ranges, bit strings, geometric
    types) are rendered with ``str``.
    """
    try:
        return jsonable_encoder(value, custom_encoder=ROW_ENCODERS)
    except (TypeError, ValueError):
        return str(value)


def json_safe_rows(rows: list[Mapping[str, Any]] | None) -> list[dict[str, Any]]:
    """Encode every value of every row for JSON."""
    return [{str(key): json_safe_value(value) for key, value in row.items()} for row in rows or []]
