from __future__ import annotations

from typing import Any

from .errors import TableStoreValidation


def require_text(value: Any, name: str, *, operation: str, table_name: str | None = None) -> str:
    v = str(value or "").strip()
    if not v:
        raise TableStoreValidation(
            message=f"{name} is required",
            operation=operation,
            table_name=table_name,
        )
    # Keys are significant as given; only blankness is rejected.
    return str(value)


def require_record(record: Any, *, operation: str, table_name: str | None = None, name: str = "record") -> None:
    if record is None:
        raise TableStoreValidation(message=f"{name} is required", operation=operation, table_name=table_name)


def require_etag(record: Any, *, operation: str, table_name: str | None = None) -> str:
    etag = getattr(record, "etag", None)
    if not etag:
        raise TableStoreValidation(
            message="etag is required; read the record first or pass force=True",
            operation=operation,
            table_name=table_name,
            key=getattr(record, "key", None),
        )
    return str(etag)
