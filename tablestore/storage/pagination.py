from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .errors import InvalidContinuationToken


T = TypeVar("T")

_TOKEN_VERSION = 1

DEFAULT_PAGE_SIZE = 100
# The service never returns more than 1000 entities per page.
MAX_PAGE_SIZE = 1000


@dataclass(slots=True)
class PagedResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    continuation_token: str | None = None

    @property
    def is_final_page(self) -> bool:
        return self.continuation_token is None

    def __len__(self) -> int:
        return len(self.items)


def clamp_page_size(page_size: int | None) -> int:
    return max(1, min(MAX_PAGE_SIZE, int(page_size or DEFAULT_PAGE_SIZE)))


def encode_continuation_token(token: dict[str, Any] | None) -> str | None:
    """Serialize the SDK continuation structure into an opaque string.

    The SDK represents a table continuation as
    ``{"PartitionKey": <next pk>, "RowKey": <next rk>}``; either half may be
    absent. The envelope is versioned and carries no stability guarantee.
    """
    if not token:
        return None

    payload = {"v": _TOKEN_VERSION, "ct": token}
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_continuation_token(continuation_token: str | None) -> dict[str, Any] | None:
    if not continuation_token:
        return None

    try:
        raw = base64.urlsafe_b64decode(str(continuation_token).encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except ValueError as e:  # bad base64, utf-8 or json
        raise InvalidContinuationToken(message="Invalid continuation token") from e

    if not isinstance(payload, dict):
        raise InvalidContinuationToken(message="Invalid continuation token")

    if payload.get("v") != _TOKEN_VERSION:
        raise InvalidContinuationToken(message="Unsupported continuation token version")

    ct = payload.get("ct")
    if ct is None:
        return None
    if not isinstance(ct, dict):
        raise InvalidContinuationToken(message="Invalid continuation token")

    return ct
