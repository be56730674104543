from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from azure.core.pipeline.policies import RetryMode


DEFAULT_RETRIES = 3
DEFAULT_RETRY_WAIT_SECONDS = 1.0


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff settings handed to the SDK retry policy.

    Requests are retried by the client pipeline, never by the store itself.
    """

    retries: int = DEFAULT_RETRIES
    backoff_seconds: float = DEFAULT_RETRY_WAIT_SECONDS
    backoff_max_seconds: float = 120.0

    def client_kwargs(self) -> dict[str, Any]:
        return {
            "retry_total": max(0, int(self.retries)),
            "retry_backoff_factor": max(0.0, float(self.backoff_seconds)),
            "retry_backoff_max": max(0.0, float(self.backoff_max_seconds)),
            "retry_mode": RetryMode.Exponential,
        }


@dataclass(frozen=True, slots=True)
class TableStoreOptions:
    retry_policy: RetryPolicy = RetryPolicy()
    connection_timeout: float = 20
    read_timeout: float = 60
    # Ensure the table exists when the store is constructed.
    create_table_if_not_exists: bool = True
    logging_enable: bool = False

    @classmethod
    def with_retries(cls, retries: int, retry_wait_seconds: float) -> TableStoreOptions:
        return cls(retry_policy=RetryPolicy(retries=retries, backoff_seconds=retry_wait_seconds))

    def client_kwargs(self) -> dict[str, Any]:
        kwargs = self.retry_policy.client_kwargs()
        kwargs["connection_timeout"] = self.connection_timeout
        kwargs["read_timeout"] = self.read_timeout
        if self.logging_enable:
            kwargs["logging_enable"] = True
        return kwargs
