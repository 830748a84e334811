"""Shared constants and helpers for token tests."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TypeVar

T = TypeVar("T")

SECRET = "unit-test-signing-secret-0123456789abcdef"
T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class FrozenClock:
    """Mutable clock shared by the services under test."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def bearer(token: str) -> dict[str, str]:
    """Build an ``Authorization`` header for the test client."""
    return {"Authorization": f"Bearer {token}"}


def run_concurrently(fn: Callable[[], T], parties: int) -> list[T]:
    """Release ``parties`` threads through a barrier into ``fn``; return every result.

    An exception raised in any worker is re-raised in the calling thread.
    """
    barrier = threading.Barrier(parties, timeout=10)
    results: list[T] = []
    errors: list[BaseException] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        try:
            outcome = fn()
        except BaseException as exc:  # noqa: BLE001 - surfaced below
            with lock:
                errors.append(exc)
            return
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(parties)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if errors:
        raise errors[0]
    return results
