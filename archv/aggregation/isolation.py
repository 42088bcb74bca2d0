"""
Run independent fallible coroutines concurrently with error isolation.

run_isolated() waits for every operation to settle (success or failure)
and never raises on behalf of an individual operation. Each result is an
Outcome carrying either a value or the exception that ended it. Timeouts
are reported as UpstreamError.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from archv.ingestion.errors import UpstreamError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Settled result of one isolated operation."""

    name: str
    value: T | None = None
    error: BaseException | None = None
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


async def _settle(
    name: str,
    factory: Callable[[], Awaitable[T]],
    timeout: float | None,
) -> Outcome[T]:
    loop = asyncio.get_running_loop()
    started = loop.time()
    try:
        if timeout is None:
            value = await factory()
        else:
            value = await asyncio.wait_for(factory(), timeout=timeout)
    except asyncio.TimeoutError:
        error = UpstreamError(f"{name} timed out after {timeout:.1f}s")
        return Outcome(name=name, error=error, elapsed_seconds=loop.time() - started)
    except Exception as e:
        return Outcome(name=name, error=e, elapsed_seconds=loop.time() - started)
    return Outcome(name=name, value=value, elapsed_seconds=loop.time() - started)


async def run_isolated(
    operations: Sequence[tuple[str, Callable[[], Awaitable[T]]]],
    timeout: float | None = None,
) -> list[Outcome[T]]:
    """
    Run named operations concurrently and collect every outcome.

    Args:
        operations: (name, zero-arg coroutine factory) pairs
        timeout: Per-operation timeout in seconds (None for no limit)

    Returns:
        Outcomes in the same order as operations
    """
    if not operations:
        return []

    return list(
        await asyncio.gather(
            *(_settle(name, factory, timeout) for name, factory in operations)
        )
    )
