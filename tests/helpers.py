"""Test doubles and polling helpers shared across test modules."""

import asyncio
from collections.abc import Callable

from campus_bot.llm.request import ErrorResult, GenerationRequest, StructuredResult, TextResult


class FakeModelClient:
    """Stands in for ModelClient; records requests, returns queued results."""

    def __init__(self, *results: TextResult | StructuredResult | ErrorResult) -> None:
        self.results = list(results)
        self.requests: list[GenerationRequest] = []
        self.gate: asyncio.Event | None = None

    async def complete_request(self, request: GenerationRequest):
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            return self.results.pop(0)
        return TextResult("ok")

    async def close(self) -> None:
        pass


class StaticSource:
    """A mirror replacement whose ``current`` is set directly."""

    def __init__(self, current) -> None:
        self.current = current


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* until it holds or *timeout* seconds pass."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)
