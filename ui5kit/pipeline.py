"""
pipeline.py

Responsibility: Run build steps as an explicit asynchronous pipeline.

- `Pipeline` executes stages strictly in order; a failing stage aborts the run.
- `fan_out` runs a batch of independent (blocking) tasks concurrently in worker
  threads and awaits them as a unit. The first failure propagates; siblings that
  already started are not cancelled and run to completion on their own.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

logger = logging.getLogger("ui5kit.pipeline")

ProgressCallback = Callable[[int, int, str], None]


class BuildError(RuntimeError):
    def __init__(self, stage: str, message: str = "") -> None:
        self.stage = stage
        super().__init__(f"Build step '{stage}' failed" + (f": {message}" if message else ""))


@dataclass(frozen=True)
class Stage:
    name: str
    run: Callable[[], Awaitable[Any]]


@dataclass
class Pipeline:
    stages: list[Stage]
    log: logging.Logger = logger
    on_progress: ProgressCallback | None = None

    async def run(self) -> None:
        total = len(self.stages)
        for index, stage in enumerate(self.stages, start=1):
            if self.on_progress is not None:
                self.on_progress(index, total, stage.name)
            self.log.info("Starting '%s' ...", stage.name)
            started = time.monotonic()
            try:
                await stage.run()
            except BuildError:
                raise
            except Exception as e:  # noqa: BLE001 - surface as BuildError
                self.log.error("Failed '%s': %s", stage.name, e)
                raise BuildError(stage.name, str(e)) from e
            self.log.info("Finished '%s' after %.1f s", stage.name, time.monotonic() - started)


def blocking(fn: Callable[[], Any]) -> Callable[[], Awaitable[Any]]:
    """Adapt a blocking callable into a stage runner executed in a worker thread."""

    async def run() -> Any:
        return await asyncio.to_thread(fn)

    return run


async def fan_out(tasks: Iterable[Callable[[], Any]]) -> list[Any]:
    """
    Run independent blocking callables concurrently and wait for all of them.

    Results keep the order of `tasks`.
    """
    return list(await asyncio.gather(*(asyncio.to_thread(task) for task in tasks)))
