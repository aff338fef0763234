import asyncio
import logging
import time
from concurrent.futures import ProcessPoolExecutor
from typing import Callable

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

DEFAULT_FIB_N = 35
LOAD_MODES = ("inline", "thread", "process")


# A deliberately slow Fibonacci implementation (recursive)
def fib(n: int) -> int:
    if n <= 1:
        return n
    return fib(n-1) + fib(n-2)


# Return value type: dict
def busy_cpu_task(n: int = DEFAULT_FIB_N, workload: Callable[[int], int] = fib):
    start = time.perf_counter()
    value = workload(n)
    elapsed = (time.perf_counter() - start) * 1000
    return {"elapsed_ms": elapsed, "result": value}


class LoadSimulator:
    """Runs busy_cpu_task once per call, either on the event loop or off it.

    ``inline`` keeps the work on the calling event loop, so every other
    connection waits until it finishes. ``thread`` and ``process`` hand it to
    a worker and await the result.
    """

    def __init__(self, n: int = DEFAULT_FIB_N, mode: str = "inline",
                 workload: Callable[[int], int] = fib):
        if mode not in LOAD_MODES:
            raise ValueError(f"unknown load mode {mode!r}, expected one of {', '.join(LOAD_MODES)}")
        self.n = n
        self.mode = mode
        self.workload = workload
        self._pool: ProcessPoolExecutor | None = None

    async def run(self) -> dict:
        if self.mode == "inline":
            result = busy_cpu_task(self.n, self.workload)
        elif self.mode == "thread":
            result = await run_in_threadpool(busy_cpu_task, self.n, self.workload)
        else:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(self._executor(), busy_cpu_task, self.n, self.workload)
        logger.debug("load simulation fib(%d) took %.1f ms (%s)", self.n, result["elapsed_ms"], self.mode)
        return result

    def _executor(self) -> ProcessPoolExecutor:
        if self._pool is None:
            self._pool = ProcessPoolExecutor(max_workers=1)
        return self._pool

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None
