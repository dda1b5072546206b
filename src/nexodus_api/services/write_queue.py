"""Per-chat write queue.

Chat mutations are read-modify-replace cycles on the whole document. Running
every mutation of a given chat through one queue keeps two of them from
starting from the same snapshot, so concurrent appends are applied one after
the other in arrival order.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict

import structlog

from ..domain.errors import StoreUnavailableError

logger = structlog.get_logger()


@dataclass
class QueuedWrite:
    """A mutation waiting for its turn on a chat."""

    chat_id: str
    task: Callable[[], Awaitable[Any]]
    future: asyncio.Future = field(repr=False)
    started: asyncio.Event = field(default_factory=asyncio.Event, repr=False)


class ChatWriteQueue:
    """Serializes writes per chat id. Different chats proceed in parallel.

    ``write_timeout`` bounds how long a write may wait for its turn. A write
    that has started always runs to completion and its caller gets the
    result, so a timeout never hides a write that was applied.
    """

    def __init__(self, write_timeout: float = 30.0) -> None:
        self.write_timeout = write_timeout
        self._lock = asyncio.Lock()
        self.queues: Dict[str, asyncio.Queue] = {}
        self._workers: Dict[str, asyncio.Task] = {}
        logger.info("write_queue_initialized", write_timeout=write_timeout)

    async def pending(self) -> int:
        """Number of chats with a running worker."""
        async with self._lock:
            return len(self._workers)

    async def _process_queue(self, chat_id: str) -> None:
        """Run queued writes for one chat until its queue drains."""
        queue = self.queues[chat_id]
        try:
            while True:
                write = await queue.get()
                # The caller gave up before this write started.
                if write.future.cancelled():
                    queue.task_done()
                    logger.warning("queued_write_skipped", chat_id=chat_id)
                else:
                    write.started.set()
                    try:
                        result = await write.task()
                        if not write.future.done():
                            write.future.set_result(result)
                    except asyncio.CancelledError:
                        write.future.cancel()
                        raise
                    except Exception as e:
                        if not write.future.done():
                            write.future.set_exception(e)
                    finally:
                        queue.task_done()

                async with self._lock:
                    if queue.empty():
                        del self.queues[chat_id]
                        del self._workers[chat_id]
                        return
        except asyncio.CancelledError:
            logger.info("write_worker_cancelled", chat_id=chat_id)
            raise

    async def submit(self, chat_id: str, task: Callable[[], Awaitable[Any]]) -> Any:
        """Queue a write for a chat and wait for its result."""
        future = asyncio.get_running_loop().create_future()
        write = QueuedWrite(chat_id=chat_id, task=task, future=future)

        async with self._lock:
            queue = self.queues.get(chat_id)
            if queue is None:
                queue = self.queues[chat_id] = asyncio.Queue()
                self._workers[chat_id] = asyncio.create_task(self._process_queue(chat_id))
            queue.put_nowait(write)

        try:
            await asyncio.wait_for(write.started.wait(), timeout=self.write_timeout)
        except asyncio.TimeoutError:
            if not write.started.is_set():
                future.cancel()
                logger.error("write_timeout", chat_id=chat_id, timeout=self.write_timeout)
                raise StoreUnavailableError()
        return await future

    async def cleanup(self) -> None:
        """Cancel every worker."""
        async with self._lock:
            workers = list(self._workers.values())
            for worker in workers:
                if not worker.done():
                    worker.cancel()
            self.queues.clear()
            self._workers.clear()

        if workers:
            await asyncio.gather(*workers, return_exceptions=True)
        logger.info("write_queue_cleaned_up")
