from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

from streetgen.config import DEFAULT_WORKERS, WORKER_JOIN_TIMEOUT, WORKER_POLL_TIMEOUT
from streetgen.world.generator import generate_chunk
from streetgen.world.protocol import ProtocolError, decode_request, encode_chunk, encode_error

log = logging.getLogger(__name__)


class GenerationChannel:
    """Fire-and-forget request queue in, result messages out.

    Results are delivered eventually, possibly out of order, possibly for
    chunks nobody wants any more. `poll` must never block.
    """

    def submit(self, request: dict) -> None:
        raise NotImplementedError

    def poll(self, max_items: int | None = None) -> list[dict]:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    @property
    def closed(self) -> bool:
        raise NotImplementedError


class ChunkWorker(threading.Thread):
    def __init__(
        self,
        task_q: "queue.Queue[dict]",
        out_q: "queue.Queue[dict]",
        *,
        generate: Callable = generate_chunk,
        name: str | None = None,
    ) -> None:
        super().__init__(daemon=True, name=name)
        self.task_q = task_q
        self.out_q = out_q
        self.generate = generate
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                request = self.task_q.get(timeout=WORKER_POLL_TIMEOUT)
            except queue.Empty:
                continue
            try:
                self.out_q.put(self.handle(request))
            finally:
                self.task_q.task_done()

    def handle(self, request: dict) -> dict | None:
        try:
            chunk_id, seed = decode_request(request)
        except ProtocolError:
            log.warning("worker dropped malformed request %r", request, exc_info=True)
            return None
        try:
            return encode_chunk(self.generate(chunk_id, seed))
        except Exception as e:
            # generation is total; report rather than let the thread die
            log.exception("generation failed for chunk %s", chunk_id.key)
            return encode_error(chunk_id, repr(e))


class ThreadedChannel(GenerationChannel):
    """Worker pool of daemon threads fed through a shared task queue."""

    def __init__(self, workers: int = DEFAULT_WORKERS, *, generate: Callable = generate_chunk) -> None:
        if workers < 1:
            raise ValueError(f"need at least one worker, got {workers}")
        self.task_q: "queue.Queue[dict]" = queue.Queue()
        self.out_q: "queue.Queue[dict | None]" = queue.Queue()
        self.workers = [
            ChunkWorker(self.task_q, self.out_q, generate=generate, name=f"chunk-worker-{i}")
            for i in range(int(workers))
        ]
        for w in self.workers:
            w.start()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, request: dict) -> None:
        if self._closed:
            raise RuntimeError("generation channel is closed")
        self.task_q.put(request)

    def poll(self, max_items: int | None = None) -> list[dict]:
        ready: list[dict] = []
        while max_items is None or len(ready) < max_items:
            try:
                msg = self.out_q.get_nowait()
            except queue.Empty:
                break
            if msg is not None:
                ready.append(msg)
        return ready

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for w in self.workers:
            w.stop()
        for w in self.workers:
            w.join(timeout=WORKER_JOIN_TIMEOUT)
            if w.is_alive():
                log.warning("%s did not stop within %.1fs", w.name, WORKER_JOIN_TIMEOUT)
