"""Shared fixtures: a hand-driven generation channel and recording collaborators."""

from __future__ import annotations

import os
from typing import Iterator

import pytest

from streetgen.world.channel import GenerationChannel
from streetgen.world.generator import generate_chunk
from streetgen.world.protocol import decode_request, encode_chunk

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")


class ManualChannel(GenerationChannel):
    """Records requests; the test decides when (and in which order) results arrive."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.outbox: list[dict] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, request: dict) -> None:
        if self._closed:
            raise RuntimeError("closed")
        self.requests.append(request)

    def poll(self, max_items: int | None = None) -> list[dict]:
        n = len(self.outbox) if max_items is None else min(max_items, len(self.outbox))
        out, self.outbox = self.outbox[:n], self.outbox[n:]
        return out

    def close(self) -> None:
        self._closed = True

    def requested_keys(self) -> list[str]:
        return [f"{r['chunkId']['x']},{r['chunkId']['y']}" for r in self.requests]

    def complete(self, key: str | None = None) -> dict:
        """Run generation for one outstanding request (the oldest, or by key) and queue the result."""
        for i, req in enumerate(self.requests):
            chunk_id, seed = decode_request(req)
            if key is None or chunk_id.key == key:
                del self.requests[i]
                msg = encode_chunk(generate_chunk(chunk_id, seed))
                self.outbox.append(msg)
                return msg
        raise KeyError(key)

    def complete_all(self) -> None:
        while self.requests:
            self.complete()


class RecordingRenderer:
    def __init__(self, fail_after: int | None = None) -> None:
        self.fail_after = fail_after
        self.live: dict[int, object] = {}
        self.created = 0
        self.removed = 0
        self._next = 0

    def create_drawable(self, descriptor) -> int:
        if self.fail_after is not None and self.created >= self.fail_after:
            raise MemoryError("out of GPU memory")
        self._next += 1
        self.created += 1
        self.live[self._next] = descriptor
        return self._next

    def remove_drawable(self, handle: int) -> None:
        del self.live[handle]
        self.removed += 1


class RecordingPhysics:
    def __init__(self, fail_after: int | None = None) -> None:
        self.fail_after = fail_after
        self.live: dict[int, tuple] = {}
        self.created = 0
        self.removed = 0
        self._next = 0

    def _add(self, record: tuple) -> int:
        if self.fail_after is not None and self.created >= self.fail_after:
            raise MemoryError("physics pool exhausted")
        self._next += 1
        self.created += 1
        self.live[self._next] = record
        return self._next

    def create_static_box(self, position, size, rotation=0.0) -> int:
        return self._add(("box", position, size, rotation))

    def create_static_capsule(self, position, radius, height, rotation=0.0) -> int:
        return self._add(("capsule", position, radius, height, rotation))

    def remove_collider(self, handle: int) -> None:
        del self.live[handle]
        self.removed += 1


@pytest.fixture()
def channel() -> ManualChannel:
    return ManualChannel()


@pytest.fixture()
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture()
def physics() -> RecordingPhysics:
    return RecordingPhysics()


@pytest.fixture()
def manager(channel, renderer, physics) -> Iterator:
    from streetgen.world.chunk_manager import ChunkManager

    cm = ChunkManager(renderer, physics, 12345, load_radius=3, channel=channel, max_results_per_update=None)
    yield cm
    cm.dispose()
