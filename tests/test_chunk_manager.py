from __future__ import annotations

import logging

import pytest
from conftest import ManualChannel, RecordingPhysics, RecordingRenderer

from streetgen.config import CHUNK_SIZE
from streetgen.world.chunk import ChunkState
from streetgen.world.chunk_manager import ChunkManager
from streetgen.world.generator import generate_chunk
from streetgen.world.geometry import describe_chunk
from streetgen.world.protocol import encode_chunk, encode_error
from streetgen.world.types import ChunkId, Vec3


def at_chunk(cx: int, cy: int) -> Vec3:
    """World position in the middle of chunk (cx, cy)."""
    return Vec3((cx + 0.5) * CHUNK_SIZE, 1.0, (cy + 0.5) * CHUNK_SIZE)


def settle(manager: ChunkManager, channel: ManualChannel, pos: Vec3) -> None:
    """Update, finish every outstanding request, and consume the results."""
    manager.update(pos)
    channel.complete_all()
    manager.update(pos)


def expected_create_calls(chunk_id: ChunkId, seed: int = 12345) -> tuple[int, int]:
    data = generate_chunk(chunk_id, seed)
    return len(list(describe_chunk(data))), len(data.collision_primitives)


def test_first_update_requests_49_chunks(manager, channel) -> None:
    manager.update(Vec3(0.0, 0.0, 0.0))
    keys = set(channel.requested_keys())
    expected = {f"{x},{y}" for x in range(-3, 4) for y in range(-3, 4)}
    assert keys == expected
    assert len(channel.requests) == 49
    assert manager.pending == frozenset(expected)
    assert all(r["worldSeed"] == 12345 for r in channel.requests)
    assert manager.observer_chunk == ChunkId(0, 0)


def test_requests_are_not_duplicated_while_in_flight(manager, channel) -> None:
    for _ in range(5):
        manager.update(Vec3(10.0, 0.0, 10.0))
    assert len(channel.requests) == 49


def test_results_materialize_and_resident_chunks_are_not_rerequested(manager, channel, renderer, physics) -> None:
    settle(manager, channel, Vec3(0.0, 0.0, 0.0))
    resident = manager.get_resident_chunks()
    assert len(resident) == 49
    assert manager.pending == frozenset()
    assert manager.state(ChunkId(3, -3)) is ChunkState.RESIDENT

    manager.update(Vec3(0.0, 0.0, 0.0))
    assert channel.requests == []
    assert len(renderer.live) == renderer.created
    assert len(physics.live) == physics.created


def test_resident_map_is_read_only(manager, channel) -> None:
    settle(manager, channel, Vec3(0.0, 0.0, 0.0))
    resident = manager.get_resident_chunks()
    with pytest.raises(TypeError):
        resident["0,0"] = None  # type: ignore[index]


def test_hysteresis_keeps_distance_four_and_evicts_distance_five(manager, channel) -> None:
    # observer in chunk (1,0) pulls (4,0) in
    settle(manager, channel, at_chunk(1, 0))
    assert manager.state(ChunkId(4, 0)) is ChunkState.RESIDENT

    # back at (0,0): (4,0) is outside the load square but exactly 4 away
    manager.update(at_chunk(0, 0))
    assert manager.state(ChunkId(4, 0)) is ChunkState.RESIDENT
    assert ChunkId(4, 0).key not in channel.requested_keys()

    # at (-1,0) it is 5 away and must go
    manager.update(at_chunk(-1, 0))
    assert manager.state(ChunkId(4, 0)) is ChunkState.ABSENT


def test_diagonal_chunks_evicted_by_euclidean_distance(manager, channel) -> None:
    settle(manager, channel, at_chunk(0, 0))
    # (3,3) is sqrt(18) ~ 4.24 from (0,0); from (-1,0) it is sqrt(25) = 5
    manager.update(at_chunk(0, 0))
    assert manager.state(ChunkId(3, 3)) is ChunkState.RESIDENT
    manager.update(at_chunk(-1, 0))
    assert manager.state(ChunkId(3, 3)) is ChunkState.ABSENT


def test_corners_of_the_load_square_stay_loaded(manager, channel) -> None:
    corners = [ChunkId(x, y) for x in (-3, 3) for y in (-3, 3)]
    for _ in range(4):
        manager.update(at_chunk(0, 0))
        channel.complete_all()
    manager.update(at_chunk(0, 0))
    assert all(manager.state(c) is ChunkState.RESIDENT for c in corners)
    assert len(manager.get_resident_chunks()) == 49
    assert len(channel.requests) == 49
    assert manager.stats()["cancelled"] == 0


def test_oscillating_across_boundary_keeps_edge_chunks(manager, channel) -> None:
    settle(manager, channel, at_chunk(0, 0))
    for i in range(10):
        manager.update(at_chunk(1 if i % 2 else 0, 0))
        channel.complete_all()
        assert manager.state(ChunkId(-3, 0)) is ChunkState.RESIDENT
    assert manager.state(ChunkId(4, 0)) is ChunkState.RESIDENT


def test_stale_result_is_discarded(manager, channel, renderer, physics) -> None:
    manager.update(at_chunk(0, 0))
    far_key = ChunkId(-3, 0).key
    msg = channel.complete(far_key)

    # move far enough that (-3,0) is beyond the unload boundary before the result lands
    channel.outbox.clear()
    manager.update(at_chunk(5, 0))
    assert manager.state(ChunkId(-3, 0)) is ChunkState.ABSENT

    created_before = (renderer.created, physics.created)
    assert manager.on_generation_result(msg) is None
    assert manager.state(ChunkId(-3, 0)) is ChunkState.ABSENT
    assert (renderer.created, physics.created) == created_before
    assert far_key not in manager.get_resident_chunks()
    assert manager.stats()["discarded"] == 1


def test_duplicate_result_does_not_double_materialize(manager, channel, renderer) -> None:
    manager.update(at_chunk(0, 0))
    msg = channel.complete("0,0")
    manager.update(at_chunk(0, 0))
    assert manager.state(ChunkId(0, 0)) is ChunkState.RESIDENT
    created = renderer.created

    assert manager.on_generation_result(msg) is None
    assert renderer.created == created
    assert len(manager.get_resident_chunks()) == 1


def test_out_of_order_results(manager, channel) -> None:
    manager.update(at_chunk(0, 0))
    for key in reversed(channel.requested_keys()):
        channel.complete(key)
    manager.update(at_chunk(0, 0))
    assert len(manager.get_resident_chunks()) == 49


def test_result_for_unrequested_chunk_is_ignored(manager, renderer) -> None:
    data = generate_chunk(ChunkId(100, 100), 12345)
    assert manager.on_generation_result(data) is None
    assert renderer.created == 0


def test_on_generation_result_accepts_chunk_data(manager, renderer, physics) -> None:
    manager.update(at_chunk(0, 0))
    loaded = manager.on_generation_result(generate_chunk(ChunkId(0, 0), 12345))
    assert loaded is not None
    assert loaded.key == "0,0"
    drawables, colliders = expected_create_calls(ChunkId(0, 0))
    assert len(loaded.drawables) == drawables
    assert len(loaded.colliders) == colliders


def test_resource_symmetry_on_eviction(manager, channel, renderer, physics) -> None:
    manager.update(at_chunk(0, 0))
    channel.complete("3,0")
    manager.update(at_chunk(0, 0))
    loaded = manager.get_resident_chunks()["3,0"]
    drawables, colliders = expected_create_calls(ChunkId(3, 0))
    assert (renderer.created, physics.created) == (drawables, colliders)
    handles = list(loaded.drawables), list(loaded.colliders)

    assert manager.evict("3,0") is True
    assert (renderer.removed, physics.removed) == (drawables, colliders)
    assert not any(h in renderer.live for h in handles[0])
    assert not any(h in physics.live for h in handles[1])
    assert loaded.drawables == [] and loaded.colliders == []


def test_evict_is_noop_for_absent_key(manager, renderer) -> None:
    assert manager.evict("9,9") is False
    assert renderer.removed == 0


def test_evicted_chunk_is_requested_again_when_back_in_range(manager, channel) -> None:
    settle(manager, channel, at_chunk(0, 0))
    manager.update(at_chunk(-2, 0))
    assert manager.state(ChunkId(3, 0)) is ChunkState.ABSENT
    channel.requests.clear()
    manager.update(at_chunk(0, 0))
    assert "3,0" in channel.requested_keys()
    assert manager.state(ChunkId(3, 0)) is ChunkState.REQUESTED


def test_materialization_failure_rolls_back_and_retries(channel, physics, caplog) -> None:
    renderer = RecordingRenderer(fail_after=3)
    cm = ChunkManager(renderer, physics, 12345, load_radius=0, channel=channel, max_results_per_update=None)
    cm.update(at_chunk(0, 0))
    channel.complete_all()
    with caplog.at_level(logging.ERROR, logger="streetgen.world.chunk_manager"):
        cm.update(at_chunk(0, 0))

    assert cm.state(ChunkId(0, 0)) is ChunkState.REQUESTED  # dropped, then asked for again
    assert renderer.live == {}
    assert renderer.created == renderer.removed == 3
    assert physics.created == 0
    assert cm.stats()["failed"] == 1
    assert "failed to materialize chunk 0,0" in caplog.text

    renderer.fail_after = None
    channel.complete_all()
    cm.update(at_chunk(0, 0))
    assert cm.state(ChunkId(0, 0)) is ChunkState.RESIDENT
    cm.dispose()


def test_physics_failure_releases_drawables_too(channel, renderer) -> None:
    physics = RecordingPhysics(fail_after=2)
    cm = ChunkManager(renderer, physics, 12345, load_radius=0, channel=channel, max_results_per_update=None)
    cm.update(at_chunk(0, 0))
    channel.complete_all()
    cm.update(at_chunk(0, 0))
    assert cm.get_resident_chunks() == {}
    assert renderer.live == {} and physics.live == {}
    assert renderer.created == renderer.removed > 0
    assert physics.created == physics.removed == 2


def test_failure_is_isolated_per_chunk(channel, physics) -> None:
    drawables, _ = expected_create_calls(ChunkId(0, 0))
    renderer = RecordingRenderer(fail_after=drawables + 1)
    cm = ChunkManager(renderer, physics, 12345, load_radius=1, channel=channel, max_results_per_update=None)
    cm.update(at_chunk(0, 0))
    channel.complete("0,0")
    channel.complete("1,0")
    cm.update(at_chunk(0, 0))
    assert cm.state(ChunkId(0, 0)) is ChunkState.RESIDENT
    assert cm.state(ChunkId(1, 0)) is not ChunkState.RESIDENT
    assert len(renderer.live) == drawables


@pytest.mark.parametrize(
    "msg",
    [
        None,
        "chunk",
        {},
        {"type": "banana"},
        {"type": "chunk", "chunkId": {"x": 0}},
        {"type": "chunk", "chunkId": {"x": 0, "y": 0}, "roads": "nope", "intersections": [], "buildings": [], "collisionPrimitives": []},
    ],
)
def test_malformed_messages_are_dropped(manager, channel, renderer, msg, caplog) -> None:
    manager.update(at_chunk(0, 0))
    channel.outbox.append(msg)
    with caplog.at_level(logging.WARNING, logger="streetgen.world.chunk_manager"):
        manager.update(at_chunk(0, 0))
    assert manager.stats()["malformed"] == 1
    assert renderer.created == 0
    assert "malformed" in caplog.text


def test_malformed_result_clears_request_for_retry(manager, channel) -> None:
    manager.update(at_chunk(0, 0))
    channel.requests.clear()
    channel.outbox.append({"type": "chunk", "chunkId": {"x": 0, "y": 0}, "roads": "oops"})
    manager.update(at_chunk(0, 0))
    assert manager.stats()["malformed"] == 1
    assert channel.requested_keys() == ["0,0"]
    assert manager.state(ChunkId(0, 0)) is ChunkState.REQUESTED

    channel.complete("0,0")
    manager.update(at_chunk(0, 0))
    assert manager.state(ChunkId(0, 0)) is ChunkState.RESIDENT


def test_error_message_clears_request_for_retry(manager, channel) -> None:
    manager.update(at_chunk(0, 0))
    channel.requests.clear()
    channel.outbox.append(encode_error(ChunkId(1, 1), "boom"))
    manager.update(at_chunk(0, 0))
    assert manager.stats()["failed"] == 1
    assert channel.requested_keys() == ["1,1"]


def test_max_results_per_update_budget(channel, renderer, physics) -> None:
    cm = ChunkManager(renderer, physics, 12345, load_radius=3, channel=channel, max_results_per_update=5)
    cm.update(at_chunk(0, 0))
    channel.complete_all()
    cm.update(at_chunk(0, 0))
    assert len(cm.get_resident_chunks()) == 5
    cm.update(at_chunk(0, 0))
    assert len(cm.get_resident_chunks()) == 10
    cm.dispose()


def test_dispose_releases_everything_and_closes_channel(manager, channel, renderer, physics) -> None:
    settle(manager, channel, at_chunk(0, 0))
    manager.update(at_chunk(0, 1))
    manager.dispose()

    assert channel.closed
    assert manager.get_resident_chunks() == {}
    assert manager.pending == frozenset()
    assert renderer.live == {} and physics.live == {}
    assert renderer.created == renderer.removed
    assert physics.created == physics.removed

    manager.dispose()  # idempotent
    with pytest.raises(RuntimeError):
        manager.update(at_chunk(0, 0))


def test_context_manager_disposes(channel, renderer, physics) -> None:
    with ChunkManager(renderer, physics, 1, load_radius=0, channel=channel) as cm:
        settle(cm, channel, at_chunk(0, 0))
        assert len(cm.get_resident_chunks()) == 1
    assert cm.disposed
    assert renderer.live == {}


def test_removal_errors_do_not_stop_release(channel, physics, caplog) -> None:
    class FlakyRenderer(RecordingRenderer):
        def remove_drawable(self, handle: int) -> None:
            if handle == 1:
                raise RuntimeError("context lost")
            super().remove_drawable(handle)

    renderer = FlakyRenderer()
    cm = ChunkManager(renderer, physics, 12345, load_radius=0, channel=channel)
    settle(cm, channel, at_chunk(0, 0))
    with caplog.at_level(logging.ERROR, logger="streetgen.world.chunk_manager"):
        assert cm.evict("0,0")
    assert list(renderer.live) == [1]
    assert physics.live == {}
    assert "failed to remove drawable" in caplog.text


@pytest.mark.parametrize("seed", [-1, 2**32, 1.5, "12345", True])
def test_invalid_world_seed_rejected(seed, channel, renderer, physics) -> None:
    with pytest.raises(ValueError):
        ChunkManager(renderer, physics, seed, channel=channel)


def test_negative_load_radius_rejected(channel, renderer, physics) -> None:
    with pytest.raises(ValueError):
        ChunkManager(renderer, physics, 1, load_radius=-1, channel=channel)


def test_observer_position_as_sequence(manager, channel) -> None:
    manager.update((-1.0, 50.0, -1.0))
    assert manager.observer_chunk == ChunkId(-1, -1)
    assert "-4,-4" in channel.requested_keys()


def test_road_queries_use_resident_set(manager, channel) -> None:
    assert manager.is_on_road(0.0, 100.0) is False  # nothing resident yet
    settle(manager, channel, at_chunk(0, 0))
    assert manager.is_on_road(0.0, 100.0) is True  # primary x == 0
    assert manager.is_on_road(64.0 + 3.0, 10.0) is True  # secondary, half width 4
    assert manager.is_on_road(32.0, 32.0) is False  # middle of a block
    assert manager.chunk_at(32.0, 32.0).key == "0,0"
    assert manager.chunk_at(10_000.0, 0.0) is None


def test_stats_counters(manager, channel) -> None:
    settle(manager, channel, at_chunk(0, 0))
    stats = manager.stats()
    assert stats["requested"] == 49
    assert stats["materialized"] == 49
    assert stats["resident"] == 49
    assert stats["pending"] == 0


def test_encoded_message_path_matches_direct_data(manager, channel) -> None:
    manager.update(at_chunk(0, 0))
    data = generate_chunk(ChunkId(0, 0), 12345)
    loaded = manager.on_generation_result(encode_chunk(data))
    assert loaded is not None
    assert loaded.data == data
