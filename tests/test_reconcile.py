# tests/test_reconcile.py

from __future__ import annotations

import asyncio
import random

import pytest

from todocan.tasks.reconcile import FieldReconciler, WriteState

from .fakes import GatedWriter


@pytest.mark.asyncio
async def test_rapid_toggles_coalesce_to_last_value() -> None:
    writer = GatedWriter(rows={1: {"flagged": False}})
    writer.gate.clear()
    rec = FieldReconciler(writer)

    rec.request(1, "flagged", True)
    await writer.started.wait()

    # Three more toggles while the first write is outstanding.
    rec.request(1, "flagged", False)
    rec.request(1, "flagged", True)
    rec.request(1, "flagged", False)
    assert rec.is_writing(1, "flagged")

    writer.gate.set()
    await rec.wait_idle()

    assert writer.rows[1]["flagged"] is False
    assert writer.calls == [(1, "flagged", True), (1, "flagged", False)]
    assert rec.writes_sent == 2 <= 4
    assert rec.state(1, "flagged") is WriteState.IDLE


@pytest.mark.asyncio
async def test_requests_before_first_suspension_need_one_write() -> None:
    writer = GatedWriter(rows={1: {"flagged": False}})
    rec = FieldReconciler(writer)

    for value in (True, False, True):
        rec.request(1, "flagged", value)

    await rec.wait_idle()
    assert writer.calls == [(1, "flagged", True)]
    assert writer.rows[1]["flagged"] is True


@pytest.mark.asyncio
async def test_superseded_back_to_written_value_stops_after_one_write() -> None:
    writer = GatedWriter(rows={1: {"flagged": False}})
    writer.gate.clear()
    rec = FieldReconciler(writer)

    rec.request(1, "flagged", True)
    await writer.started.wait()
    rec.request(1, "flagged", False)
    rec.request(1, "flagged", True)

    writer.gate.set()
    await rec.wait_idle()
    assert writer.calls == [(1, "flagged", True)]
    assert writer.rows[1]["flagged"] is True


@pytest.mark.asyncio
async def test_random_interleavings_converge_with_single_writer_per_key() -> None:
    rng = random.Random(1234)
    rows = {i: {"flagged": False, "position": 0} for i in range(1, 4)}
    writer = GatedWriter(rows=rows, delay=0.002)
    rec = FieldReconciler(writer)

    last: dict[tuple[int, str], object] = {}
    n_requests = 0
    for _ in range(120):
        task_id = rng.randint(1, 3)
        field = rng.choice(["flagged", "position"])
        value = rng.choice([True, False]) if field == "flagged" else rng.randint(0, 5)
        rec.request(task_id, field, value)
        last[(task_id, field)] = value
        n_requests += 1
        if rng.random() < 0.4:
            await asyncio.sleep(rng.choice([0, 0.001, 0.003]))

    await rec.wait_idle()

    assert writer.max_in_flight == 1
    assert rec.writes_sent <= n_requests
    assert rec.pending_keys() == []
    for (task_id, field), value in last.items():
        assert rows[task_id][field] == value


@pytest.mark.asyncio
async def test_failed_write_is_abandoned_and_next_request_rearms() -> None:
    writer = GatedWriter(rows={1: {"flagged": False}})
    writer.fail_next = 1
    rec = FieldReconciler(writer)

    rec.request(1, "flagged", True)
    await rec.wait_idle()

    assert rec.writes_failed == 1
    assert rec.state(1, "flagged") is WriteState.IDLE
    # Intent is kept even though the store is behind.
    assert rec.desired(1, "flagged") is True
    assert writer.rows[1]["flagged"] is False

    rec.request(1, "flagged", True)
    await rec.wait_idle()
    assert writer.rows[1]["flagged"] is True
    assert len(writer.calls) == 2


@pytest.mark.asyncio
async def test_delete_during_write_does_not_resurrect_row() -> None:
    rows = {7: {"flagged": False}}
    writer = GatedWriter(rows=rows)
    writer.gate.clear()
    rec = FieldReconciler(writer)

    rec.request(7, "flagged", True)
    await writer.started.wait()
    rec.request(7, "flagged", False)

    del rows[7]
    rec.forget(7)

    writer.gate.set()
    await rec.wait_idle()

    assert 7 not in rows
    assert writer.calls == [(7, "flagged", True)]
    assert rec.desired(7, "flagged") is None


@pytest.mark.asyncio
async def test_missing_row_drops_desired_state() -> None:
    writer = GatedWriter(rows={})
    rec = FieldReconciler(writer)

    rec.request(3, "position", 2)
    await rec.wait_idle()

    assert writer.calls == [(3, "position", 2)]
    assert rec.desired(3, "position") is None
    assert writer.rows == {}


@pytest.mark.asyncio
async def test_keys_reconcile_independently() -> None:
    writer = GatedWriter(rows={1: {"flagged": False}, 2: {"flagged": False}})
    writer.gate.clear()
    rec = FieldReconciler(writer)

    rec.request(1, "flagged", True)
    rec.request(2, "flagged", True)
    await asyncio.sleep(0)

    assert sorted(rec.pending_keys()) == [(1, "flagged"), (2, "flagged")]
    writer.gate.set()
    await rec.wait_idle()
    assert writer.rows == {1: {"flagged": True}, 2: {"flagged": True}}
