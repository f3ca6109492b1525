import logging
import threading

import pytest

from board_features.spatial_filter import Bounds
from capture import BoundsStore, CaptureTrigger, SampleOperation


def test_trigger_starts_disarmed():
    trigger = CaptureTrigger()
    assert not trigger.armed
    assert trigger.consume() is False


def test_capture_then_consume_once():
    trigger = CaptureTrigger()
    assert trigger.request(SampleOperation.CAPTURE) is True
    assert trigger.armed
    assert trigger.consume() is True
    assert trigger.consume() is False


def test_repeated_capture_requests_collapse():
    trigger = CaptureTrigger()
    trigger.request(SampleOperation.CAPTURE)
    trigger.request(SampleOperation.CAPTURE)
    assert trigger.consume() is True
    assert trigger.consume() is False


def test_discard_accepts_integer_codes(caplog):
    trigger = CaptureTrigger()
    with caplog.at_level(logging.INFO):
        trigger.request(1)
        assert trigger.request(2) is True
    assert not trigger.armed
    assert "Capturing sample" in caplog.text
    assert "Discarding last sample" in caplog.text


def test_unknown_operation_rejected():
    with pytest.raises(ValueError):
        CaptureTrigger().request(3)


def test_concurrent_consumers_see_one_capture():
    trigger = CaptureTrigger()
    trigger.request(SampleOperation.CAPTURE)
    hits = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        if trigger.consume():
            hits.append(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert hits == [1]


def test_bounds_store_update_and_log(caplog):
    store = BoundsStore(Bounds(0.0, 5.0, -2.0, 2.0, -1.0, 1.0))
    with caplog.at_level(logging.INFO):
        updated = store.update(x_min=1.0, z_max=0.5)
    assert updated.as_tuple() == (1.0, 5.0, -2.0, 2.0, -1.0, 0.5)
    assert store.snapshot() == updated
    assert "Reconfigure request" in caplog.text


def test_bounds_store_rejects_invalid_update():
    original = Bounds(0.0, 5.0, -2.0, 2.0, -1.0, 1.0)
    store = BoundsStore(original)
    with pytest.raises(ValueError):
        store.update(x_min=6.0)
    with pytest.raises(ValueError):
        store.update(w_min=0.0)
    assert store.snapshot() == original


def test_bounds_store_set_requires_bounds():
    store = BoundsStore(Bounds(0.0, 1.0, 0.0, 1.0, 0.0, 1.0))
    with pytest.raises(TypeError):
        store.set((0.0, 1.0, 0.0, 1.0, 0.0, 1.0))
    replacement = Bounds(1.0, 2.0, 1.0, 2.0, 1.0, 2.0)
    store.set(replacement)
    assert store.snapshot() is replacement
