from __future__ import annotations

import pytest

from labsync.messaging import InvalidationBus, InvalidationEvent, ToastNotifier, dataset_label


def test_publish_delivers_in_registration_order():
    bus = InvalidationBus()
    order: list[str] = []
    bus.subscribe(lambda e: order.append("first"))
    bus.subscribe(lambda e: order.append("second"))

    bus.invalidate(("sewerData",))

    assert order == ["first", "second"]
    assert bus.published_count == 1


def test_failing_handler_does_not_block_others():
    bus = InvalidationBus()
    received: list[InvalidationEvent] = []

    def broken(event):
        raise RuntimeError("listener exploded")

    bus.subscribe(broken)
    bus.subscribe(received.append)

    event = bus.data_changed(("adminSewerData",), source_label="sewer_quality_data")

    assert received == [event]


def test_unsubscribe_is_idempotent():
    bus = InvalidationBus()
    received: list[InvalidationEvent] = []
    unsubscribe = bus.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    bus.invalidate(("x",))

    assert received == []
    assert bus.subscriber_count == 0


def test_handler_may_unsubscribe_during_delivery():
    bus = InvalidationBus()
    seen: list[str] = []
    unsubscribe = None

    def once(event):
        seen.append("once")
        unsubscribe()

    unsubscribe = bus.subscribe(once)
    bus.subscribe(lambda e: seen.append("always"))

    bus.invalidate(("x",))
    bus.invalidate(("x",))

    assert seen == ["once", "always", "always"]


def test_event_constructors_set_kind_and_notify_flag():
    silent = InvalidationEvent.invalidate("waterData", ["amritData"], source_label="operational")
    loud = InvalidationEvent.data_changed(("labTests",), source_label="lab_tests")

    assert silent.kind == "invalidate"
    assert silent.notify_user is False
    assert silent.prefixes == (("waterData",), ("amritData",))
    assert loud.kind == "data-changed"
    assert loud.notify_user is True
    assert loud.key_or_prefix == ("labTests",)


def test_event_requires_a_prefix():
    with pytest.raises(ValueError, match="at least one"):
        InvalidationEvent.invalidate()


def test_event_wire_format_restores_keys():
    event = InvalidationEvent.data_changed(
        ("adminWaterData", "p1"), source_label="water_quality_data"
    )
    restored = InvalidationEvent.from_wire(event.to_wire())

    assert restored.prefixes == (("adminWaterData", "p1"),)
    assert restored.id == event.id
    assert restored.notify_user is True


def test_event_wire_rejects_unknown_kind():
    with pytest.raises(ValueError, match="Unknown invalidation kind"):
        InvalidationEvent.from_wire({"prefixes": [["x"]], "kind": "explode"})


def test_toast_notifier_only_surfaces_user_facing_events():
    bus = InvalidationBus()
    sunk: list = []
    notifier = ToastNotifier(sink=sunk.append)
    notifier.attach(bus)
    notifier.attach(bus)

    bus.invalidate(("sewerData",), source_label="operational")
    bus.data_changed(("adminSewerData",), ("sewerData",), source_label="sewer_quality_data")

    assert len(notifier.history) == 1
    assert notifier.history[0].title == "Sewer quality data updated"
    assert sunk == notifier.history
    assert bus.subscriber_count == 1

    notifier.detach()
    bus.data_changed(("labTests",), source_label="lab_tests")
    assert len(notifier.history) == 1


def test_toast_notifier_history_is_bounded_and_sink_errors_are_isolated():
    def bad_sink(notification):
        raise RuntimeError("ui gone")

    notifier = ToastNotifier(sink=bad_sink, history=2)
    notifier.success("one")
    notifier.error("two", "details")
    notifier.info("three")

    assert [n.title for n in notifier.history] == ["two", "three"]
    assert notifier.history[0].level == "error"
    notifier.clear()
    assert notifier.history == []


def test_dataset_label_falls_back_to_readable_name():
    assert dataset_label("lab_tests") == "Lab tests"
    assert dataset_label("custom_table") == "Custom table"
    assert dataset_label("") == "Data"
