from sshops.core.telemetry import Telemetry


def test_records_are_bounded_oldest_first():
    telemetry = Telemetry(max_records=3)

    for i in range(5):
        telemetry.record_metric("session.duration_ms", float(i))
        telemetry.record_event("session.failed", {"n": i})

    assert [m.value for m in telemetry.get_metrics()] == [2.0, 3.0, 4.0]
    assert [e.metadata["n"] for e in telemetry.get_events("session.failed")] == [2, 3, 4]


def test_filter_by_name_returns_list_copy():
    telemetry = Telemetry()
    telemetry.record_metric("a", 1.0)
    telemetry.record_metric("b", 2.0)

    metrics = telemetry.get_metrics("a")
    metrics.clear()

    assert [m.name for m in telemetry.get_metrics()] == ["a", "b"]


def test_clear():
    telemetry = Telemetry()
    telemetry.record_event("x")

    telemetry.clear()

    assert telemetry.get_events() == []
