import threading
import time

import pytest

from batch_driver import RecordResult, StageReport, process_concurrently


def test_counts_results_by_status():
    def processor(n):
        if n % 5 == 0:
            return RecordResult.skip("multiple_of_five")
        return RecordResult.ok()

    report = process_concurrently(range(1, 101), processor, "numbers", workers=4, capacity=8)
    assert report.processed == 100
    assert report.ok == 80
    assert report.skipped == {"multiple_of_five": 20}
    assert not report.failed


def test_exceptions_become_failed_results():
    def processor(n):
        if n == 3:
            raise ValueError("bad record")
        return RecordResult.ok()

    report = process_concurrently(range(10), processor, "numbers", workers=2, capacity=2)
    assert report.processed == 10
    assert report.ok == 9
    assert report.failed == {"ValueError": 1}


def test_none_result_counts_as_ok():
    report = process_concurrently(["a", "b"], lambda item: None, "letters", workers=1, capacity=1)
    assert report.ok == 2


def test_input_is_read_with_backpressure():
    lock = threading.Lock()
    state = {"produced": 0, "completed": 0, "max_outstanding": 0}

    def items():
        for i in range(60):
            with lock:
                outstanding = state["produced"] - state["completed"]
                state["max_outstanding"] = max(state["max_outstanding"], outstanding)
                state["produced"] += 1
            yield i

    def processor(item):
        time.sleep(0.002)
        with lock:
            state["completed"] += 1
        return RecordResult.ok()

    report = process_concurrently(items(), processor, "slow", workers=2, capacity=4)
    assert report.processed == 60
    # Queued items plus the ones the two workers are holding.
    assert state["max_outstanding"] <= 4 + 2


def test_rejects_bad_pool_sizes():
    with pytest.raises(ValueError):
        process_concurrently([], lambda x: None, "nothing", workers=0)
    with pytest.raises(ValueError):
        process_concurrently([], lambda x: None, "nothing", capacity=0)


def test_stage_report_summary():
    report = StageReport("aliases")
    report.add(RecordResult.ok())
    report.add(RecordResult.skip("unknown_place"))
    report.add(RecordResult.fail("parse_error"))
    assert report.summary() == (
        "aliases: 3 processed, 1 ok, 1 skipped (unknown_place), 1 failed (parse_error)"
    )


def test_large_capacity_with_many_items():
    report = process_concurrently(
        range(50000), lambda n: RecordResult.ok(), "many", workers=9, capacity=10000, progress_every=0
    )
    assert report.processed == report.ok == 50000


def test_reader_error_stops_workers():
    def items():
        yield 1
        yield 2
        raise OSError("truncated gzip stream")

    before = threading.active_count()
    with pytest.raises(OSError):
        process_concurrently(items(), lambda n: RecordResult.ok(), "broken", workers=3, capacity=1)
    assert threading.active_count() == before
