"""Pytest tests for CompletionTracker (completion.py)."""

import threading

import pytest

from pr_patrol.completion import CompletionTracker
from pr_patrol.exceptions import BuildDetailError
from pr_patrol.types import ChainOutcome, ChainResult, Target


def _result(n: int, outcome: ChainOutcome = ChainOutcome.TRIGGERED) -> ChainResult:
    return ChainResult(target=Target(number=n, statuses_url=f"https://x/{n}"), outcome=outcome)


def test_zero_expected_finishes_immediately_with_success():
    summary = CompletionTracker(0).wait(timeout=0)
    assert summary.results == []
    assert summary.exit_code == 0
    assert summary.describe() == "targets=0"


def test_waits_for_every_result_from_worker_threads():
    tracker = CompletionTracker(3)
    threads = [threading.Thread(target=tracker.done, args=(_result(n),)) for n in (1, 2, 3)]
    for t in threads:
        t.start()
    summary = tracker.wait(timeout=5)
    for t in threads:
        t.join()
    assert sorted(r.target.number for r in summary.results) == [1, 2, 3]
    assert tracker.outstanding == 0
    assert summary.exit_code == 0


def test_timeout_when_results_are_missing():
    tracker = CompletionTracker(2)
    tracker.done(_result(1))
    with pytest.raises(TimeoutError):
        tracker.wait(timeout=0.01)
    assert tracker.outstanding == 1


def test_any_trigger_failure_makes_exit_code_one():
    tracker = CompletionTracker(3)
    tracker.done(_result(1))
    tracker.done(_result(2, ChainOutcome.TRIGGER_FAILED))
    tracker.done(_result(3, ChainOutcome.NOT_ELIGIBLE))
    summary = tracker.wait(timeout=1)
    assert summary.failed
    assert summary.exit_code == 1
    assert summary.outcome_counts() == {"triggered": 1, "trigger_failed": 1, "not_eligible": 1}


def test_completing_a_target_twice_is_an_error():
    tracker = CompletionTracker(2)
    tracker.done(_result(1))
    with pytest.raises(RuntimeError):
        tracker.done(_result(1))


def test_abort_wakes_waiter_and_reraises():
    tracker = CompletionTracker(5)
    err = BuildDetailError(status_code=500, endpoint="builds/x", message="boom")
    threading.Timer(0.01, tracker.abort, args=(err,)).start()
    with pytest.raises(BuildDetailError):
        tracker.wait(timeout=5)
    assert tracker.aborted.is_set()


def test_first_abort_wins():
    tracker = CompletionTracker(1)
    tracker.abort(ValueError("first"))
    tracker.abort(ValueError("second"))
    with pytest.raises(ValueError, match="first"):
        tracker.wait(timeout=0)
