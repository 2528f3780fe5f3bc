"""Tests for run reports and per-run task memoization."""

import asyncio

import pytest
from stackwright.orchestration import OutcomeKind, ResultCollector, StackOutcome, TaskCache
from stackwright.remote import RemoteStackState


def test_report_counts_and_serializes():
    collector = ResultCollector("apply")
    collector.record(StackOutcome.applied("net", RemoteStackState("net", "CREATE_COMPLETE")))
    collector.record(StackOutcome.unchanged("db", None))
    collector.record_error("web", RuntimeError("boom"))

    report = collector.finalize(2.5)

    assert not report.success
    assert report.failed_count == 1
    assert report.count(OutcomeKind.APPLIED) == 1
    assert report.to_dict() == {
        "action": "apply",
        "duration_seconds": 2.5,
        "success": False,
        "failed": 1,
        "stacks": {
            "net": {
                "outcome": "applied",
                "status": "CREATE_COMPLETE",
                "changes": 0,
                "change_set_id": None,
                "error": None,
            },
            "db": {
                "outcome": "unchanged",
                "status": None,
                "changes": 0,
                "change_set_id": None,
                "error": None,
            },
            "web": {
                "outcome": "failed",
                "status": None,
                "changes": 0,
                "change_set_id": None,
                "error": "boom",
            },
        },
    }


def test_outputs_of_missing_stack_are_empty():
    assert StackOutcome.unchanged("db", None).outputs == {}


@pytest.mark.asyncio
async def test_task_cache_runs_factory_once_per_key():
    calls = []

    async def work(key):
        calls.append(key)
        await asyncio.sleep(0)
        return key.upper()

    cache = TaskCache(work)

    results = await asyncio.gather(cache.get("a"), cache.get("a"), cache.get("b"))

    assert results == ["A", "A", "B"]
    assert calls == ["a", "b"]
    assert "a" in cache
    assert len(cache) == 2
    assert cache.get("a") is cache.get("a")


@pytest.mark.asyncio
async def test_task_cache_keeps_failures():
    attempts = []

    async def work(key):
        attempts.append(key)
        raise RuntimeError(key)

    cache = TaskCache(work)

    for _ in range(2):
        with pytest.raises(RuntimeError):
            await cache.get("x")

    assert attempts == ["x"]
