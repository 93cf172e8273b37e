from contextlib import asynccontextmanager
from datetime import date

from app.core.celery import celery_app
from app.domains.subscriptions import accrual
from app.domains.subscriptions.accrual import AccrualTickResult, ExpiryResult
from app.tasks import accrual_tasks
from app.tasks.accrual_tasks import expire_subscriptions_task, run_accrual_tick_task


def _guard(acquired):
    taken = []

    @asynccontextmanager
    async def fake_guard(name, ttl):
        taken.append(name)
        yield acquired

    return fake_guard, taken


def test_accrual_task_runs_tick_without_event_loop_crash(monkeypatch):
    fake_guard, taken = _guard(True)
    monkeypatch.setattr(accrual_tasks, "tick_guard", fake_guard)

    async def fake_tick(for_date=None):
        return AccrualTickResult(date=date(2026, 5, 10), processed=2, credited=2)

    monkeypatch.setattr(accrual, "run_accrual_tick", fake_tick)
    result = run_accrual_tick_task()

    assert taken == ["daily-returns"]
    assert result["credited"] == 2
    assert result["date"] == "2026-05-10"
    assert result["total_amount"] == "0.00"


def test_tick_is_skipped_when_another_worker_holds_the_guard(monkeypatch):
    fake_guard, _ = _guard(False)
    monkeypatch.setattr(accrual_tasks, "tick_guard", fake_guard)

    async def must_not_run(for_date=None):
        raise AssertionError("tick ran without the guard")

    monkeypatch.setattr(accrual, "expire_subscriptions", must_not_run)
    assert expire_subscriptions_task() == {"skipped": True}


def test_expiry_task_returns_summary(monkeypatch):
    fake_guard, taken = _guard(True)
    monkeypatch.setattr(accrual_tasks, "tick_guard", fake_guard)

    async def fake_expiry(for_date=None):
        return ExpiryResult(date=date(2026, 5, 10), processed=1, expired=1)

    monkeypatch.setattr(accrual, "expire_subscriptions", fake_expiry)
    result = expire_subscriptions_task()

    assert taken == ["subscription-expiry"]
    assert result["expired"] == 1


def test_beat_schedule_points_at_registered_tasks():
    schedule = celery_app.conf.beat_schedule
    tasks = {entry["task"] for entry in schedule.values()}
    assert tasks == {run_accrual_tick_task.name, expire_subscriptions_task.name}
