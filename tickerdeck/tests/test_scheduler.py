import asyncio

from tickerdeck.hotkeys.models import TimerDomain
from tickerdeck.hotkeys.scheduler import AsyncioScheduler, ManualScheduler


def test_manual_scheduler_is_single_flight_per_domain():
    fired = []
    sched = ManualScheduler()
    sched.schedule(TimerDomain.BUY, 100, lambda: fired.append("first"))
    sched.advance(50)
    sched.schedule(TimerDomain.BUY, 100, lambda: fired.append("second"))
    sched.advance(60)
    assert fired == []
    sched.advance(40)
    assert fired == ["second"]
    assert sched.now_ms == 150


def test_manual_scheduler_fires_in_due_order():
    fired = []
    sched = ManualScheduler()
    sched.schedule(TimerDomain.SELL, 50, lambda: fired.append("sell"))
    sched.schedule(TimerDomain.BUY, 30, lambda: fired.append("buy"))
    sched.schedule(TimerDomain.DISABLE, 30, lambda: fired.append("disable"))
    sched.advance(100)
    assert fired == ["buy", "disable", "sell"]


def test_manual_scheduler_runs_timers_scheduled_by_callbacks():
    fired = []
    sched = ManualScheduler()

    def first():
        fired.append(sched.now_ms)
        sched.schedule(TimerDomain.NUMBER_BUFFER, 20, lambda: fired.append(sched.now_ms))

    sched.schedule(TimerDomain.NUMBER_BUFFER, 10, first)
    sched.advance(100)
    assert fired == [10, 30]


def test_manual_scheduler_cancel():
    fired = []
    sched = ManualScheduler()
    sched.schedule(TimerDomain.BUY, 10, lambda: fired.append("buy"))
    assert sched.pending(TimerDomain.BUY)
    assert sched.due_at(TimerDomain.BUY) == 10
    sched.cancel(TimerDomain.BUY)
    sched.cancel(TimerDomain.SELL)
    sched.advance(100)
    assert fired == []
    assert sched.due_at(TimerDomain.BUY) is None


def test_asyncio_scheduler_replaces_pending_timer():
    fired = []

    async def scenario():
        sched = AsyncioScheduler()
        sched.schedule(TimerDomain.BUY, 10, lambda: fired.append("first"))
        sched.schedule(TimerDomain.BUY, 10, lambda: fired.append("second"))
        assert sched.pending(TimerDomain.BUY)
        await asyncio.sleep(0.1)
        assert not sched.pending(TimerDomain.BUY)

    asyncio.run(scenario())
    assert fired == ["second"]


def test_asyncio_scheduler_cancel_all():
    fired = []

    async def scenario():
        sched = AsyncioScheduler()
        sched.schedule(TimerDomain.BUY, 10, lambda: fired.append("buy"))
        sched.schedule(TimerDomain.DISABLE, 10, lambda: fired.append("disable"))
        sched.cancel_all()
        await asyncio.sleep(0.05)
        assert not sched.pending(TimerDomain.DISABLE)

    asyncio.run(scenario())
    assert fired == []
