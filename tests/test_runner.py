import pytest
import asyncio
from unittest.mock import Mock
from mintik.models.activity import AppState
from mintik.services.errors import RunnerError
from mintik.services.runner import ServiceRunner, build_context
from mintik.services.idle import PowerEventSource
from mintik.services.notifier import SystemNotifier

@pytest.mark.asyncio
async def test_run_ticks_and_saves_on_exit(context, settings):
    runner = ServiceRunner(context)

    await runner.run(max_ticks=3)

    assert runner.ticks == 3
    assert context.machine.work_time == 3
    assert runner.running is False
    # Shutdown flushed everything to disk
    assert settings.activity_path.exists()
    assert settings.daily_path.exists()

@pytest.mark.asyncio
async def test_request_shutdown_stops_loop(context):
    runner = ServiceRunner(context)
    task = asyncio.create_task(runner.run())
    await asyncio.sleep(0.05)

    runner.request_shutdown()
    await asyncio.wait_for(task, timeout=2)

    assert runner.ticks >= 1
    assert runner.shutdown_event.is_set()

@pytest.mark.asyncio
async def test_tick_errors_are_tolerated(context):
    """A failing idle probe is logged and the loop keeps going"""
    calls = {"count": 0}

    def flaky_idle():
        calls["count"] += 1
        if calls["count"] == 1:
            raise OSError("probe unavailable")
        return 0.0

    context.idle_source = flaky_idle
    runner = ServiceRunner(context)

    await runner.run(max_ticks=2)

    assert runner.error_count == 1
    assert runner.ticks == 2

@pytest.mark.asyncio
async def test_too_many_errors_raise(context, settings):
    context.idle_source = Mock(side_effect=OSError("probe unavailable"))
    runner = ServiceRunner(context)

    with pytest.raises(RunnerError):
        await runner.run()

    assert runner.error_count == settings.MAX_ERRORS
    # Data is still flushed on the way out
    assert settings.daily_path.exists()

@pytest.mark.asyncio
async def test_shutdown_is_idempotent(context):
    context.shutdown = Mock()
    runner = ServiceRunner(context)

    await runner.shutdown()
    await runner.shutdown()

    context.shutdown.assert_called_once()

@pytest.mark.asyncio
async def test_clear_all_data_terminates_loop(context):
    runner = ServiceRunner(context)
    context.on_terminate = runner.request_shutdown
    task = asyncio.create_task(runner.run())
    await asyncio.sleep(0.05)

    context.clear_all_data()
    await asyncio.wait_for(task, timeout=2)

    assert runner.running is False
    assert context.machine.state == AppState.ACTIVE

def test_build_context(settings):
    context = build_context(settings)
    try:
        assert settings.DATA_DIR.exists()
        assert settings.LOG_DIR.exists()
        assert isinstance(context.machine.notifier, SystemNotifier)
        assert isinstance(context.power_source, PowerEventSource)
    finally:
        context.scheduler.close()

def test_build_context_power_source_reaches_machine(settings):
    context = build_context(settings).start()
    try:
        context.power_source.screen_sleep()
        assert context.machine.screen_off is True

        context.power_source.screen_wake()
        assert context.machine.screen_off is False
    finally:
        context.scheduler.close()
