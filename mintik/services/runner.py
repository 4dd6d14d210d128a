import asyncio
import logging
import signal
from datetime import datetime
from typing import Optional

from mintik.config.logging_config import setup_logging
from mintik.config.settings import Settings
from mintik.context import AppContext
from mintik.services.errors import RunnerError
from mintik.services.idle import ManualPowerEventSource
from mintik.services.notifier import SystemNotifier

logger = logging.getLogger(__name__)

class ServiceRunner:
    """1 Hz tick loop with graceful shutdown handling"""

    def __init__(self, context: AppContext):
        self.context = context
        self.settings = context.settings
        self.running = False
        self.shutdown_event = asyncio.Event()
        self.error_count = 0
        self.last_error_time: Optional[datetime] = None
        self.ticks = 0
        self._stopped = False

    def _setup_signal_handlers(self):
        """Set up handlers for system signals"""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Signal handler for {sig.name} not supported here")

    def request_shutdown(self, sig: Optional[signal.Signals] = None):
        if sig:
            logger.info(f"Received exit signal {sig.name}...")
        self.running = False
        self.shutdown_event.set()

    async def shutdown(self):
        """Flush everything to disk and stop the persistence worker"""
        if self._stopped:
            return
        self._stopped = True
        logger.info("Initiating graceful shutdown...")
        try:
            await asyncio.to_thread(self.context.shutdown)
            logger.info("Shutdown completed")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    async def _tick_once(self):
        # The idle probe may shell out, keep it off the loop
        idle_seconds = await asyncio.to_thread(self.context.idle_source)
        self.context.tick(idle_seconds)
        self.ticks += 1

    async def run(self, max_ticks: Optional[int] = None):
        """Run until shutdown is requested or ``max_ticks`` ticks have run"""
        logger.info("Starting MinTik tick loop...")
        self._setup_signal_handlers()
        self.running = True
        interval = self.settings.TICK_INTERVAL_SECONDS

        try:
            while self.running:
                current_time = datetime.now()
                try:
                    if self.last_error_time and \
                            (current_time - self.last_error_time).total_seconds() > self.settings.ERROR_RESET_INTERVAL:
                        self.error_count = 0

                    await self._tick_once()
                except Exception as e:
                    self.error_count += 1
                    self.last_error_time = current_time
                    logger.error(f"Error in tick loop: {e}", exc_info=True)

                    if self.error_count >= self.settings.MAX_ERRORS:
                        logger.critical(f"Too many errors ({self.error_count}). Shutting down...")
                        self.running = False
                        raise RunnerError(f"Tick loop failed {self.error_count} times") from e
                    logger.warning(f"Error {self.error_count}/{self.settings.MAX_ERRORS}. Continuing...")

                if max_ticks is not None and self.ticks >= max_ticks:
                    break

                try:
                    await asyncio.wait_for(self.shutdown_event.wait(), timeout=interval)
                    if self.shutdown_event.is_set():
                        break
                except asyncio.TimeoutError:
                    continue
        finally:
            self.running = False
            await self.shutdown()
            logger.info("MinTik stopped")

def build_context(settings: Optional[Settings] = None) -> AppContext:
    """Wire a context for this host.

    Power events come from a ManualPowerEventSource, which only fires what its
    caller emits. OS bindings are expected to subclass PowerEventSource and be
    passed to AppContext instead.
    """
    settings = settings or Settings()
    settings.validate_paths()
    return AppContext(
        settings=settings,
        notifier=SystemNotifier(),
        power_source=ManualPowerEventSource()
    )

async def serve(context: AppContext, web: bool = False, host: Optional[str] = None,
                port: Optional[int] = None):
    """Run the tick loop, optionally with the web read surface on the same loop"""
    runner = ServiceRunner(context)
    context.on_terminate = runner.request_shutdown
    context.start()

    if not web:
        await runner.run()
        return

    import uvicorn
    from mintik.web.app import create_app

    config = uvicorn.Config(
        create_app(context),
        host=host or context.settings.WEB_HOST,
        port=port or context.settings.WEB_PORT,
        log_level="warning"
    )
    server = uvicorn.Server(config)
    web_task = asyncio.create_task(server.serve())
    # uvicorn takes over SIGINT/SIGTERM while serving; stop ticking when it exits
    web_task.add_done_callback(lambda _: runner.request_shutdown())
    try:
        await runner.run()
    finally:
        server.should_exit = True
        await web_task

def run_service(settings: Optional[Settings] = None, web: bool = False,
                host: Optional[str] = None, port: Optional[int] = None):
    """Entry point for running the service"""
    settings = settings or Settings()
    setup_logging(settings.LOG_DIR, debug=settings.DEBUG)
    context = build_context(settings)
    asyncio.run(serve(context, web=web, host=host, port=port))
