from __future__ import annotations

import logging
import signal
import time

from shipwright.core.logging import configure_logging
from shipwright.core.orchestration.orchestrator import Orchestrator
from shipwright.core.scheduler.scheduler import SchedulerService

logger = logging.getLogger("shipwright.worker")


class Worker:
    def __init__(self, orchestrator: Orchestrator | None = None) -> None:
        self.orchestrator = orchestrator or Orchestrator()
        configure_logging(self.orchestrator.settings.state_dir, service="worker")
        self.scheduler = SchedulerService(test_mode=self.orchestrator.settings.test_mode)
        self._running = True

    def tick(self) -> None:
        report = self.orchestrator.dispatcher.tick()
        logger.info("worker_tick_done", extra={"extra_fields": report.model_dump()})

    def _schedule(self) -> None:
        config = self.orchestrator.config
        every = min(config.plan_interval_minutes, config.execute_interval_minutes)
        self.scheduler.add_cron_tick(self.tick, every_minutes=every)

    def _handle_signal(self, signum, frame) -> None:  # type: ignore[no-untyped-def]
        _ = frame
        logger.info("worker_signal", extra={"extra_fields": {"signal": signum}})
        self._running = False

    def run_forever(self) -> None:
        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)
        self._schedule()
        self.scheduler.start()
        logger.info("worker_started")
        try:
            while self._running:
                time.sleep(0.5)
        finally:
            self.scheduler.shutdown()
            logger.info("worker_stopped")


def run() -> None:
    Worker().run_forever()


if __name__ == "__main__":
    run()
