import asyncio
import logging
from asyncio import CancelledError, Task, create_task
from collections.abc import Callable
from typing import TypeAlias

from resticd.config import BackupConfig
from resticd.errors import BackupError, BusyError, ConfigurationError
from resticd.restic.models import BackupSummary
from resticd.runner import BackupRunner

Outcome: TypeAlias = BackupSummary | BackupError
ResultHandler: TypeAlias = Callable[[Outcome], None]


def log_outcome(outcome: Outcome) -> None:
    if isinstance(outcome, BackupSummary):
        logging.info(outcome.notice())
    else:
        logging.error(f"Restic backup [error]: {outcome}")


class Scheduler:
    """
    Runs backups every `config.interval` seconds and on manual trigger.

    Every run goes through the same `BackupRunner`, so a tick that fires
    while a manual backup is in flight is rejected, and vice versa.
    """

    def __init__(
        self,
        runner: BackupRunner,
        config: BackupConfig,
        handler: ResultHandler = log_outcome,
    ) -> None:
        self.runner: BackupRunner = runner
        self.config: BackupConfig = config
        self.handler: ResultHandler = handler

        self._timer: Task[None] | None = None
        self._runs: set[Task[None]] = set()
        self._stopped: bool = False
        # bumped by stop(), runs started before it never deliver
        self._generation: int = 0

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        self._stopped = False

        if not self.config.enabled:
            logging.info("scheduled backups are disabled")
            return

        if self.config.interval == 0:
            logging.info("backup interval is 0, only manual backups are possible")
            return

        if self._timer is None:
            self._timer = create_task(self._tick())
            logging.info(
                "scheduled backups started", extra={"interval": self.config.interval}
            )

    async def stop(self) -> None:
        """
        Cancel the timer. Runs in flight are left to finish on their own,
        their outcome is dropped.
        """
        self._stopped = True
        self._generation += 1

        if self._timer is None:
            return

        _ = self._timer.cancel()
        try:
            await self._timer
        except CancelledError:
            pass
        finally:
            self._timer = None

        logging.info("scheduled backups stopped")

    async def run_once(self) -> BackupSummary:
        """
        Run a backup now and return its summary.

        Errors are raised to the caller and handed to the result handler,
        except `BusyError` and disabled backups which only go to the caller.
        """
        if not self.config.enabled:
            raise ConfigurationError("restic backups are disabled")

        generation = self._generation
        try:
            summary = await self.runner.run(self.config)
        except BusyError:
            raise
        except BackupError as e:
            self._deliver(e, generation)
            raise

        self._deliver(summary, generation)
        return summary

    def trigger(self) -> Task[None]:
        """
        Start a backup in the background, its outcome only goes to the result handler
        """
        task = create_task(self._run())
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        return task

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.config.interval)
            _ = self.trigger()

    async def _run(self) -> None:
        try:
            _ = await self.run_once()
        except BusyError:
            logging.warning("skipped backup, previous one is still running")
        except BackupError as e:
            # outcomes of runs that started are delivered by run_once
            logging.debug("background backup ended", extra={"error": str(e)})

    def _deliver(self, outcome: Outcome, generation: int) -> None:
        if self._stopped or generation != self._generation:
            logging.debug("dropped backup outcome after scheduler stop")
            return
        self.handler(outcome)
