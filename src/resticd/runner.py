import asyncio
import logging
from enum import StrEnum
from pathlib import Path

from resticd.config import BackupConfig
from resticd.errors import BackupFailedError, BusyError, NoSummaryError
from resticd.metrics import backup_duration, backup_rejected, backup_result
from resticd.process import ProcessResult, run_process
from resticd.restic.commands import Invocation, backup
from resticd.restic.models import BackupSummary, error_messages, parse_summary


class RunState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"


class BackupRunner:
    """
    Runs `restic backup` of `target`, one run at a time.

    A run requested while another one is in flight fails with `BusyError`
    instead of waiting for it.
    """

    def __init__(self, target: Path) -> None:
        self.target: Path = target
        self._lock: asyncio.Lock = asyncio.Lock()

    @property
    def state(self) -> RunState:
        return RunState.RUNNING if self._lock.locked() else RunState.IDLE

    async def run(self, config: BackupConfig) -> BackupSummary:
        invocation = backup(config, self.target)

        # check and acquire must not be separated by an await
        if self._lock.locked():
            backup_rejected.inc()
            logging.warning(
                "backup rejected, another one is running",
                extra={"repository": config.repository},
            )
            raise BusyError()

        async with self._lock:
            logging.info(
                "starting backup",
                extra={"repository": config.repository, "target": str(self.target)},
            )
            logging.debug("restic invocation", extra={"cmd": " ".join(invocation.cmd)})

            result = await self._execute(invocation)
            return self.record_result(config, result)

    async def _execute(self, invocation: Invocation) -> ProcessResult:
        try:
            return await run_process(
                invocation.binary, *invocation.args, env=invocation.environ()
            )
        except OSError as e:
            backup_result.labels(status="failure").inc()
            logging.error(
                "restic could not be started",
                extra={"binary": invocation.binary, "error": str(e)},
            )
            raise BackupFailedError(None, str(e)) from e

    def record_result(self, config: BackupConfig, result: ProcessResult) -> BackupSummary:
        extra: dict[str, object] = {"repository": config.repository}

        if result.failure:
            backup_result.labels(status="failure").inc()
            logging.error(
                "finished backup",
                extra=extra | {"status": "failure", "code": result.exit_code},
            )
            for message in error_messages(result.stderr):
                logging.error(message, extra=extra | {"stream": "stderr"})
            logging.debug(result.stderr, extra=extra | {"stream": "stderr"})
            raise BackupFailedError(result.exit_code, result.diagnostics())

        try:
            summary = parse_summary(result.stdout)
        except NoSummaryError:
            backup_result.labels(status="no_summary").inc()
            logging.error("finished backup without summary", extra=extra)
            logging.debug(result.stdout, extra=extra | {"stream": "stdout"})
            raise

        backup_result.labels(status="success").inc()
        backup_duration.observe(summary.total_duration)
        logging.info(
            "finished backup",
            extra=extra
            | {
                "status": "success",
                "duration": summary.total_duration,
                "snapshot": str(summary.snapshot_id),
            },
        )
        return summary
