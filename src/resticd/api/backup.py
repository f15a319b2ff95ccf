from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel

from resticd.errors import (
    BackupError,
    BackupFailedError,
    BusyError,
    ConfigurationError,
    NoSummaryError,
)
from resticd.restic.models import BackupSummary
from resticd.runner import RunState
from resticd.scheduler import Scheduler

router = APIRouter(prefix="/backup")

error_status: dict[type[BackupError], HTTPStatus] = {
    BusyError: HTTPStatus.CONFLICT,
    ConfigurationError: HTTPStatus.BAD_REQUEST,
    BackupFailedError: HTTPStatus.FAILED_DEPENDENCY,
    NoSummaryError: HTTPStatus.FAILED_DEPENDENCY,
}


class BackupState(BaseModel):
    state: RunState
    scheduled: bool
    last: str | None = None


def get_scheduler(request: Request) -> Scheduler:
    if not isinstance(app := request.app, FastAPI):
        raise TypeError("cannot retrieve scheduler from non FastAPI application")

    scheduler = getattr(app.state, "scheduler", None)
    if not isinstance(scheduler, Scheduler):
        raise HTTPException(
            HTTPStatus.SERVICE_UNAVAILABLE, "backups are not configured, see logs"
        )

    return scheduler


AppScheduler = Annotated[Scheduler, Depends(get_scheduler)]


@router.post("")
async def run_backup(scheduler: AppScheduler) -> BackupSummary:
    try:
        return await scheduler.run_once()
    except BackupError as e:
        status = error_status.get(type(e), HTTPStatus.INTERNAL_SERVER_ERROR)
        raise HTTPException(status, str(e)) from e


@router.get("/state")
async def backup_state(request: Request, scheduler: AppScheduler) -> BackupState:
    return BackupState(
        state=scheduler.runner.state,
        scheduled=scheduler.running,
        last=getattr(request.app.state, "last_outcome", None),
    )
