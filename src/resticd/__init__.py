import logging
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing_extensions import override

import toml
from fastapi import FastAPI, Request, Response
from prometheus_client import make_asgi_app
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from resticd.api.backup import router as backup_router
from resticd.metrics import api_calls
from resticd.restic.models import BackupSummary
from resticd.runner import BackupRunner
from resticd.scheduler import Outcome, Scheduler, log_outcome
from resticd.settings import Settings, load_config


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.info("application started")

    app.mount("/metrics", make_asgi_app())
    logging.debug("mounted '/metrics'")

    try:
        settings = Settings()
        logging.debug(settings)
        config = await load_config(settings)
        logging.debug(config)
    except ValidationError as e:
        logging.error("incorrect settings, see documentation")
        logging.debug(e.errors(), extra={"exception": "ValidationError"})
        yield
        return
    except toml.TomlDecodeError as e:
        logging.error("incorrect config file, see documentation")
        logging.debug(e, extra={"exception": "TomlDecodeError"})
        yield
        return

    def remember(outcome: Outcome) -> None:
        log_outcome(outcome)
        if isinstance(outcome, BackupSummary):
            app.state.last_outcome = outcome.notice()
        else:
            app.state.last_outcome = f"Restic backup [error]: {outcome}"

    scheduler = Scheduler(BackupRunner(settings.target), config, remember)
    scheduler.start()
    app.state.scheduler = scheduler

    yield

    await scheduler.stop()


class APIMetricsMiddleware(BaseHTTPMiddleware):
    @override
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)

        api_calls.labels(
            path=request.url.path, method=request.method, status=response.status_code
        ).inc()

        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    @override
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        logging.debug(
            "received request",
            extra={"path": request.url.path, "method": request.method},
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logging.error(
                "unhandled exception during request",
                extra={"path": request.url.path, "method": request.method},
            )
            logging.debug(e, extra={"path": request.url.path, "method": request.method})
            raise

        logging.info(
            "handled request",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status": response.status_code,
            },
        )

        return response


app = FastAPI(lifespan=lifespan)

app.include_router(backup_router)

app.add_middleware(APIMetricsMiddleware)
app.add_middleware(LoggingMiddleware)
