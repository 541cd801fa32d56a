# src/main.py

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from api.routes import router
from config import Settings
from engine.db import create_session_factory
from engine.errors import SubmissionRejected
from engine.job_store import JobStore
import logging
import uuid


def create_app(settings: Optional[Settings] = None, store: Optional[JobStore] = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title="Repo Scan Core")
    app.state.settings = settings
    app.state.store = store or JobStore(create_session_factory(settings.database_url))

    @app.middleware("http")
    async def add_trace_id_and_log(request: Request, call_next):
        trace_id = str(uuid.uuid4())
        request.state.trace_id = trace_id
        logging.info(f"[trace_id={trace_id}] Incoming request: {request.method} {request.url.path}")
        try:
            response = await call_next(request)
        except Exception as exc:
            logging.exception(f"[trace_id={trace_id}] Unhandled error: {exc}")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "trace_id": trace_id}
            )
        response.headers["X-Trace-Id"] = trace_id
        return response

    @app.exception_handler(SubmissionRejected)
    async def submission_rejected_handler(request: Request, exc: SubmissionRejected):
        trace_id = getattr(request.state, "trace_id", None)
        logging.info(f"[trace_id={trace_id}] Rejected: {exc.reason}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.reason})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))
        logging.error(f"[trace_id={trace_id}] Exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "trace_id": trace_id}
        )

    app.include_router(router)
    return app


def run() -> None:
    import uvicorn

    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s %(levelname)s %(name)s %(message)s'
    )
    app = create_app(settings)
    logging.info(f"API listening on {settings.api_host}:{settings.port}")
    uvicorn.run(app, host=settings.api_host, port=settings.port)


if __name__ == "__main__":
    run()
