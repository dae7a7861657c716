import logging
import os
from concurrent.futures import Executor, ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from .errors import DeployerError
from .log import configure_logging, tail
from .models import TaskRequest, utc_now
from .orchestrator import TaskOrchestrator
from .records import RecordStore
from .settings import Settings

logger = logging.getLogger(__name__)

class RequestLogMiddleware:
    """Log method + path of every HTTP request."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http":
            logger.info("%s %s", scope["method"], scope["path"])
        await self.app(scope, receive, send)

def create_app(settings: Optional[Settings] = None,
               orchestrator: Optional[TaskOrchestrator] = None,
               executor: Optional[Executor] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings)
    records = orchestrator.records if orchestrator else RecordStore(settings.RECORDS_DIR)
    orchestrator = orchestrator or TaskOrchestrator(settings, records=records)
    # pipelines run here, not on the request threadpool
    executor = executor or ThreadPoolExecutor(max_workers=settings.TASK_WORKERS,
                                              thread_name_prefix="task")

    missing = settings.missing_required()
    if missing:
        logger.warning("Missing required environment variables: %s", ", ".join(missing))
        logger.warning("Server will reject requests until these are set.")
    else:
        logger.info("All required environment variables are set.")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Waiting for running tasks to finish")
        executor.shutdown(wait=True)

    app = FastAPI(title="LLM Code Deployment API", lifespan=lifespan)
    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.state.executor = executor

    app.add_middleware(RequestLogMiddleware)

    def _finished(future):
        if future.exception() is not None:
            logger.error("Background task crashed", exc_info=future.exception())

    async def dispatch(req: TaskRequest):
        executor.submit(orchestrator.run, req).add_done_callback(_finished)

    @app.exception_handler(DeployerError)
    async def deployer_error(request: Request, exc: DeployerError):
        logger.warning("Rejected %s: %s", request.url.path, exc)
        return JSONResponse(status_code=exc.status_code,
                            content={"error": str(exc), "timestamp": utc_now()})

    @app.get("/", include_in_schema=False)
    async def root_redirect():
        return RedirectResponse(url="/docs")

    @app.get("/health")
    async def health():
        return {"status": "ok", "timestamp": utc_now()}

    # ---- MAIN ENDPOINT ----
    @app.post("/task")
    async def receive_task(req: TaskRequest, background_tasks: BackgroundTasks):
        raw = req.model_dump(mode="json", exclude_unset=True)
        ack = await run_in_threadpool(orchestrator.accept, req, raw_body=raw)
        # runs after the response has been sent
        background_tasks.add_task(dispatch, req)
        return ack

    # Local stand-in for the evaluator callback
    @app.post("/test-evaluator")
    async def test_evaluator(request: Request):
        body = await request.json()
        logger.info("Test evaluator received notification: %s", body)
        return {"status": "received", "timestamp": utc_now()}

    # ---- LOG / RECORD VIEWERS ----
    @app.get("/_logs", include_in_schema=False)
    async def logs(lines: int = Query(200, ge=1, le=5000)):
        if not os.path.exists(settings.log_path):
            return PlainTextResponse(f"NO LOG: {settings.log_path} not found\n")
        return PlainTextResponse(tail(settings.log_path, lines))

    @app.get("/_records/{name}", include_in_schema=False)
    async def record(name: str):
        text = records.read(name)
        if text is None:
            raise HTTPException(status_code=404, detail=f"no record {name}")
        return PlainTextResponse(text)

    return app
