import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from classpolls import config
from classpolls.aggregator import summarize
from classpolls.errors import (
    AlreadySubmittedError,
    InvalidAllocationError,
    StoreError,
    SubmissionTimeoutError,
)
from classpolls.export_utils import router as export_router
from classpolls.models import AllocationIn, AllocationRecord, DashboardSummary
from classpolls.store import AllocationStore
from classpolls.student import CookieFlag, StudentView
from classpolls.websocket_handler import ws_endpoint

logger = logging.getLogger(__name__)

INDEX_FILE = Path(__file__).parent / "static" / "index.html"


def create_app(store=None, submit_timeout=config.SUBMIT_TIMEOUT, subscribe_timeout=config.SUBSCRIBE_TIMEOUT):
    """
    Build the application. ``store`` defaults to the JSON-backed store at
    ``config.STORE_FILE``, opened when the app starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.store is None:
            app.state.store = AllocationStore(config.STORE_FILE)
            logger.info("Using store file %s", config.STORE_FILE)
        yield
        app.state.store.close("Server shutting down")

    # ─── fastapi setup ─────────────────────────────────────────────────
    app = FastAPI(title="ClassPolls", description="Classroom allocation polling", lifespan=lifespan)
    app.state.store = store
    app.state.submit_timeout = submit_timeout
    app.state.subscribe_timeout = subscribe_timeout

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ─── Views ─────────────────────────────────────────────────────────
    @app.get("/", include_in_schema=False)
    async def index():
        """Student view at #/, dashboard at #/results and #/dashboard."""
        return FileResponse(INDEX_FILE)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    # ─── HTTP functions ────────────────────────────────────────────────
    @app.get("/api/config")
    async def get_config():
        return {
            "session_id": config.SESSION_ID,
            "categories": config.CATEGORY_LABELS,
            "default_values": config.DEFAULT_VALUES,
            "submit_timeout": app.state.submit_timeout,
            "subscribe_timeout": app.state.subscribe_timeout,
        }

    @app.get("/api/me")
    async def get_me(request: Request, response: Response):
        return {"submitted": CookieFlag(request, response).is_set()}

    @app.post("/api/allocations", status_code=201, response_model=AllocationRecord)
    async def create_allocation(payload: AllocationIn, request: Request, response: Response):
        """
        Accepts JSON { values: [5 ints 0-100], submission_id }
        Normalizes, stores one record and marks this device as submitted.
        """
        view = StudentView(
            app.state.store,
            CookieFlag(request, response),
            session_id=config.SESSION_ID,
            timeout=app.state.submit_timeout,
        )
        for index, value in enumerate(payload.values):
            view.set_value(index, value)
        view.submission_id = payload.submission_id

        try:
            return await view.submit()
        except AlreadySubmittedError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except InvalidAllocationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except SubmissionTimeoutError as e:
            raise HTTPException(status_code=504, detail=str(e))
        except StoreError as e:
            raise HTTPException(status_code=503, detail=str(e))

    @app.get("/api/allocations", response_model=List[AllocationRecord])
    async def list_allocations():
        return app.state.store.query(config.SESSION_ID)

    @app.get("/api/summary", response_model=DashboardSummary)
    async def get_summary():
        records = app.state.store.query(config.SESSION_ID)
        return summarize(records, config.CATEGORY_LABELS, config.SESSION_ID)

    app.include_router(export_router)

    # ─── WebSocket connection handler ──────────────────────────────────
    app.websocket("/ws")(ws_endpoint)

    return app


app = create_app()

# ─── FastAPI application entry point ─────────────────────────────
if __name__ == "__main__":
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
