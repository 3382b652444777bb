"""FastAPI application exposing the scanner to an orchestration layer."""

from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..aggregator import Aggregator
from ..config import ScanConfig, load_config
from ..logging import SERVICE_LOGGERS, configure_logging


class ScanRequest(BaseModel):
    path: str
    narrative: bool = False
    max_files: Optional[int] = None


class HealthResponse(BaseModel):
    status: str


def create_app(
    aggregator_factory: Callable[[], Aggregator] | None = None,
    *,
    config: ScanConfig | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing promptscan operations.

    Without an explicit factory every request gets a fresh ``Aggregator``
    built from ``config`` (loaded from ``.promptscan.yml`` in the working
    directory when omitted).
    """
    factory: Callable[[], Aggregator]
    if aggregator_factory is not None:
        factory = aggregator_factory
    else:
        scan_config = config if config is not None else load_config()

        def _configured_aggregator() -> Aggregator:
            return Aggregator(scan_config)

        factory = _configured_aggregator

    app = FastAPI(title="promptscan", version="0.1.0")

    async def get_aggregator() -> Aggregator:
        # Fresh per request: no findings are shared between scans.
        return factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/scan")
    async def scan(
        payload: ScanRequest,
        aggregator: Aggregator = Depends(get_aggregator),
    ) -> Dict[str, Any]:
        budget = aggregator.config.budget
        if payload.max_files is not None:
            budget = dataclasses.replace(budget, max_files=max(0, payload.max_files))

        def _run_scan() -> Dict[str, Any]:
            result = aggregator.run(payload.path, budget, use_narrative=payload.narrative)
            return result.to_dict()

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _run_scan)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"ok": False, "error": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(_: Any, exc: NotADirectoryError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"ok": False, "error": str(exc)})

    @app.exception_handler(PermissionError)
    async def permission_handler(_: Any, exc: PermissionError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"ok": False, "error": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1",
    port: int = 8000,
    *,
    config_path: Path | None = None,
    verbose: bool = False,
) -> None:  # pragma: no cover - integration path
    configure_logging(verbose=verbose, extra_loggers=SERVICE_LOGGERS)
    app = create_app(config=load_config(config_path))
    # log_config=None keeps uvicorn from replacing the handlers installed above.
    uvicorn.run(app, host=host, port=port, log_config=None, log_level="debug" if verbose else "info")
