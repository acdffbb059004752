"""FastAPI service exposing risk snapshots, scenario shocks and insights."""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import duckdb
from dotenv import load_dotenv
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel

from jobs.config import load_settings
from jobs.snapshot import fetch_aggregate_snapshot
from pipelines.insights import (
    GeminiSummarizer,
    Summarizer,
    build_insights_request,
    generate_insights,
    risk_index,
    risk_score_change,
)
from pipelines.model import AggregateSnapshot, ShockScenario
from pipelines.scenario import apply_shock
from storage.exports import EXPORT_FORMATS, MEDIA_TYPES, export_snapshot

ALLOWED_FORMATS = {"json", *EXPORT_FORMATS}
load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    settings = load_settings()
    if settings.alpha_vantage_api_key is None:
        logger.info("ALPHA_VANTAGE_API_KEY not configured; serving bundled sample prices.")
    yield


app = FastAPI(title="RiskLens Signals API", version="0.1.0", lifespan=lifespan)


def _configure_cors() -> None:
    raw_origins = os.getenv("API_CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )


_configure_cors()


class ShockRequest(BaseModel):
    shocks: ShockScenario = ShockScenario()
    snapshot: AggregateSnapshot | None = None


class InsightsBody(BaseModel):
    snapshot: AggregateSnapshot | None = None


async def get_snapshot() -> AggregateSnapshot:
    return await fetch_aggregate_snapshot()


def get_summarizer() -> Summarizer:
    settings = load_settings()
    return GeminiSummarizer(
        settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.http_timeout,
    )


def _summary(snapshot: AggregateSnapshot) -> dict[str, Any]:
    return {
        "risk_index": risk_index(snapshot.entities),
        "risk_score_change": risk_score_change(snapshot.entities),
    }


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/snapshot")
def get_snapshot_view(
    background_tasks: BackgroundTasks,
    snapshot: AggregateSnapshot = Depends(get_snapshot),
    format: str = Query("json", description="Response format: json, csv, or parquet"),
    sector: str | None = Query(None, description="Restrict tabular exports to one sector"),
):
    fmt = format.lower()
    if fmt not in ALLOWED_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported format '{format}'.")

    if fmt == "json":
        payload = {**_summary(snapshot), **snapshot.model_dump(mode="json")}
        return JSONResponse(content=payload)

    with tempfile.NamedTemporaryFile(suffix=f".{fmt}", delete=False) as tmp:
        dest = Path(tmp.name)
    dest.unlink()

    def _cleanup(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    try:
        export_snapshot(snapshot, dest, fmt=fmt, sector=sector)
    except duckdb.Error as exc:  # pragma: no cover - defensive
        _cleanup(dest)
        raise HTTPException(status_code=500, detail="Snapshot export failed") from exc

    background_tasks.add_task(_cleanup, dest)
    return FileResponse(
        dest,
        media_type=MEDIA_TYPES[fmt],
        filename=f"risk_scores.{fmt}",
        background=background_tasks,
    )


@app.post("/snapshot/shock")
async def post_shock(request: ShockRequest) -> dict[str, Any]:
    snapshot = request.snapshot or await fetch_aggregate_snapshot()
    shocked = apply_shock(snapshot, request.shocks)
    return {
        "shocks": request.shocks.model_dump(),
        "baseline_risk_index": risk_index(snapshot.entities),
        **_summary(shocked),
        "snapshot": shocked.model_dump(mode="json"),
    }


@app.post("/insights")
async def post_insights(
    body: InsightsBody | None = None,
    summarizer: Summarizer = Depends(get_summarizer),
) -> dict[str, Any]:
    snapshot = body.snapshot if body and body.snapshot else await fetch_aggregate_snapshot()
    text = await generate_insights(snapshot, summarizer)
    return {
        "insights": text,
        "inputs": build_insights_request(snapshot).model_dump(),
    }
