"""
FastAPI web server for exam schedule reconciliation.
보험설계사 시험 일정 종합 파싱 서비스 웹 서버입니다.

Endpoints:
  POST /api/exam-schedules/crawl                - crawl the official registry by region
  POST /api/exam-schedules/crawl-and-group      - crawl + group by date + internal deadlines
  POST /api/exam-schedules/parse-image          - extract sessions from a schedule image
  POST /api/exam-schedules/parse-text           - parse internal deadline text
  POST /api/exam-schedules/comprehensive-parse  - image + crawl + text, merged
  POST /api/exam-schedules/save                 - upsert merged schedules
  GET  /api/exam-schedules                      - list stored schedules
  DELETE /api/exam-schedules/{year}/{type}/{n}  - delete one stored schedule
  GET  /api/regions                             - region codes and groups
  GET  /health                                  - health check
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .auth import require_api_key
from .config import Settings, get_settings
from .image import MAX_IMAGE_BYTES, load_image
from .models import ExtractionError
from .pipeline import SchedulePipeline
from .rate_limit import SlidingWindowLimiter, check_rate_limit
from .regions import REGION_GROUPS, REGIONS
from .schema import (
    ComprehensiveSchedule,
    CrawlReport,
    ExamType,
    ImageExtraction,
    InternalDeadline,
    ReconcileResult,
    ScheduleFragment,
)
from .store import ScheduleStore, StoredSchedule, UpsertError, create_store

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class CrawlRequest(BaseModel):
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)


class CrawlResponse(BaseModel):
    report: CrawlReport
    partial: bool


class CrawlAndGroupRequest(CrawlRequest):
    internal_text: str | None = None
    crawled_schedules: list[ScheduleFragment] | None = Field(
        None, description="Previously crawled rows; skips the live crawl when given"
    )


class ParseTextRequest(BaseModel):
    text: str = Field(min_length=1)
    year: int = Field(default_factory=lambda: date.today().year, ge=2000, le=2100)
    exam_type: ExamType = ExamType.LIFE


class ParseTextResponse(BaseModel):
    deadlines: list[InternalDeadline]


class SaveRequest(BaseModel):
    schedules: list[ComprehensiveSchedule]


class SaveResponse(BaseModel):
    success: bool
    total_processed: int
    success_count: int
    error_count: int
    inserted: int
    updated: int
    errors: list[UpsertError] = Field(default_factory=list)


class RegionInfo(BaseModel):
    code: str
    name: str


class RegionsResponse(BaseModel):
    regions: list[RegionInfo]
    groups: dict[str, list[str]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _pipeline(request: Request) -> SchedulePipeline:
    return request.app.state.pipeline


def _store(request: Request) -> ScheduleStore:
    return request.app.state.store


async def _read_image(upload: UploadFile) -> tuple[bytes, str]:
    """Read an uploaded image, enforcing size and format limits."""
    data = await upload.read(MAX_IMAGE_BYTES + 1)
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail=f"Image too large (max {MAX_IMAGE_BYTES // 1024 // 1024} MB)")
    try:
        return load_image(data)
    except ValueError as e:
        raise HTTPException(status_code=415, detail=str(e)) from e


def _check_period(year: int, month: int) -> None:
    if not 2000 <= year <= 2100:
        raise HTTPException(status_code=400, detail=f"Invalid year: {year}")
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail=f"Invalid month: {month}")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    pipeline: SchedulePipeline | None = None,
    store: ScheduleStore | None = None,
) -> FastAPI:
    """Build the app; collaborators not passed in are built from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings: Settings = app.state.settings
        if app.state.pipeline is None:
            app.state.pipeline = SchedulePipeline.from_settings(app_settings)
        if app.state.store is None:
            app.state.store = create_store(app_settings.SCHEDULE_STORE_PATH)
        if app.state.pipeline.image_extractor is None:
            logger.warning("No vision model configured; image parsing endpoints will return 503")
        yield

    settings = settings or get_settings()
    app = FastAPI(
        title="Exam Schedule Reconciliation API",
        description="Merge crawled, image-extracted and internal insurance exam schedules",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.store = store
    app.state.rate_limiter = SlidingWindowLimiter(settings.RATE_LIMIT_PER_MINUTE)

    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=bool(origins),
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.get("/health", tags=["meta"])
    async def health():
        """Health check."""
        return {"status": "ok", "version": VERSION}

    @app.get("/api/regions", response_model=RegionsResponse, tags=["meta"])
    async def list_regions():
        """Registry region codes and the region groups used on schedule images."""
        return RegionsResponse(
            regions=[RegionInfo(code=r.code, name=r.name) for r in REGIONS],
            groups={group: list(cities) for group, cities in REGION_GROUPS.items()},
        )

    @app.post("/api/exam-schedules/crawl", response_model=CrawlResponse, tags=["crawl"])
    async def crawl(
        body: CrawlRequest,
        pipeline: SchedulePipeline = Depends(_pipeline),
        _: None = Depends(check_rate_limit),
    ):
        """Crawl every registry region for the month (sequential, rate-limited)."""
        if pipeline.crawler is None:
            raise HTTPException(status_code=503, detail="Crawler is not configured")
        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, pipeline.crawler.crawl, body.year, body.month)
        return CrawlResponse(report=report, partial=report.partial)

    @app.post("/api/exam-schedules/crawl-and-group", response_model=ReconcileResult, tags=["crawl"])
    async def crawl_and_group(
        body: CrawlAndGroupRequest,
        pipeline: SchedulePipeline = Depends(_pipeline),
        _: None = Depends(check_rate_limit),
    ):
        """Group crawled rows into dated sessions and attach internal deadlines."""
        try:
            return await pipeline.crawl_and_group(
                body.year, body.month, text=body.internal_text, crawled=body.crawled_schedules
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    @app.post("/api/exam-schedules/parse-image", response_model=ImageExtraction, tags=["parse"])
    async def parse_image(
        image: UploadFile = File(..., description="Schedule image (PNG/JPEG/WEBP/GIF)"),
        year: int | None = Form(default=None),
        pipeline: SchedulePipeline = Depends(_pipeline),
        _: None = Depends(check_rate_limit),
    ):
        """Extract per-session details from a schedule image."""
        if pipeline.image_extractor is None:
            raise HTTPException(status_code=503, detail="No vision model configured")
        year = year or date.today().year
        _check_period(year, 1)
        image_data = await _read_image(image)

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, pipeline.image_extractor.extract_image_schedules, image_data, year
            )
        except ExtractionError as e:
            raise HTTPException(status_code=502, detail=f"Image extraction failed: {e}") from e
        except Exception as exc:
            logger.exception("Image extraction call failed")
            raise HTTPException(status_code=502, detail="Image extraction failed. Check server logs for details.") from exc

    @app.post("/api/exam-schedules/parse-text", response_model=ParseTextResponse, tags=["parse"])
    async def parse_text(
        body: ParseTextRequest,
        pipeline: SchedulePipeline = Depends(_pipeline),
        _: None = Depends(check_rate_limit),
    ):
        """Parse internal deadline text into session-range deadlines."""
        loop = asyncio.get_running_loop()
        try:
            deadlines = await loop.run_in_executor(
                None, pipeline.deadline_extractor.extract_deadlines, body.text, body.year, body.exam_type
            )
        except ExtractionError as e:
            raise HTTPException(status_code=502, detail=f"Deadline extraction failed: {e}") from e
        except Exception as exc:
            logger.exception("Deadline extraction call failed")
            raise HTTPException(status_code=502, detail="Deadline extraction failed. Check server logs for details.") from exc
        return ParseTextResponse(deadlines=deadlines)

    @app.post("/api/exam-schedules/comprehensive-parse", response_model=ReconcileResult, tags=["parse"])
    async def comprehensive_parse(
        image: UploadFile | None = File(default=None),
        text: str | None = Form(default=None),
        year: int | None = Form(default=None),
        month: int | None = Form(default=None),
        pipeline: SchedulePipeline = Depends(_pipeline),
        _: None = Depends(check_rate_limit),
    ):
        """
        Image + crawl + internal text, merged into one schedule list.

        Each source fails independently; failures are listed in source_errors.
        """
        today = date.today()
        year = year or today.year
        month = month or today.month
        _check_period(year, month)

        image_data = await _read_image(image) if image is not None and image.filename else None
        return await pipeline.reconcile(year, month, image=image_data, text=text)

    @app.post("/api/exam-schedules/save", response_model=SaveResponse, tags=["store"])
    async def save(
        body: SaveRequest,
        store: ScheduleStore = Depends(_store),
        _: None = Depends(check_rate_limit),
    ):
        """Upsert merged schedules keyed by (year, exam_type, session_number)."""
        if not body.schedules:
            raise HTTPException(status_code=400, detail="No schedules provided")

        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, store.upsert, body.schedules)
        response = SaveResponse(
            success=not report.errors,
            total_processed=report.total_processed,
            success_count=report.success_count,
            error_count=len(report.errors),
            inserted=report.inserted,
            updated=report.updated,
            errors=report.errors,
        )

        if report.errors and report.success_count == 0:
            return JSONResponse(status_code=500, content=response.model_dump(mode="json"))
        if report.errors:
            return JSONResponse(status_code=207, content=response.model_dump(mode="json"))
        return response

    @app.get("/api/exam-schedules", response_model=list[StoredSchedule], tags=["store"])
    async def list_schedules(
        year: int | None = None,
        exam_type: ExamType | None = None,
        store: ScheduleStore = Depends(_store),
        _: str | None = Depends(require_api_key),
    ):
        """List stored schedules, optionally filtered."""
        return store.list_schedules(year=year, exam_type=exam_type)

    @app.delete("/api/exam-schedules/{year}/{exam_type}/{session_number}", status_code=204, tags=["store"])
    async def delete_schedule(
        year: int,
        exam_type: ExamType,
        session_number: int,
        store: ScheduleStore = Depends(_store),
        _: None = Depends(check_rate_limit),
    ):
        """Delete one stored schedule."""
        loop = asyncio.get_running_loop()
        deleted = await loop.run_in_executor(None, store.delete, year, exam_type, session_number)
        if not deleted:
            raise HTTPException(
                status_code=404, detail=f"No schedule for {year} {exam_type.value} {session_number}차"
            )
        return Response(status_code=204)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("exam_schedule.server:app", host="0.0.0.0", port=8000)
