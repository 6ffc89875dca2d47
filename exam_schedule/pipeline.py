"""
Schedule reconciliation orchestrator.
3-Source Architecture: Crawl + Image + Internal text → Grouping → Merge → Validation.

Source A: RegionalCrawler collects per-region rows from the official registry
Source B: ImageScheduleExtractor reads a schedule image with a vision model
Source C: DeadlineExtractor parses internal deadline text
The three sources run concurrently and fail independently; a failed source
contributes nothing and is reported in ReconcileResult.source_errors.
"""

import asyncio
import logging

from .config import Settings, get_settings
from .crawler import RegionalCrawler
from .grouping import group_by_date
from .merge import expected_keys, merge
from .models import DeadlineExtractor, ImageScheduleExtractor, LLMScheduleClient, RuleDeadlineClient
from .schema import (
    CrawlReport,
    DataSource,
    ExamType,
    FragmentSource,
    ImageExtraction,
    InternalDeadline,
    ReconcileResult,
    ReconcileSummary,
    ScheduleFragment,
    SourceError,
)
from .validator import validate_schedules

logger = logging.getLogger(__name__)


class SchedulePipeline:
    """Runs the three collaborators and reconciles their output."""

    def __init__(
        self,
        crawler: RegionalCrawler | None = None,
        image_extractor: ImageScheduleExtractor | None = None,
        deadline_extractor: DeadlineExtractor | None = None,
    ):
        self.crawler = crawler
        self.image_extractor = image_extractor
        self.deadline_extractor = deadline_extractor or RuleDeadlineClient()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SchedulePipeline":
        """
        Default wiring.

        The image extractor is omitted and an LLM deadline parser falls back
        to line rules when the model's API key is missing.
        """
        settings = settings or get_settings()

        image_extractor = None
        try:
            image_extractor = LLMScheduleClient(settings.VISION_MODEL, settings=settings)
        except ValueError as e:
            logger.warning("Image extraction disabled: %s", e)

        deadline_extractor = RuleDeadlineClient()
        if settings.DEADLINE_PARSER != "rules":
            try:
                deadline_extractor = LLMScheduleClient(settings.DEADLINE_PARSER, settings=settings)
            except ValueError as e:
                logger.warning("LLM deadline parser unavailable, using line rules: %s", e)

        return cls(
            crawler=RegionalCrawler.from_settings(settings),
            image_extractor=image_extractor,
            deadline_extractor=deadline_extractor,
        )

    # ------------------------------------------------------------------
    # Individual sources (blocking; run in the default executor)
    # ------------------------------------------------------------------

    def _crawl(self, year: int, month: int) -> CrawlReport:
        if self.crawler is None:
            raise RuntimeError("No crawler configured")
        return self.crawler.crawl(year, month)

    def _extract_image(self, image: tuple[bytes, str], year: int) -> ImageExtraction:
        if self.image_extractor is None:
            raise RuntimeError("No image extractor configured")
        return self.image_extractor.extract_image_schedules(image, year)

    def _extract_deadlines(self, text: str, year: int, exam_type: ExamType) -> list[InternalDeadline]:
        return self.deadline_extractor.extract_deadlines(text, year, exam_type=exam_type)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def reconcile(
        self,
        year: int,
        month: int,
        image: tuple[bytes, str] | None = None,
        text: str | None = None,
        crawled: list[ScheduleFragment] | None = None,
        crawl: bool = True,
        exam_type: ExamType = ExamType.LIFE,
    ) -> ReconcileResult:
        """
        Gather all sources, then group, merge and validate.

        Args:
            year: Exam year
            month: Month to crawl (1-12)
            image: Optional (image_bytes, mime_type) schedule image
            text: Optional internal deadline text
            crawled: Pre-crawled fragments; skips the live crawl when given
            crawl: Set False to skip the live crawl entirely
            exam_type: Exam track for rule-parsed deadlines

        Returns:
            ReconcileResult with every intermediate stream and the merged list
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {month}")

        loop = asyncio.get_running_loop()
        jobs: dict[FragmentSource, asyncio.Future] = {}

        if image is not None:
            jobs[FragmentSource.IMAGE] = loop.run_in_executor(None, self._extract_image, image, year)
        if crawled is None and crawl:
            jobs[FragmentSource.CRAWLED] = loop.run_in_executor(None, self._crawl, year, month)
        if text and text.strip():
            jobs[FragmentSource.INTERNAL] = loop.run_in_executor(
                None, self._extract_deadlines, text, year, exam_type
            )

        outcomes = dict(zip(jobs, await asyncio.gather(*jobs.values(), return_exceptions=True)))

        source_errors: list[SourceError] = []
        for source, outcome in outcomes.items():
            if isinstance(outcome, Exception):
                logger.error("%s source failed: %s", source.value, outcome)
                source_errors.append(SourceError(source=source, message=str(outcome)))

        image_result = _ok(outcomes.get(FragmentSource.IMAGE)) or ImageExtraction()
        crawl_report = _ok(outcomes.get(FragmentSource.CRAWLED))
        deadlines = _ok(outcomes.get(FragmentSource.INTERNAL)) or []

        if crawled is not None:
            crawled_fragments = list(crawled)
            crawl_errors = []
        elif crawl_report is not None:
            crawled_fragments = crawl_report.fragments
            crawl_errors = crawl_report.errors
        else:
            crawled_fragments, crawl_errors = [], []

        grouped = group_by_date(crawled_fragments)
        schedules = merge(image_result.schedules, grouped, deadlines)
        validation = validate_schedules(
            schedules, expected_keys=expected_keys(image_result.schedules, grouped, deadlines)
        )

        summary = ReconcileSummary(
            total_schedules=len(schedules),
            image_count=len(image_result.schedules),
            crawled_count=len(crawled_fragments),
            grouped_count=len(grouped),
            internal_count=len(deadlines),
            fully_matched_count=sum(1 for s in schedules if s.data_source == DataSource.COMPREHENSIVE_MATCH),
            crawl_partial=bool(crawl_errors),
        )
        logger.info(
            "Reconciled %d-%02d: %d schedules (%d fully matched, %d source errors)",
            year,
            month,
            summary.total_schedules,
            summary.fully_matched_count,
            len(source_errors),
        )

        return ReconcileResult(
            year=year,
            month=month,
            extracted_image_text=image_result.extracted_text,
            image_schedules=image_result.schedules,
            crawled_schedules=crawled_fragments,
            grouped_sessions=grouped,
            internal_deadlines=deadlines,
            schedules=schedules,
            source_errors=source_errors,
            crawl_errors=crawl_errors,
            summary=summary,
            validation=validation,
        )

    async def crawl_and_group(
        self,
        year: int,
        month: int,
        text: str | None = None,
        crawled: list[ScheduleFragment] | None = None,
    ) -> ReconcileResult:
        """Crawl (or reuse crawled rows), group by date and attach internal deadlines."""
        return await self.reconcile(year, month, image=None, text=text, crawled=crawled)


def _ok(outcome):
    """Outcome of a gathered job, or None if it raised."""
    if outcome is None or isinstance(outcome, Exception):
        return None
    return outcome
