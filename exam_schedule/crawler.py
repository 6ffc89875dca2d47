"""
Regional crawl collector for the official insurance exam registry.
보험설계사 시험 공식 사이트에서 지역별 시험일정을 수집합니다.

One form POST per region, serialised with a fixed delay between requests so
the registry is not hammered. A region that fails is recorded in the report
and skipped; the rest of the crawl continues.
"""

import logging
import re
import time
from typing import Callable, Iterable

import requests
from bs4 import BeautifulSoup

from .config import DEFAULT_REGISTRY_URL, Settings
from .dates import parse_korean_date
from .regions import REGIONS, Region
from .schema import CrawlReport, ExamType, FragmentSource, RegionError, RegionSummary, ScheduleFragment

logger = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ko-KR,ko;q=0.9,en;q=0.8",
}

# Tried in order; the first selector that yields rows wins
_ROW_SELECTORS = (
    ".table_t01 table tbody tr",
    ".mobile_t01 table tbody tr",
    ".mt_t01 table tbody tr",
    "table tbody tr",
    "table tr",
)

_DATE_HINT_RE = re.compile(r"\d{4}[.-]\d{1,2}[.-]\d{1,2}|\d{1,2}월\s*\d{1,2}일")
_WS_RE = re.compile(r"\s+")

# The registry does not publish times per row
DEFAULT_EXAM_TIME = ("10:00", "12:00")


def _cell_text(cell) -> str:
    return _WS_RE.sub(" ", cell.get_text(" ", strip=True)).strip()


def parse_schedule_rows(html: str, region: Region, year: int) -> list[ScheduleFragment]:
    """
    Extract crawled fragments from one region's schedule page.

    Columns: [exam date, registration period, result date, ...].
    Rows whose first cell holds no date (headers, "no data" rows) are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")

    rows = []
    for selector in _ROW_SELECTORS:
        rows = soup.select(selector)
        if rows:
            logger.debug("%s: %d rows via '%s'", region.name, len(rows), selector)
            break
    if not rows:
        logger.info("%s: no schedule table rows found", region.name)
        return []

    fragments: list[ScheduleFragment] = []
    for row in rows:
        cells = [_cell_text(td) for td in row.find_all("td")]
        if len(cells) < 3 or not _DATE_HINT_RE.search(cells[0]):
            continue

        exam_date = parse_korean_date(cells[0], year)
        if exam_date is None:
            continue

        fragments.append(
            ScheduleFragment(
                year=year,
                exam_type=ExamType.LIFE,
                exam_date=exam_date,
                exam_time_start=DEFAULT_EXAM_TIME[0],
                exam_time_end=DEFAULT_EXAM_TIME[1],
                region_name=region.name,
                region_code=region.code,
                registration_period=cells[1] or None,
                result_date=parse_korean_date(cells[2], year),
                locations=[region.name],
                notes=f"공식 시험일정 ({region.name} 지역) - 원본: {' | '.join(cells)}",
                source=FragmentSource.CRAWLED,
            )
        )
    return fragments


class RegionalCrawler:
    """Sequential per-region crawler over a shared requests.Session."""

    def __init__(
        self,
        session: requests.Session | None = None,
        base_url: str = DEFAULT_REGISTRY_URL,
        delay_seconds: float = 1.0,
        timeout: float = 15.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            session: HTTP session (a new one is created if omitted)
            base_url: Registry schedule list endpoint
            delay_seconds: Pause between region requests
            timeout: Per-request timeout in seconds
            sleep: Sleep function (injectable for tests)
        """
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {delay_seconds}")
        self.session = session or requests.Session()
        self.base_url = base_url
        self.delay_seconds = delay_seconds
        self.timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "RegionalCrawler":
        return cls(
            base_url=settings.EXAM_REGISTRY_URL,
            delay_seconds=settings.CRAWL_DELAY_SECONDS,
            timeout=settings.CRAWL_TIMEOUT_SECONDS,
        )

    def fetch_region(self, year: int, month: int, region: Region) -> str:
        """POST the schedule search form for one region and return the HTML."""
        response = self.session.post(
            self.base_url,
            data={
                "searchDate": f"{year}-{month}-1",
                "pageType": region.code,
                "pageTypeNm": region.name,
            },
            headers={**_HEADERS, "Referer": self.base_url},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.text

    def crawl(self, year: int, month: int, regions: Iterable[Region] = REGIONS) -> CrawlReport:
        """
        Crawl every region for the given month.

        Returns:
            CrawlReport with fragments, per-region counts and per-region errors
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {month}")

        regions = list(regions)
        report = CrawlReport(year=year, month=month)
        logger.info("Crawling %d regions for %d-%02d", len(regions), year, month)

        for i, region in enumerate(regions):
            if i > 0 and self.delay_seconds:
                self._sleep(self.delay_seconds)
            try:
                html = self.fetch_region(year, month, region)
                fragments = parse_schedule_rows(html, region, year)
            except requests.RequestException as e:
                logger.warning("%s(%s) crawl failed: %s", region.name, region.code, e)
                report.errors.append(RegionError(region=region.name, code=region.code, error=str(e)))
                continue

            report.fragments.extend(fragments)
            report.regions_processed.append(
                RegionSummary(region=region.name, code=region.code, schedule_count=len(fragments))
            )
            logger.info("%s: %d schedules", region.name, len(fragments))

        logger.info(
            "Crawl done: %d schedules, %d/%d regions failed",
            len(report.fragments),
            len(report.errors),
            len(regions),
        )
        return report
