"""웹 API 테스트"""

import io
from datetime import date

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from exam_schedule.config import Settings
from exam_schedule.image import MAX_IMAGE_BYTES
from exam_schedule.models import ExtractionError, ImageScheduleExtractor
from exam_schedule.pipeline import SchedulePipeline
from exam_schedule.schema import CrawlReport, ImageExtraction, RegionError
from exam_schedule.server import create_app
from exam_schedule.store import InMemoryScheduleStore, UpsertError, UpsertReport

from .factories import DEADLINE_TEXT, crawled, image


def _png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), "white").save(buf, format="PNG")
    return buf.getvalue()


class FakeCrawler:
    def __init__(self, report: CrawlReport):
        self.report = report

    def crawl(self, year, month):
        return self.report


class FakeImageExtractor(ImageScheduleExtractor):
    def __init__(self, error: Exception | None = None):
        self.error = error

    def extract_image_schedules(self, image_data, year):
        if self.error:
            raise self.error
        return ImageExtraction(
            extracted_text="1차 11월 10일", schedules=[image(1, date(2025, 11, 10), locations=["서울"])]
        )


def _settings(**kwargs) -> Settings:
    fields = dict(API_KEYS=None, CORS_ORIGINS=None, RATE_LIMIT_PER_MINUTE=100)
    fields.update(kwargs)
    return Settings(**fields)


def _report() -> CrawlReport:
    return CrawlReport(
        year=2025,
        month=11,
        fragments=[crawled("서울", date(2025, 11, 10)), crawled("부산", date(2025, 11, 17))],
        errors=[RegionError(region="제주", code="55", error="timeout")],
    )


@pytest.fixture
def store():
    return InMemoryScheduleStore()


@pytest.fixture
def client(store):
    pipeline = SchedulePipeline(crawler=FakeCrawler(_report()), image_extractor=FakeImageExtractor())
    app = create_app(settings=_settings(), pipeline=pipeline, store=store)
    with TestClient(app) as c:
        yield c


class TestMetaEndpoints:
    def test_health(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.json()["status"] == "ok"

    def test_regions(self, client):
        body = client.get("/api/regions").json()

        assert len(body["regions"]) == 13
        assert body["groups"]["수도권"] == ["서울", "인천", "제주"]


class TestCrawlEndpoints:
    """크롤링 API 테스트"""

    def test_crawl_reports_partial(self, client):
        res = client.post("/api/exam-schedules/crawl", json={"year": 2025, "month": 11})

        assert res.status_code == 200
        body = res.json()
        assert body["partial"] is True
        assert len(body["report"]["fragments"]) == 2

    def test_crawl_rejects_bad_month(self, client):
        res = client.post("/api/exam-schedules/crawl", json={"year": 2025, "month": 13})
        assert res.status_code == 422

    def test_crawl_and_group_with_precrawled_rows(self, client):
        rows = [crawled("인천", date(2025, 11, 10)).model_dump(mode="json")]
        res = client.post(
            "/api/exam-schedules/crawl-and-group",
            json={"year": 2025, "month": 11, "internal_text": DEADLINE_TEXT, "crawled_schedules": rows},
        )

        assert res.status_code == 200
        body = res.json()
        assert len(body["grouped_sessions"]) == 1
        assert body["schedules"][0]["data_source"] == "crawled_internal"
        assert len(body["schedules"]) == 8


class TestParseEndpoints:
    """이미지/텍스트 파싱 API 테스트"""

    def test_parse_image(self, client):
        res = client.post(
            "/api/exam-schedules/parse-image",
            files={"image": ("schedule.png", _png(), "image/png")},
            data={"year": "2025"},
        )

        assert res.status_code == 200
        assert res.json()["schedules"][0]["session_number"] == 1

    def test_parse_image_rejects_non_image(self, client):
        res = client.post(
            "/api/exam-schedules/parse-image",
            files={"image": ("notes.txt", b"not an image", "text/plain")},
        )
        assert res.status_code == 415

    def test_parse_image_rejects_large_upload(self, client):
        res = client.post(
            "/api/exam-schedules/parse-image",
            files={"image": ("big.png", b"0" * (MAX_IMAGE_BYTES + 1), "image/png")},
        )
        assert res.status_code == 413

    def test_parse_image_extraction_failure_is_502(self, store):
        pipeline = SchedulePipeline(image_extractor=FakeImageExtractor(error=ExtractionError("bad json")))
        app = create_app(settings=_settings(), pipeline=pipeline, store=store)
        with TestClient(app) as c:
            res = c.post("/api/exam-schedules/parse-image", files={"image": ("s.png", _png(), "image/png")})
        assert res.status_code == 502

    def test_parse_image_without_vision_model_is_503(self, store):
        app = create_app(settings=_settings(), pipeline=SchedulePipeline(), store=store)
        with TestClient(app) as c:
            res = c.post("/api/exam-schedules/parse-image", files={"image": ("s.png", _png(), "image/png")})
        assert res.status_code == 503

    def test_parse_text(self, client):
        res = client.post("/api/exam-schedules/parse-text", json={"text": DEADLINE_TEXT, "year": 2025})

        assert res.status_code == 200
        deadlines = res.json()["deadlines"]
        assert [d["session_range"] for d in deadlines] == ["1~4", "5~8"]
        assert deadlines[0]["notice_time"] == "14:00"

    def test_comprehensive_parse(self, client):
        res = client.post(
            "/api/exam-schedules/comprehensive-parse",
            files={"image": ("schedule.png", _png(), "image/png")},
            data={"text": DEADLINE_TEXT, "year": "2025", "month": "11"},
        )

        assert res.status_code == 200
        body = res.json()
        assert body["schedules"][0]["data_source"] == "comprehensive_match"
        assert body["summary"]["crawl_partial"] is True
        assert body["source_errors"] == []

    def test_comprehensive_parse_rejects_bad_month(self, client):
        res = client.post("/api/exam-schedules/comprehensive-parse", data={"year": "2025", "month": "13"})
        assert res.status_code == 400


class TestStoreEndpoints:
    """저장/조회 API 테스트"""

    def _merged(self, client) -> list[dict]:
        res = client.post(
            "/api/exam-schedules/comprehensive-parse",
            data={"text": DEADLINE_TEXT, "year": "2025", "month": "11"},
        )
        return res.json()["schedules"]

    def test_save_and_list(self, client, store):
        schedules = self._merged(client)

        first = client.post("/api/exam-schedules/save", json={"schedules": schedules})
        second = client.post("/api/exam-schedules/save", json={"schedules": schedules})

        assert first.status_code == 200
        assert first.json()["inserted"] == len(schedules)
        assert second.json()["updated"] == len(schedules)
        assert len(store) == len(schedules)

        listed = client.get("/api/exam-schedules", params={"year": 2025, "exam_type": "생보"}).json()
        assert [row["session_number"] for row in listed] == list(range(1, len(schedules) + 1))
        assert listed[0]["data_source"] == "combined"

    def test_save_requires_schedules(self, client):
        assert client.post("/api/exam-schedules/save", json={"schedules": []}).status_code == 400

    def test_partial_save_is_207(self, client):
        class FlakyStore(InMemoryScheduleStore):
            def upsert(self, schedules):
                return UpsertReport(
                    total_processed=2,
                    inserted=1,
                    errors=[UpsertError(index=2, session_number=2, error="disk full")],
                )

        schedules = self._merged(client)[:2]
        client.app.state.store = FlakyStore()

        res = client.post("/api/exam-schedules/save", json={"schedules": schedules})

        assert res.status_code == 207
        assert res.json()["error_count"] == 1

    def test_delete(self, client, store):
        client.post("/api/exam-schedules/save", json={"schedules": self._merged(client)[:2]})

        deleted = client.delete("/api/exam-schedules/2025/생보/1")
        missing = client.delete("/api/exam-schedules/2025/생보/1")

        assert deleted.status_code == 204
        assert missing.status_code == 404
        assert [row.session_number for row in store.list_schedules()] == [2]

    def test_delete_rejects_unknown_exam_type(self, client):
        assert client.delete("/api/exam-schedules/2025/연금/1").status_code == 422


class TestAuthAndRateLimit:
    """인증 및 속도 제한 테스트"""

    def test_api_key_required_when_configured(self, store):
        pipeline = SchedulePipeline(crawler=FakeCrawler(_report()))
        app = create_app(settings=_settings(API_KEYS="secret"), pipeline=pipeline, store=store)
        with TestClient(app) as c:
            denied = c.post("/api/exam-schedules/crawl", json={"year": 2025, "month": 11})
            allowed = c.post(
                "/api/exam-schedules/crawl",
                json={"year": 2025, "month": 11},
                headers={"X-API-Key": "secret"},
            )

        assert denied.status_code == 401
        assert allowed.status_code == 200

    def test_rate_limit(self, store):
        pipeline = SchedulePipeline(crawler=FakeCrawler(_report()))
        app = create_app(settings=_settings(RATE_LIMIT_PER_MINUTE=1), pipeline=pipeline, store=store)
        with TestClient(app) as c:
            ok = c.post("/api/exam-schedules/crawl", json={"year": 2025, "month": 11})
            limited = c.post("/api/exam-schedules/crawl", json={"year": 2025, "month": 11})

        assert ok.status_code == 200
        assert limited.status_code == 429
        assert "Retry-After" in limited.headers

    def test_store_endpoints_require_api_key(self, store):
        """API 키가 설정되면 저장/조회/삭제도 키 없이 호출할 수 없음"""
        pipeline = SchedulePipeline(crawler=FakeCrawler(_report()))
        app = create_app(settings=_settings(API_KEYS="secret"), pipeline=pipeline, store=store)
        with TestClient(app) as c:
            saved = c.post("/api/exam-schedules/save", json={"schedules": []})
            listed = c.get("/api/exam-schedules")
            deleted = c.delete("/api/exam-schedules/2025/생보/1")
            allowed = c.get("/api/exam-schedules", headers={"X-API-Key": "secret"})

        assert saved.status_code == 401
        assert listed.status_code == 401
        assert deleted.status_code == 401
        assert allowed.status_code == 200
        assert allowed.json() == []
