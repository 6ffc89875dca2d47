"""
LLM-backed schedule extraction client.
시험일정표 이미지(비전 모델)와 내부 마감 텍스트(텍스트 모델)를 구조화합니다.

The model name prefix selects the provider: gemini-* (google-genai),
gpt-* / o* (openai), claude-* (anthropic). Each extraction is a single call;
callers that want retries re-invoke the client.
"""

import base64
import logging

from pydantic import ValidationError

from ..config import LLM_MAX_TOKENS, Settings, check_api_key, get_settings, provider_for_model
from ..deadlines import normalize_session_range, parse_session_range
from ..prompt import get_deadline_prompt, get_image_prompt
from ..regions import expand_locations
from ..schema import ExamType, FragmentSource, ImageExtraction, InternalDeadline, ScheduleFragment
from ._utils import load_schedules_payload
from .base import DeadlineExtractor, ImageScheduleExtractor, ModelClient

logger = logging.getLogger(__name__)

# Explicit LLM routing: provider → method name
_LLM_ROUTER = {
    "gemini": "_call_gemini",
    "openai": "_call_openai",
    "anthropic": "_call_anthropic",
}

# Maps provider to the env var name (for clear error messages)
_KEY_NAMES = {
    "gemini": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

_SYSTEM_PROMPT = "You are an exam schedule extraction system. Respond with JSON only."


class LLMScheduleClient(ModelClient, ImageScheduleExtractor, DeadlineExtractor):
    """
    Schedule extraction through a hosted LLM.

    Image:  (bytes, mime) → vision model → {"extracted_text", "schedules"}
    Text:   deadline notice → text model → {"schedules"}
    """

    def __init__(self, model_name: str, settings: Settings | None = None):
        super().__init__(model_name=model_name)
        self.settings = settings or get_settings()
        self.provider = provider_for_model(model_name)
        if self.provider is None:
            raise ValueError(f"Unsupported LLM: {model_name}")

        # Early API key validation at wiring time
        if not check_api_key(self.provider, self.settings):
            raise ValueError(
                f"{_KEY_NAMES[self.provider]} is not set. Required for LLM backend '{model_name}'."
            )
        self._llm_client = None

    # ------------------------------------------------------------------
    # Extraction entry points
    # ------------------------------------------------------------------

    def extract_image_schedules(self, image: tuple[bytes, str], year: int) -> ImageExtraction:
        raw = self._call_llm(get_image_prompt(year), image=image)
        payload = load_schedules_payload(raw)

        schedules = []
        for item in payload["schedules"]:
            fragment = _to_image_fragment(item, year)
            if fragment is not None:
                schedules.append(fragment)

        logger.info("Image extraction: %d/%d schedules usable", len(schedules), len(payload["schedules"]))
        return ImageExtraction(
            extracted_text=str(payload.get("extracted_text") or payload.get("extractedText") or ""),
            schedules=schedules,
        )

    def extract_deadlines(
        self,
        text: str,
        year: int,
        exam_type: ExamType = ExamType.LIFE,
    ) -> list[InternalDeadline]:
        if not text or not text.strip():
            return []
        raw = self._call_llm(get_deadline_prompt(year), text=text)
        payload = load_schedules_payload(raw)

        deadlines = []
        for item in payload["schedules"]:
            deadline = _to_deadline(item, year, exam_type)
            if deadline is not None:
                deadlines.append(deadline)

        logger.info("Deadline extraction: %d/%d records usable", len(deadlines), len(payload["schedules"]))
        return deadlines

    # ------------------------------------------------------------------
    # Provider calls
    # ------------------------------------------------------------------

    def _call_llm(self, prompt: str, text: str | None = None, image: tuple[bytes, str] | None = None) -> str:
        """Route to the provider method; returns the raw response text."""
        method_name = _LLM_ROUTER[self.provider]
        return getattr(self, method_name)(prompt, text, image)

    def _call_gemini(self, prompt: str, text: str | None, image: tuple[bytes, str] | None) -> str:
        from google import genai
        from google.genai import types

        if self._llm_client is None:
            self._llm_client = genai.Client(api_key=self.settings.GOOGLE_API_KEY)

        contents: list = []
        if image is not None:
            contents.append(types.Part.from_bytes(data=image[0], mime_type=image[1]))
        contents.append(prompt if text is None else f"{prompt}\n\n## 입력 텍스트\n{text}")

        response = self._llm_client.models.generate_content(
            model=self.model_name,
            contents=contents,
            config=types.GenerateContentConfig(
                system_instruction=_SYSTEM_PROMPT,
                response_mime_type="application/json",
                temperature=0.1,
                max_output_tokens=LLM_MAX_TOKENS,
            ),
        )

        if hasattr(response, "usage_metadata") and response.usage_metadata:
            self._add_tokens(
                getattr(response.usage_metadata, "prompt_token_count", 0),
                getattr(response.usage_metadata, "candidates_token_count", 0),
            )

        return response.text

    def _call_openai(self, prompt: str, text: str | None, image: tuple[bytes, str] | None) -> str:
        from openai import OpenAI

        if self._llm_client is None:
            self._llm_client = OpenAI(api_key=self.settings.OPENAI_API_KEY)

        if image is not None:
            data_url = f"data:{image[1]};base64,{base64.b64encode(image[0]).decode('ascii')}"
            messages = [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": data_url, "detail": "high"}},
                    ],
                },
            ]
        else:
            messages = [
                {"role": "system", "content": f"{_SYSTEM_PROMPT}\n\n{prompt}"},
                {"role": "user", "content": text or ""},
            ]

        response = self._llm_client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=0.1,
            max_completion_tokens=LLM_MAX_TOKENS,
        )

        if response.usage:
            self._add_tokens(response.usage.prompt_tokens, response.usage.completion_tokens)

        return response.choices[0].message.content

    def _call_anthropic(self, prompt: str, text: str | None, image: tuple[bytes, str] | None) -> str:
        from anthropic import Anthropic

        if self._llm_client is None:
            self._llm_client = Anthropic(api_key=self.settings.ANTHROPIC_API_KEY)

        content: list[dict] = []
        if image is not None:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image[1],
                        "data": base64.b64encode(image[0]).decode("ascii"),
                    },
                }
            )
        body = prompt if text is None else f"{prompt}\n\n## 입력 텍스트\n{text}"
        content.append({"type": "text", "text": f"{body}\n\nJSON만 출력하세요. 코드블록이나 마크다운은 포함하지 마세요."})

        response = self._llm_client.messages.create(
            model=self.model_name,
            max_tokens=LLM_MAX_TOKENS,
            temperature=0.1,
            system=_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": content}],
        )

        self._add_tokens(response.usage.input_tokens, response.usage.output_tokens)

        if not response.content:
            raise ValueError("Anthropic API returned an empty content list.")
        block = response.content[0]
        if not hasattr(block, "text"):
            raise ValueError(f"Anthropic API returned unexpected content block type: {type(block).__name__}")
        return block.text


# ----------------------------------------------------------------------
# Response item cleanup
# ----------------------------------------------------------------------


def _to_image_fragment(item: dict, year: int) -> ScheduleFragment | None:
    """Turn one returned schedule item into an image fragment, or None if unusable."""
    if not isinstance(item, dict):
        logger.warning("Skipping non-object schedule item: %r", item)
        return None

    locations = item.get("locations") or []
    if isinstance(locations, str):
        locations = [locations]
    elif not isinstance(locations, list):
        locations = []

    try:
        return ScheduleFragment(
            year=item.get("year") or year,
            exam_type=item.get("exam_type") or ExamType.LIFE,
            session_number=item.get("session_number"),
            exam_date=item.get("exam_date") or None,
            exam_time_start=item.get("exam_time_start"),
            exam_time_end=item.get("exam_time_end"),
            locations=expand_locations(locations),
            notes=str(item.get("notes") or ""),
            source=FragmentSource.IMAGE,
        )
    except ValidationError as e:
        logger.warning("Skipping invalid image schedule item %r: %s", item, e.errors()[0]["msg"])
        return None


def _to_deadline(item: dict, year: int, exam_type: ExamType) -> InternalDeadline | None:
    """Turn one returned deadline item into an InternalDeadline, or None if unusable."""
    if not isinstance(item, dict):
        logger.warning("Skipping non-object deadline item: %r", item)
        return None

    session_range = str(item.get("session_range") or "").replace("차", "").strip()
    numbers = item.get("session_numbers")
    if not session_range and isinstance(numbers, list) and numbers and all(isinstance(n, int) for n in numbers):
        session_range = f"{min(numbers)}~{max(numbers)}"

    bounds = parse_session_range(session_range)
    if bounds is None:
        logger.warning("Skipping deadline item with unusable session range: %r", item)
        return None
    session_range = normalize_session_range(*bounds)

    try:
        return InternalDeadline(
            year=item.get("year") or year,
            exam_type=item.get("exam_type") or exam_type,
            session_range=session_range,
            deadline_date=item.get("internal_deadline_date") or item.get("deadline_date") or None,
            deadline_time=item.get("internal_deadline_time") or item.get("deadline_time"),
            notice_date=item.get("notice_date") or None,
            notice_time=item.get("notice_time"),
            notes=str(item.get("notes") or ""),
        )
    except ValidationError as e:
        logger.warning("Skipping invalid deadline item %r: %s", item, e.errors()[0]["msg"])
        return None
