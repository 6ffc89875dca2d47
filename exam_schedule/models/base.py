"""
Base classes for schedule extraction collaborators.
이미지/텍스트 추출 클라이언트의 기본 인터페이스를 정의합니다.
"""

from abc import ABC, abstractmethod

from ..schema import ExamType, ImageExtraction, InternalDeadline


class ExtractionError(ValueError):
    """Model output could not be turned into schedule data."""


class ModelClient(ABC):
    """Base class for all model-backed clients"""

    def __init__(self, model_name: str):
        """
        Initialize model client.

        Args:
            model_name: Name of the model to use
        """
        self.model_name = model_name
        self.input_tokens = 0
        self.output_tokens = 0

    def _add_tokens(self, input_t, output_t):
        """Accumulate token counts, treating None as 0."""
        self.input_tokens += input_t or 0
        self.output_tokens += output_t or 0

    def get_token_usage(self) -> tuple[int, int]:
        """
        Get token usage statistics.

        Returns:
            Tuple of (input_tokens, output_tokens)
        """
        return (self.input_tokens, self.output_tokens)


class ImageScheduleExtractor(ABC):
    """Turns a schedule image into image-sourced fragments."""

    @abstractmethod
    def extract_image_schedules(self, image: tuple[bytes, str], year: int) -> ImageExtraction:
        """
        Args:
            image: (image_bytes, mime_type) tuple
            year: Year assumed when the image omits it
        """


class DeadlineExtractor(ABC):
    """Turns internal deadline text into InternalDeadline records."""

    @abstractmethod
    def extract_deadlines(
        self,
        text: str,
        year: int,
        exam_type: ExamType = ExamType.LIFE,
    ) -> list[InternalDeadline]:
        pass
