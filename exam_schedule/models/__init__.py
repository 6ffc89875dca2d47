"""
Extraction clients for schedule images and deadline text.
"""

from .base import DeadlineExtractor, ExtractionError, ImageScheduleExtractor, ModelClient
from .llm_client import LLMScheduleClient
from .rule_client import RuleDeadlineClient

__all__ = [
    "ModelClient",
    "ImageScheduleExtractor",
    "DeadlineExtractor",
    "ExtractionError",
    "LLMScheduleClient",
    "RuleDeadlineClient",
]
