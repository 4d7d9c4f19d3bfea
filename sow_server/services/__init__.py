"""Application service helpers."""

from .generation import GenerationService
from .interview import InterviewService
from .job_runner import DocumentWorker, GenerationQueue

__all__ = [
    "DocumentWorker",
    "GenerationQueue",
    "GenerationService",
    "InterviewService",
]
