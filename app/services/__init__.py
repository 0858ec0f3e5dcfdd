"""Service layer helpers for external integrations."""

from .llm_client import BedrockLlmClient, get_llm_client
from .media import TempMediaManager
from .retry import RetryPolicy, call_with_retry
from .text_detection import RekognitionTextDetector, get_text_detector
from .transcribe import TranscribeService, get_transcribe_service

__all__ = [
    "BedrockLlmClient",
    "get_llm_client",
    "TempMediaManager",
    "RetryPolicy",
    "call_with_retry",
    "RekognitionTextDetector",
    "get_text_detector",
    "TranscribeService",
    "get_transcribe_service",
]
