"""
Prediction model package: prompt building, output parsing and the Gemini client.
"""

from .gemini_client import GeminiPredictionClient
from .parsing import match_analyses, parse_model_output, strip_fences, validate_analyses
from .prompts import build_batch_prompt

__all__ = [
    "GeminiPredictionClient",
    "build_batch_prompt",
    "match_analyses",
    "parse_model_output",
    "strip_fences",
    "validate_analyses",
]
