"""Model client, request types and query routing."""

from campus_bot.llm.client import ModelClient, get_model_client
from campus_bot.llm.request import (
    ErrorResult,
    GenerationRequest,
    StructuredResult,
    TextResult,
)
from campus_bot.llm.retry import RetryPolicy
from campus_bot.llm.router import route

__all__ = [
    "ErrorResult",
    "GenerationRequest",
    "ModelClient",
    "RetryPolicy",
    "StructuredResult",
    "TextResult",
    "get_model_client",
    "route",
]
