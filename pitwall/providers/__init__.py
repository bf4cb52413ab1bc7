"""External collaborators: generative responder and knowledge provider."""

from .base import GenerativeResponder, KnowledgeProvider, StatsReporter
from .ergast import ErgastKnowledgeProvider
from .llm import LiteLLMResponder

__all__ = [
    "ErgastKnowledgeProvider",
    "GenerativeResponder",
    "KnowledgeProvider",
    "LiteLLMResponder",
    "StatsReporter",
]
