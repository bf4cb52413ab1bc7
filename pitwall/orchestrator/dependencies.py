"""Collaborators shared by the pipeline nodes."""

from dataclasses import dataclass

from pitwall.capabilities import CapabilityExecutor, CapabilityTable
from pitwall.config import Settings
from pitwall.confirmation import ConfirmationManager
from pitwall.features import FeatureExtractor
from pitwall.memory import ConversationMemory
from pitwall.providers.base import GenerativeResponder, KnowledgeProvider
from pitwall.routing import CapabilityRouter

from .validation import QueryValidator


@dataclass
class OrchestratorServices:
    settings: Settings
    extractor: FeatureExtractor
    capabilities: CapabilityTable
    router: CapabilityRouter
    executor: CapabilityExecutor
    synthesizer: GenerativeResponder
    memory: ConversationMemory
    confirmations: ConfirmationManager
    validator: QueryValidator
    responder: GenerativeResponder | None = None
    knowledge: KnowledgeProvider | None = None
