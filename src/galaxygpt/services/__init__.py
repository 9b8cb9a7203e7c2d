"""Service layer orchestrations for GalaxyGPT."""

from .answer import AnswerOrchestrator
from .conversation import ConversationAssembler, ConversationConfig
from .generation import ChatBackend, GenerationConfig, OpenAIChatBackend, TemplateChatBackend
from .moderation import ModerationBackend, ModerationResult, OpenAIModerationBackend
from .query import QueryService

__all__ = [
    "AnswerOrchestrator",
    "ChatBackend",
    "ConversationAssembler",
    "ConversationConfig",
    "GenerationConfig",
    "ModerationBackend",
    "ModerationResult",
    "OpenAIChatBackend",
    "OpenAIModerationBackend",
    "QueryService",
    "TemplateChatBackend",
]
