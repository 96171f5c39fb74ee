"""LLM helpers for reply generation and structured lead extraction."""
from .client import LLMClient, get_llm_client, reset_llm_client
from .assistant import ConversationAssistant
from .extraction import StructuredFields, parse_structured_fields

__all__ = [
    "LLMClient",
    "get_llm_client",
    "reset_llm_client",
    "ConversationAssistant",
    "StructuredFields",
    "parse_structured_fields",
]
