"""
Memory Palace - Personal knowledge graph and recall engine.

Distills conversations into memory nodes with an LLM, links them by
typed relationships, and recalls them with keyword and TF-IDF ranking.
Configuration lives in ~/.memory-palace/config.json.
"""

__version__ = "0.1.0"

from memory_palace.graph import KnowledgeGraph
from memory_palace.manager import MemoryPalaceManager
from memory_palace.models import (
    ChatMessage,
    Conversation,
    KnowledgeConnection,
    MemoryNode,
)
from memory_palace.search_index import SearchIndex

__all__ = [
    "__version__",
    "ChatMessage",
    "Conversation",
    "KnowledgeConnection",
    "KnowledgeGraph",
    "MemoryNode",
    "MemoryPalaceManager",
    "SearchIndex",
]
