"""
Services for Memory Palace.

Each service encapsulates a logical unit of functionality.
"""

from memory_palace.services.extraction_service import (
    ExtractionResult,
    extract_insights,
    parse_insights,
)
from memory_palace.services.connection_service import (
    analyze_connection,
    discover_connections,
    parse_connection_verdict,
    select_candidates,
)
from memory_palace.services.recall_service import (
    recall,
    relevance_score,
    statistical_search,
)

__all__ = [
    # Insight extraction
    "ExtractionResult",
    "extract_insights",
    "parse_insights",
    # Connection discovery
    "analyze_connection",
    "discover_connections",
    "parse_connection_verdict",
    "select_candidates",
    # Recall
    "recall",
    "relevance_score",
    "statistical_search",
]
