"""
Recall service for Memory Palace.

Answers a free-text query by merging a literal keyword pass over the graph
with a TF-IDF pass over the search index, then ranking the union.

Ranking score:
    importance + 0.1 * access_count + (0.2 if created within the last 24h)
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from memory_palace.graph import KnowledgeGraph
from memory_palace.models import MemoryNode, as_utc, utcnow
from memory_palace.search_index import SearchIndex


# Statistical pass keeps this many nodes
STATISTICAL_TOP_K = 20

ACCESS_WEIGHT = 0.1
RECENCY_BONUS = 0.2
RECENCY_WINDOW = timedelta(hours=24)


def relevance_score(node: MemoryNode, now: Optional[datetime] = None) -> float:
    """Composite ranking score for a recalled node."""
    now = as_utc(now) if now else utcnow()
    score = node.importance + ACCESS_WEIGHT * node.access_count
    if now - as_utc(node.created_at) < RECENCY_WINDOW:
        score += RECENCY_BONUS
    return score


def statistical_search(
    graph: KnowledgeGraph,
    index: SearchIndex,
    query: str,
    top_k: int = STATISTICAL_TOP_K
) -> List[MemoryNode]:
    """Top nodes by accumulated TF-IDF over the query's whitespace tokens."""
    scores = index.score_query(query)
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)[:top_k]
    return [graph.nodes[node_id] for node_id, _ in ranked if node_id in graph.nodes]


def recall(
    graph: KnowledgeGraph,
    index: SearchIndex,
    query: str,
    now: Optional[datetime] = None,
    limit: Optional[int] = None
) -> List[MemoryNode]:
    """
    Recall nodes relevant to a query, most relevant first.

    Args:
        graph: Knowledge graph to search
        index: Search index over the same nodes
        query: Free-text query
        now: Reference time for the recency bonus (defaults to now)
        limit: Optional cap on the number of results

    Returns:
        Each matching node exactly once, sorted by relevance_score
    """
    if not query or not query.strip():
        return []

    now = now or utcnow()
    merged: Dict[str, MemoryNode] = {}
    for node in graph.search_nodes(query) + statistical_search(graph, index, query):
        merged.setdefault(node.id, node)

    ranked = sorted(merged.values(), key=lambda n: relevance_score(n, now), reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
