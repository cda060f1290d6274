"""
Connection discovery service for Memory Palace.

Asks the LLM, one pair at a time, whether a new memory node is meaningfully
related to each existing node and turns positive verdicts into directed
edges. Ingesting node k costs up to k-1 completion calls, so the set of
existing nodes compared against is a configurable strategy.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from memory_palace.graph import KnowledgeGraph
from memory_palace.json_utils import parse_llm_json
from memory_palace.llm import complete as llm_complete
from memory_palace.models import KnowledgeConnection, MemoryNode, validate_connection_type


logger = logging.getLogger(__name__)

CompleteFn = Callable[..., Optional[str]]
CandidateSelector = Callable[[KnowledgeGraph, MemoryNode], List[MemoryNode]]

DISCOVERY_TEMPERATURE = 0.2

DISCOVERY_SYSTEM = (
    "You analyze relationships between knowledge concepts. "
    "Only identify meaningful, non-trivial connections."
)

DISCOVERY_PROMPT = '''Analyze these two knowledge nodes and determine if there's a meaningful connection:

Node 1: "{title1}" - {summary1}
Node 2: "{title2}" - {summary2}

If connected, respond with JSON:
{{"connected": true, "type": "similar|causal|contradictory|elaborative|temporal|thematic", "strength": 0.0-1.0, "description": "explanation"}}

If not connected:
{{"connected": false}}'''


def parse_connection_verdict(response: Optional[str]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Parse a pairwise verdict.

    Returns:
        ({"type", "strength", "description"}, None) for a usable positive
        verdict, (None, None) for an explicit "not connected", or
        (None, error_tag) when the answer is unusable
    """
    data, error = parse_llm_json(response)
    if error:
        return None, error

    if not isinstance(data, dict):
        return None, "not_an_object"

    connected = data.get("connected")
    if not isinstance(connected, bool):
        return None, "missing_connected"
    if not connected:
        return None, None

    connection_type = data.get("type")
    if not isinstance(connection_type, str) or not validate_connection_type(connection_type):
        return None, "invalid_type"

    strength = data.get("strength")
    if isinstance(strength, bool) or not isinstance(strength, (int, float)):
        return None, "invalid_strength"
    if not 0.0 <= strength <= 1.0:
        return None, "invalid_strength"

    description = data.get("description")
    if not isinstance(description, str):
        return None, "missing_description"

    return {"type": connection_type, "strength": float(strength), "description": description}, None


def analyze_connection(
    node1: MemoryNode,
    node2: MemoryNode,
    complete: Optional[CompleteFn] = None
) -> Optional[KnowledgeConnection]:
    """
    Ask the LLM whether node1 relates to node2.

    Returns:
        An edge node1 -> node2, or None for no connection or a failed call
    """
    complete = complete or llm_complete
    prompt = DISCOVERY_PROMPT.format(
        title1=node1.title, summary1=node1.summary,
        title2=node2.title, summary2=node2.summary,
    )

    response = complete(
        [{"role": "user", "text": prompt}],
        system=DISCOVERY_SYSTEM,
        temperature=DISCOVERY_TEMPERATURE,
    )
    if response is None:
        logger.debug("No verdict for %s -> %s (LLM unavailable)", node1.id, node2.id)
        return None

    verdict, error = parse_connection_verdict(response)
    if error:
        logger.debug("Unusable verdict for %s -> %s (%s)", node1.id, node2.id, error)
    if verdict is None:
        return None

    return KnowledgeConnection(
        source_node_id=node1.id,
        target_node_id=node2.id,
        connection_type=verdict["type"],
        strength=verdict["strength"],
        description=verdict["description"],
    )


def select_candidates(
    graph: KnowledgeGraph,
    new_node: MemoryNode,
    max_comparisons: Optional[int] = None
) -> List[MemoryNode]:
    """
    Existing nodes to compare a new node against, oldest first.

    With max_comparisons set, only the most recent that many nodes are kept.
    """
    ids = [i for i in graph.timeline if i != new_node.id]
    if max_comparisons is not None:
        ids = ids[-max_comparisons:] if max_comparisons > 0 else []
    return [graph.nodes[i] for i in ids]


def discover_connections(
    new_node: MemoryNode,
    existing_nodes: Iterable[MemoryNode],
    complete: Optional[CompleteFn] = None
) -> List[KnowledgeConnection]:
    """
    Evaluate the new node against every existing node, one call per pair.

    A failed or malformed answer for one pair yields no edge for that pair
    and does not stop the others.
    """
    connections = []
    compared = 0
    for existing in existing_nodes:
        if existing.id == new_node.id:
            continue
        compared += 1
        connection = analyze_connection(new_node, existing, complete)
        if connection is not None:
            connections.append(connection)

    logger.info("Discovered %d connection(s) for %s across %d comparison(s)",
                len(connections), new_node.id, compared)
    return connections
