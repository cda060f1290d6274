"""
Knowledge graph for Memory Palace.

Holds memory nodes in an id-keyed arena, the directed edge list, the
keyword -> node id topic index, and the insertion-ordered timeline.
Nodes are mutated in place when an edge is added, so lifecycle metadata
(created_at, access_count, last_accessed_at) is never lost.
"""

import logging
from typing import Any, Dict, List, Optional

from memory_palace.exceptions import GraphIntegrityError
from memory_palace.models import KnowledgeConnection, MemoryNode


logger = logging.getLogger(__name__)


class KnowledgeGraph:
    """
    In-memory knowledge graph.

    Invariants:
    - every id in `timeline` and in any `topics` bucket exists in `nodes`
    - `timeline` has no duplicates and keeps insertion order
    - `node.connections` lists the targets of every edge sourced at `node`
    """

    def __init__(self):
        self.nodes: Dict[str, MemoryNode] = {}
        self.connections: List[KnowledgeConnection] = []
        self.topics: Dict[str, List[str]] = {}
        self.timeline: List[str] = []
        self.version = 0  # Bumped on every mutation

    def __len__(self):
        return len(self.nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def add_node(self, node: MemoryNode) -> None:
        """
        Insert a node, append it to the timeline and index its keywords.

        Raises:
            GraphIntegrityError: if a node with the same id already exists
        """
        if node.id in self.nodes:
            raise GraphIntegrityError(f"Node {node.id} already exists")

        self.nodes[node.id] = node
        self.timeline.append(node.id)

        for keyword in node.keywords:
            self.topics.setdefault(keyword, []).append(node.id)

        self.version += 1

    def add_connection(self, connection: KnowledgeConnection) -> bool:
        """
        Append an edge and update the source node's adjacency in place.

        An edge with the same ordered pair and type as an existing one is
        ignored.

        Returns:
            True if the edge was added, False if it was a duplicate

        Raises:
            GraphIntegrityError: on unknown endpoints or a self-loop
        """
        source = self.nodes.get(connection.source_node_id)
        if source is None:
            raise GraphIntegrityError(f"Source node {connection.source_node_id} not found")
        if connection.target_node_id not in self.nodes:
            raise GraphIntegrityError(f"Target node {connection.target_node_id} not found")
        if connection.source_node_id == connection.target_node_id:
            raise GraphIntegrityError("Cannot create edge from node to itself")

        if self.has_connection(
            connection.source_node_id,
            connection.target_node_id,
            connection.connection_type
        ):
            logger.debug("Skipping duplicate edge %r", connection)
            return False

        self.connections.append(connection)
        if connection.target_node_id not in source.connections:
            source.connections.append(connection.target_node_id)

        self.version += 1
        return True

    def has_connection(
        self,
        source_id: str,
        target_id: str,
        connection_type: Optional[str] = None
    ) -> bool:
        """Check for an edge source -> target, optionally of a given type."""
        for edge in self.connections:
            if edge.source_node_id != source_id or edge.target_node_id != target_id:
                continue
            if connection_type is None or edge.connection_type == connection_type:
                return True
        return False

    def get_node(self, node_id: str) -> Optional[MemoryNode]:
        return self.nodes.get(node_id)

    def get_connected_nodes(self, node_id: str) -> List[MemoryNode]:
        """Nodes the given node points to, in adjacency order."""
        node = self.nodes.get(node_id)
        if node is None:
            return []
        return [self.nodes[t] for t in node.connections if t in self.nodes]

    def get_connections_for(self, node_id: str) -> List[KnowledgeConnection]:
        """Outgoing edges of a node."""
        return [e for e in self.connections if e.source_node_id == node_id]

    def get_nodes_by_topic(self, topic: str) -> List[MemoryNode]:
        return [self.nodes[i] for i in self.topics.get(topic, []) if i in self.nodes]

    def get_nodes_by_type(self, node_type: str) -> List[MemoryNode]:
        return [self.nodes[i] for i in self.timeline if self.nodes[i].node_type == node_type]

    def get_recent_nodes(self, limit: int = 10) -> List[MemoryNode]:
        """Most recently added nodes, newest first."""
        if limit <= 0:
            return []
        return [self.nodes[i] for i in reversed(self.timeline[-limit:])]

    def get_topic_clusters(self) -> Dict[str, List[MemoryNode]]:
        """Topic -> nodes, omitting topics with no resolvable nodes."""
        clusters = {}
        for topic in self.topics:
            nodes = self.get_nodes_by_topic(topic)
            if nodes:
                clusters[topic] = nodes
        return clusters

    def search_nodes(self, query: str) -> List[MemoryNode]:
        """
        Case-insensitive literal substring match over title, content,
        summary and keywords. The query is not tokenized.
        """
        needle = query.lower()
        results = []
        for node_id in self.timeline:
            node = self.nodes[node_id]
            if (needle in node.title.lower()
                    or needle in node.content.lower()
                    or needle in node.summary.lower()
                    or any(needle in k.lower() for k in node.keywords)):
                results.append(node)
        return results

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "version": self.version,
            "nodes": [self.nodes[i].to_dict() for i in self.timeline],
            "connections": [e.to_dict() for e in self.connections],
            "topics": {k: list(v) for k, v in self.topics.items()},
            "timeline": list(self.timeline),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeGraph":
        """
        Rebuild a graph from to_dict() output.

        Nodes, edges, topics and timeline are restored as stored rather than
        replayed, so adjacency lists and access metadata survive unchanged.
        """
        graph = cls()
        for node_data in data.get("nodes", []):
            node = MemoryNode.from_dict(node_data)
            graph.nodes[node.id] = node
        graph.connections = [KnowledgeConnection.from_dict(e) for e in data.get("connections", [])]
        graph.topics = {k: list(v) for k, v in data.get("topics", {}).items()}
        graph.timeline = list(data.get("timeline", []))
        graph.version = int(data.get("version", 0))

        missing = [i for i in graph.timeline if i not in graph.nodes]
        missing += [i for ids in graph.topics.values() for i in ids if i not in graph.nodes]
        for e in graph.connections:
            missing += [i for i in (e.source_node_id, e.target_node_id) if i not in graph.nodes]
        if missing or len(set(graph.timeline)) != len(graph.timeline):
            raise GraphIntegrityError("Stored graph references unknown or duplicate node ids")
        if set(graph.timeline) != set(graph.nodes):
            raise GraphIntegrityError("Stored graph has nodes missing from the timeline")

        adjacency: Dict[str, List[str]] = {node_id: [] for node_id in graph.nodes}
        for e in graph.connections:
            if e.source_node_id == e.target_node_id:
                raise GraphIntegrityError(f"Stored edge {e.id} is a self-loop")
            targets = adjacency[e.source_node_id]
            if e.target_node_id not in targets:
                targets.append(e.target_node_id)
        for node_id, node in graph.nodes.items():
            if node.connections != adjacency[node_id]:
                raise GraphIntegrityError(f"Stored adjacency of node {node_id} disagrees with its edges")
        return graph
