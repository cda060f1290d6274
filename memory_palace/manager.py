"""
Memory Palace manager.

The single owner of the knowledge graph and search index. Coordinates
ingestion (extract -> create node -> discover connections -> commit -> save)
and recall. Readers and the ingesting writer are separated by a
writer-preferred reader/writer lock; LLM calls happen outside the write lock
and each new node is committed together with all of its edges.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from memory_palace.config import get_discovery_max_comparisons, get_track_access
from memory_palace.database import KeyValueStore
from memory_palace.exceptions import PersistenceError
from memory_palace.graph import KnowledgeGraph
from memory_palace.llm import complete as llm_complete
from memory_palace.locks import ReadWriteLock
from memory_palace.models import (
    CONNECTION_TYPES,
    NODE_TYPES,
    Conversation,
    KnowledgeConnection,
    MemoryNode,
    create_node,
    utcnow,
)
from memory_palace.persistence import PalacePersistence
from memory_palace.search_index import SearchIndex
from memory_palace.services.connection_service import (
    CandidateSelector,
    CompleteFn,
    discover_connections,
    select_candidates,
)
from memory_palace.services.extraction_service import extract_insights
from memory_palace.services.recall_service import recall


logger = logging.getLogger(__name__)

# Sentinel: read the comparison cap from config
_FROM_CONFIG: Any = object()


class MemoryPalaceManager:
    """
    Orchestrates ingestion and recall over one graph and one search index.

    Args:
        complete: Completion function (defaults to the Ollama client)
        store: Key/value store for persistence (ignored if persistence is given)
        persistence: Persistence adapter (defaults to one over store)
        candidate_selector: Picks the existing nodes a new node is compared
            against; defaults to select_candidates with max_comparisons
        max_comparisons: Cap on comparisons per new node, None for no cap
        track_access: Whether recall bumps access metadata of returned nodes
        autoload: Load the stored graph and index on construction
    """

    def __init__(
        self,
        complete: Optional[CompleteFn] = None,
        store: Optional[KeyValueStore] = None,
        persistence: Optional[PalacePersistence] = None,
        candidate_selector: Optional[CandidateSelector] = None,
        max_comparisons: Optional[int] = _FROM_CONFIG,
        track_access: Optional[bool] = None,
        autoload: bool = True
    ):
        self._complete_fn = complete or llm_complete
        self.persistence = persistence or PalacePersistence(store)
        self.candidate_selector = candidate_selector
        self.max_comparisons = (
            get_discovery_max_comparisons() if max_comparisons is _FROM_CONFIG else max_comparisons
        )
        self.track_access = get_track_access() if track_access is None else track_access

        self.graph = KnowledgeGraph()
        self.search_index = SearchIndex()

        self._lock = ReadWriteLock()
        self._ingest_lock = threading.Lock()
        self._is_processing = False
        self._last_error: Optional[str] = None

        if autoload:
            self.load()

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    # ── Ingestion ────────────────────────────────────────────────────

    def _complete(self, messages, system=None, temperature=0.7) -> Optional[str]:
        """Call the completion function, turning any raised error into None."""
        try:
            return self._complete_fn(messages, system=system, temperature=temperature)
        except Exception as e:
            logger.warning("Completion call raised %s: %s", type(e).__name__, e)
            return None

    def _select_candidates(self, node: MemoryNode) -> List[MemoryNode]:
        if self.candidate_selector is None:
            return select_candidates(self.graph, node, self.max_comparisons)

        candidates = []
        for candidate in self.candidate_selector(self.graph, node):
            if candidate.id in self.graph and candidate.id != node.id:
                candidates.append(candidate)
            else:
                logger.warning("Candidate selector returned node %s outside the graph; skipping",
                               candidate.id)
        return candidates

    def process_conversation(
        self,
        conversation: Conversation,
        cancel_event: Optional[threading.Event] = None
    ) -> Dict[str, Any]:
        """
        Distill a conversation into memory nodes and link them into the graph.

        Ingestions run one at a time. The cancellation event is checked
        before every commit; once set, nothing further is committed.

        Args:
            conversation: Conversation to process
            cancel_event: Optional cancellation token

        Returns:
            Dict with extracted/created/connections counts, a cancelled flag
            and an error message (None on success)
        """
        summary = {"extracted": 0, "created": 0, "connections": 0, "cancelled": False, "error": None}
        if not conversation.messages:
            return summary

        def cancelled() -> bool:
            if cancel_event is not None and cancel_event.is_set():
                summary["cancelled"] = True
                return True
            return False

        with self._ingest_lock:
            self._is_processing = True
            try:
                result = extract_insights(conversation.text(), self._complete)
                summary["extracted"] = len(result.insights)
                if not result.ok:
                    self._last_error = f"Failed to process conversation: {result.error}"
                    summary["error"] = self._last_error
                    return summary

                message_ids = conversation.message_ids()
                for candidate in result.insights:
                    if cancelled():
                        break
                    node = create_node(candidate, conversation.id, message_ids)

                    with self._lock.read_locked():
                        existing = self._select_candidates(node)
                    connections = discover_connections(node, existing, self._complete)

                    if cancelled():
                        break
                    with self._lock.write_locked():
                        # Every edge target must exist before the node is committed
                        connections = [c for c in connections if c.target_node_id in self.graph]
                        self._add_node_unlocked(node)
                        for connection in connections:
                            if self.graph.add_connection(connection):
                                summary["connections"] += 1
                    summary["created"] += 1

                if summary["created"]:
                    if not self.save():
                        summary["error"] = self._last_error
            finally:
                self._is_processing = False

        logger.info("Processed conversation %s: %d node(s), %d connection(s)%s",
                    conversation.id, summary["created"], summary["connections"],
                    " (cancelled)" if summary["cancelled"] else "")
        return summary

    def _add_node_unlocked(self, node: MemoryNode) -> None:
        self.graph.add_node(node)
        self.search_index.index_node(node)

    def add_memory_node(self, node: MemoryNode) -> None:
        """Add a node to the graph and the search index."""
        with self._lock.write_locked():
            self._add_node_unlocked(node)

    # ── Recall ───────────────────────────────────────────────────────

    def recall_information(self, query: str, limit: Optional[int] = None) -> List[MemoryNode]:
        """
        Recall nodes for a free-text query, most relevant first.

        With track_access enabled, returned nodes get their access count
        bumped after ranking, and the palace is saved.
        """
        with self._lock.read_locked():
            results = recall(self.graph, self.search_index, query, limit=limit)

        if self.track_access and results:
            now = utcnow()
            with self._lock.write_locked():
                for node in results:
                    node.record_access(now)
            self.save()

        return results

    # ── Lookups ──────────────────────────────────────────────────────

    def get_memory_node(self, node_id: str) -> Optional[MemoryNode]:
        with self._lock.read_locked():
            return self.graph.get_node(node_id)

    def get_all_memory_nodes(self) -> List[MemoryNode]:
        with self._lock.read_locked():
            return [self.graph.nodes[i] for i in self.graph.timeline]

    def get_nodes_by_type(self, node_type: str) -> List[MemoryNode]:
        with self._lock.read_locked():
            return self.graph.get_nodes_by_type(node_type)

    def get_recent_nodes(self, limit: int = 10) -> List[MemoryNode]:
        with self._lock.read_locked():
            return self.graph.get_recent_nodes(limit)

    def get_topic_clusters(self) -> Dict[str, List[MemoryNode]]:
        with self._lock.read_locked():
            return self.graph.get_topic_clusters()

    def get_connected_nodes(self, node_id: str) -> List[MemoryNode]:
        with self._lock.read_locked():
            return self.graph.get_connected_nodes(node_id)

    def get_node_connections(self, node_id: str) -> List[KnowledgeConnection]:
        """Outgoing edges of a node, with type, strength and description."""
        with self._lock.read_locked():
            return self.graph.get_connections_for(node_id)

    def get_nodes_by_topic(self, topic: str) -> List[MemoryNode]:
        with self._lock.read_locked():
            return self.graph.get_nodes_by_topic(topic)

    def get_stats(self) -> Dict[str, Any]:
        """
        Overview of the palace: node/edge counts by type, topics and terms.
        """
        with self._lock.read_locked():
            by_type = {t: 0 for t in NODE_TYPES}
            for node in self.graph.nodes.values():
                by_type[node.node_type] = by_type.get(node.node_type, 0) + 1

            by_connection = {t: 0 for t in CONNECTION_TYPES}
            for edge in self.graph.connections:
                by_connection[edge.connection_type] = by_connection.get(edge.connection_type, 0) + 1

            return {
                "total_nodes": len(self.graph.nodes),
                "total_connections": len(self.graph.connections),
                "total_topics": len(self.graph.topics),
                "indexed_documents": self.search_index.total_documents,
                "indexed_terms": len(self.search_index.document_frequency),
                "by_type": by_type,
                "by_connection_type": by_connection,
                "graph_version": self.graph.version,
            }

    # ── Persistence ──────────────────────────────────────────────────

    def save(self) -> bool:
        """
        Persist the graph and index.

        Returns:
            True on success; on failure the error is logged, last_error is
            set and the in-memory state stays usable
        """
        with self._lock.read_locked():
            try:
                self.persistence.save(self.graph, self.search_index)
            except PersistenceError as e:
                logger.error("%s", e)
                self._last_error = str(e)
                return False
        return True

    def load(self) -> None:
        """Replace in-memory state with the stored graph and index."""
        graph, index = self.persistence.load()
        with self._lock.write_locked():
            self.graph = graph
            self.search_index = index
        logger.info("Loaded memory palace: %d node(s), %d connection(s)",
                    len(graph.nodes), len(graph.connections))
