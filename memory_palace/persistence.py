"""
Persistence adapter for Memory Palace.

Serializes the knowledge graph and the search index to JSON under two keys
of the durable store. Loading degrades silently: a missing or unreadable
key leaves that structure empty.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from memory_palace.database import KeyValueStore
from memory_palace.exceptions import GraphIntegrityError, PersistenceError
from memory_palace.graph import KnowledgeGraph
from memory_palace.search_index import SearchIndex


logger = logging.getLogger(__name__)

GRAPH_KEY = "memory_palace.graph"
INDEX_KEY = "memory_palace.search_index"
SCHEMA_VERSION = 1


class PalacePersistence:
    """Save/load the graph and search index through a key/value store."""

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else KeyValueStore()

    def save(self, graph: KnowledgeGraph, index: SearchIndex) -> None:
        """
        Overwrite both stored snapshots.

        Raises:
            PersistenceError: if either write fails
        """
        try:
            self.store.put(GRAPH_KEY, self._encode(graph.to_dict()))
            self.store.put(INDEX_KEY, self._encode(index.to_dict()))
        except (SQLAlchemyError, OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to save memory palace: {e}") from e

    def load(self) -> Tuple[KnowledgeGraph, SearchIndex]:
        """
        Restore the graph and index, each falling back to empty on failure.
        """
        graph = self._load_one(GRAPH_KEY, KnowledgeGraph)
        index = self._load_one(INDEX_KEY, SearchIndex)
        return graph, index

    def _encode(self, payload: Dict[str, Any]) -> bytes:
        return json.dumps({"schema_version": SCHEMA_VERSION, "data": payload}).encode("utf-8")

    def _load_one(self, key: str, cls):
        try:
            blob = self.store.get(key)
        except SQLAlchemyError as e:
            logger.warning("Could not read %s from store: %s", key, e)
            return cls()

        if blob is None:
            return cls()

        try:
            envelope = json.loads(blob.decode("utf-8"))
            version = envelope.get("schema_version")
            if version != SCHEMA_VERSION:
                logger.warning("Ignoring %s with unknown schema version %r", key, version)
                return cls()
            return cls.from_dict(envelope["data"])
        except (UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError,
                GraphIntegrityError) as e:
            logger.warning("Could not decode %s, starting empty: %s", key, e)
            return cls()
