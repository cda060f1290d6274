"""Custom exceptions for Memory Palace."""


class MemoryPalaceError(Exception):
    """Base exception for all Memory Palace errors."""


class GraphIntegrityError(MemoryPalaceError):
    """Raised when a mutation would break the knowledge graph's invariants
    (unknown edge endpoint, self-loop, duplicate node id)."""


class PersistenceError(MemoryPalaceError):
    """Raised when the graph or search index could not be saved."""
