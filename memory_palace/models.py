"""
Data model for Memory Palace.

Memory nodes are mutable records held in the knowledge graph arena, keyed by
id. Connections are directed, typed, weighted edges between nodes. Both
serialize to plain dicts for persistence.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


# Node type constants
NODE_TYPES = (
    "insight",
    "fact",
    "idea",
    "question",
    "solution",
    "pattern",
    "connection",
)

DEFAULT_NODE_TYPE = "insight"

# Connection type -> human description
CONNECTION_TYPES = {
    "similar": "Similar concepts",
    "causal": "Cause and effect",
    "contradictory": "Opposing views",
    "elaborative": "Builds upon",
    "temporal": "Time-related",
    "thematic": "Same theme",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def validate_node_type(node_type: str) -> bool:
    """Check if a node type is one of the known types."""
    return node_type in NODE_TYPES


def validate_connection_type(connection_type: str) -> bool:
    """Check if a connection type is one of the known types."""
    return connection_type in CONNECTION_TYPES


def clamp_unit(value: float) -> float:
    """Clamp a score to the [0, 1] range."""
    return max(0.0, min(1.0, float(value)))


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return as_utc(datetime.fromisoformat(value))


@dataclass
class MemoryNode:
    """
    A single knowledge unit distilled from a conversation.

    `connections` is a cached adjacency list of target node ids; the
    knowledge graph keeps it in step with its edge list.
    """
    title: str
    content: str
    summary: str
    keywords: List[str] = field(default_factory=list)
    source_conversation_id: Optional[str] = None
    source_message_ids: List[str] = field(default_factory=list)
    importance: float = 0.5
    node_type: str = DEFAULT_NODE_TYPE
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    last_accessed_at: datetime = field(default_factory=utcnow)
    access_count: int = 0
    connections: List[str] = field(default_factory=list)
    embedding: Optional[List[float]] = None  # Reserved, never populated

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"<MemoryNode(id={self.id}, type='{self.node_type}', title='{self.title}')>"

    def record_access(self, when: Optional[datetime] = None) -> None:
        """Bump access metadata after the node was returned by recall."""
        self.access_count += 1
        self.last_accessed_at = when or utcnow()

    def searchable_text(self) -> str:
        """Text fed to the lexical index."""
        return f"{self.title} {self.content} {self.summary}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "summary": self.summary,
            "keywords": list(self.keywords),
            "source_conversation_id": self.source_conversation_id,
            "source_message_ids": list(self.source_message_ids),
            "created_at": _isoformat(self.created_at),
            "last_accessed_at": _isoformat(self.last_accessed_at),
            "access_count": self.access_count,
            "importance": self.importance,
            "node_type": self.node_type,
            "connections": list(self.connections),
            "embedding": list(self.embedding) if self.embedding is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryNode":
        """Rebuild a node from to_dict() output."""
        return cls(
            id=data["id"],
            title=data["title"],
            content=data["content"],
            summary=data["summary"],
            keywords=list(data.get("keywords") or []),
            source_conversation_id=data.get("source_conversation_id"),
            source_message_ids=list(data.get("source_message_ids") or []),
            created_at=_parse_datetime(data.get("created_at")) or utcnow(),
            last_accessed_at=_parse_datetime(data.get("last_accessed_at")) or utcnow(),
            access_count=int(data.get("access_count", 0)),
            importance=float(data.get("importance", 0.5)),
            node_type=data.get("node_type", DEFAULT_NODE_TYPE),
            connections=list(data.get("connections") or []),
            embedding=data.get("embedding"),
        )


@dataclass
class KnowledgeConnection:
    """
    Directed, typed, weighted edge between two memory nodes.

    Edges are not symmetric: a causal edge A -> B says nothing about B -> A.
    """
    source_node_id: str
    target_node_id: str
    connection_type: str
    strength: float
    description: str
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def __repr__(self):
        return (f"<KnowledgeConnection({self.source_node_id} ->"
                f"[{self.connection_type}]-> {self.target_node_id})>")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "source_node_id": self.source_node_id,
            "target_node_id": self.target_node_id,
            "connection_type": self.connection_type,
            "strength": self.strength,
            "description": self.description,
            "created_at": _isoformat(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeConnection":
        return cls(
            id=data["id"],
            source_node_id=data["source_node_id"],
            target_node_id=data["target_node_id"],
            connection_type=data["connection_type"],
            strength=float(data["strength"]),
            description=data.get("description", ""),
            created_at=_parse_datetime(data.get("created_at")) or utcnow(),
        )


@dataclass
class InsightCandidate:
    """Unvalidated insight proposed by the LLM, before it becomes a node."""
    title: str
    content: str
    summary: str
    keywords: List[str]
    type: str
    importance: float


@dataclass
class ChatMessage:
    text: str
    role: str = "user"
    id: str = field(default_factory=new_id)


@dataclass
class Conversation:
    """A conversation owned by the surrounding application."""
    messages: List[ChatMessage] = field(default_factory=list)
    title: str = ""
    id: str = field(default_factory=new_id)

    def text(self) -> str:
        return "\n".join(m.text for m in self.messages)

    def message_ids(self) -> List[str]:
        return [m.id for m in self.messages]


def create_node(
    candidate: InsightCandidate,
    conversation_id: Optional[str] = None,
    message_ids: Optional[List[str]] = None
) -> MemoryNode:
    """
    Map an insight candidate to a fresh memory node.

    Unknown candidate types fall back to "insight". Timestamps are stamped
    now, access_count starts at 0 and the adjacency list starts empty.
    """
    node_type = candidate.type if validate_node_type(candidate.type) else DEFAULT_NODE_TYPE
    return MemoryNode(
        title=candidate.title,
        content=candidate.content,
        summary=candidate.summary,
        keywords=list(candidate.keywords),
        source_conversation_id=conversation_id,
        source_message_ids=list(message_ids or []),
        importance=clamp_unit(candidate.importance),
        node_type=node_type,
    )
