"""
TF-IDF search index for Memory Palace.

Term statistics over node title, content and summary. Used by recall as the
statistical relevance signal; there are no embeddings behind it.
"""

import math
import re
from typing import Any, Dict, List

from memory_palace.models import MemoryNode


# Tokens of this length or shorter are dropped
MIN_TOKEN_LENGTH = 3

_SPLIT_RE = re.compile(r"[\W_]+", re.UNICODE)


def extract_words(text: str) -> List[str]:
    """Lowercase, split on whitespace and punctuation, drop short tokens."""
    return [w for w in _SPLIT_RE.split(text.lower()) if len(w) >= MIN_TOKEN_LENGTH]


class SearchIndex:
    """
    Term frequency / document frequency index.

    `document_frequency[t]` is the number of distinct nodes in
    `term_frequency[t]`; `total_documents` counts indexed nodes and never
    goes down.
    """

    def __init__(self):
        self.term_frequency: Dict[str, Dict[str, int]] = {}
        self.document_frequency: Dict[str, int] = {}
        self.node_word_counts: Dict[str, int] = {}
        self.total_documents = 0

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.node_word_counts

    def index_node(self, node: MemoryNode) -> bool:
        """
        Add a node's term statistics to the index.

        Indexing is idempotent: a node that is already indexed is left alone.

        Returns:
            True if the node was indexed, False if it was already present
        """
        if node.id in self.node_word_counts:
            return False

        words = extract_words(node.searchable_text())
        self.node_word_counts[node.id] = len(words)
        self.total_documents += 1

        counts: Dict[str, int] = {}
        for word in words:
            counts[word] = counts.get(word, 0) + 1

        for word, count in counts.items():
            postings = self.term_frequency.setdefault(word, {})
            if node.id not in postings:
                self.document_frequency[word] = self.document_frequency.get(word, 0) + 1
            postings[node.id] = count

        return True

    def calculate_tfidf(self, term: str, node_id: str) -> float:
        """
        TF-IDF of a term in a node.

        tf = count / node word count, idf = ln(total docs / doc frequency).
        Returns 0.0 when the term is absent or a denominator is zero.
        """
        count = self.term_frequency.get(term, {}).get(node_id)
        df = self.document_frequency.get(term, 0)
        word_count = self.node_word_counts.get(node_id, 0)
        if not count or df <= 0 or word_count <= 0 or self.total_documents <= 0:
            return 0.0

        tf = count / word_count
        idf = math.log(self.total_documents / df)
        return tf * idf

    def score_query(self, query: str) -> Dict[str, float]:
        """
        Accumulated TF-IDF per node for each whitespace-separated query term.
        """
        scores: Dict[str, float] = {}
        for term in query.lower().split():
            for node_id in self.term_frequency.get(term, {}):
                scores[node_id] = scores.get(node_id, 0.0) + self.calculate_tfidf(term, node_id)
        return scores

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "term_frequency": {t: dict(p) for t, p in self.term_frequency.items()},
            "document_frequency": dict(self.document_frequency),
            "node_word_counts": dict(self.node_word_counts),
            "total_documents": self.total_documents,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchIndex":
        index = cls()
        index.term_frequency = {
            t: {n: int(c) for n, c in p.items()}
            for t, p in data.get("term_frequency", {}).items()
        }
        index.document_frequency = {t: int(c) for t, c in data.get("document_frequency", {}).items()}
        index.node_word_counts = {n: int(c) for n, c in data.get("node_word_counts", {}).items()}
        index.total_documents = int(data.get("total_documents", 0))
        return index
