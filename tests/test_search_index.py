"""
Tests for the TF-IDF search index.
"""
import math

import pytest

from memory_palace.models import MemoryNode
from memory_palace.search_index import SearchIndex, extract_words


def node(title, content="", summary=""):
    return MemoryNode(title=title, content=content, summary=summary)


@pytest.fixture
def corpus():
    """Three nodes; 'rust' appears twice in the first node's ten words."""
    a = node("rust rust alpha", "bravo charlie delta echo", "foxtrot golf hotel")
    b = node("python tooling", "packaging with setuptools", "python packaging")
    c = node("garden tomatoes", "watering schedule", "summer garden")
    index = SearchIndex()
    for n in (a, b, c):
        index.index_node(n)
    return index, a, b, c


class TestExtractWords:
    """Tests for tokenization."""

    def test_lowercases_and_strips_punctuation(self):
        assert extract_words("Hello, World! It's a C++ test-case") == ["hello", "world", "test", "case"]

    def test_drops_short_tokens(self):
        assert extract_words("an ox ate hay") == ["ate", "hay"]

    def test_splits_on_newlines_and_tabs(self):
        assert extract_words("first\nsecond\tthird") == ["first", "second", "third"]


class TestIndexNode:
    """Tests for index_node()."""

    def test_document_frequency_matches_postings(self, corpus):
        index, *_ = corpus
        for term, postings in index.term_frequency.items():
            assert index.document_frequency[term] == len(postings)
        assert index.total_documents == 3

    def test_counts_terms_per_node(self, corpus):
        index, a, b, _ = corpus
        assert index.term_frequency["rust"] == {a.id: 2}
        assert index.term_frequency["python"] == {b.id: 2}
        assert index.node_word_counts[a.id] == 10

    def test_reindexing_same_node_is_a_no_op(self, corpus):
        """A duplicate index_node() call changes nothing."""
        index, a, _, _ = corpus
        before = index.to_dict()

        assert index.index_node(a) is False
        assert index.to_dict() == before
        assert index.total_documents == 3

    def test_first_index_returns_true(self):
        assert SearchIndex().index_node(node("fresh words here")) is True


class TestCalculateTfidf:
    """Tests for calculate_tfidf()."""

    def test_matches_hand_computed_value(self, corpus):
        """tf = 2/10, idf = ln(3/1) -> ~0.2197."""
        index, a, _, _ = corpus
        score = index.calculate_tfidf("rust", a.id)
        assert score == pytest.approx(0.2 * math.log(3))
        assert score == pytest.approx(0.2197, abs=1e-4)

    def test_zero_when_term_absent_from_node(self, corpus):
        index, _, b, _ = corpus
        assert index.calculate_tfidf("rust", b.id) == 0.0

    def test_zero_for_unknown_term_and_node(self, corpus):
        index, a, _, _ = corpus
        assert index.calculate_tfidf("nonexistent", a.id) == 0.0
        assert index.calculate_tfidf("rust", "no-such-node") == 0.0

    def test_term_in_every_document_scores_zero(self):
        """idf = ln(n/n) = 0."""
        index = SearchIndex()
        a, b = node("shared alpha"), node("shared beta")
        index.index_node(a)
        index.index_node(b)
        assert index.calculate_tfidf("shared", a.id) == 0.0


class TestScoreQuery:
    """Tests for score_query()."""

    def test_accumulates_across_terms(self, corpus):
        index, a, b, _ = corpus
        scores = index.score_query("Rust python")
        assert scores[a.id] == pytest.approx(index.calculate_tfidf("rust", a.id))
        assert scores[b.id] == pytest.approx(index.calculate_tfidf("python", b.id))

    def test_unknown_terms_score_nothing(self, corpus):
        index, *_ = corpus
        assert index.score_query("zebra") == {}


class TestSerialization:

    def test_round_trip(self, corpus):
        index, *_ = corpus
        restored = SearchIndex.from_dict(index.to_dict())
        assert restored.to_dict() == index.to_dict()
