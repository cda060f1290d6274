"""
Tests for the insight extraction service.

The completion service is replaced by MagicMock / fake callables; nothing
talks to Ollama.
"""
import json
from unittest.mock import MagicMock, patch

from memory_palace.json_utils import clean_json_response
from memory_palace.services.extraction_service import (
    EXTRACTION_TEMPERATURE,
    build_extraction_prompt,
    extract_insights,
    parse_insights,
)


VALID_INSIGHT = {
    "title": "Use rust for indexing",
    "content": "Rust gives the indexer predictable latency.",
    "summary": "Rust for the indexer",
    "keywords": ["Rust", " index "],
    "type": "idea",
    "importance": 0.8,
}


class TestCleanJsonResponse:

    def test_strips_fences(self):
        assert clean_json_response("```json\n[1]\n```") == "[1]"
        assert clean_json_response("```\n{}\n```  ") == "{}"
        assert clean_json_response("  [2] ") == "[2]"


class TestParseInsights:
    """Tests for parse_insights() — untrusted JSON decode."""

    def test_parses_fenced_array(self):
        response = "```json\n" + json.dumps([VALID_INSIGHT]) + "\n```"

        result = parse_insights(response)

        assert result.ok
        assert len(result.insights) == 1
        insight = result.insights[0]
        assert insight.title == "Use rust for indexing"
        assert insight.keywords == ["rust", "index"]
        assert insight.type == "idea"
        assert insight.importance == 0.8

    def test_invalid_json_yields_empty(self):
        result = parse_insights("Sure! Here are your insights: [oops")
        assert result.insights == []
        assert result.error == "invalid_json"

    def test_empty_response_yields_empty(self):
        assert parse_insights("   ").error == "empty_response"
        assert parse_insights(None).error == "empty_response"

    def test_object_instead_of_array(self):
        result = parse_insights(json.dumps(VALID_INSIGHT))
        assert result.insights == []
        assert result.error == "not_a_list"

    def test_missing_field_rejects_whole_answer(self):
        broken = dict(VALID_INSIGHT)
        del broken["summary"]

        result = parse_insights(json.dumps([VALID_INSIGHT, broken]))

        assert result.insights == []
        assert result.error == "invalid_insight"

    def test_mistyped_importance_rejected(self):
        broken = dict(VALID_INSIGHT, importance="high")
        assert parse_insights(json.dumps([broken])).error == "invalid_insight"

    def test_importance_is_clamped(self):
        result = parse_insights(json.dumps([dict(VALID_INSIGHT, importance=3)]))
        assert result.insights[0].importance == 1.0

    def test_empty_array_is_success(self):
        result = parse_insights("[]")
        assert result.ok
        assert result.insights == []


class TestExtractInsights:
    """Tests for extract_insights() — prompt building and LLM call."""

    def test_truncates_conversation(self):
        """Only the first max_chars characters reach the prompt."""
        prompt = build_extraction_prompt("a" * 50 + "TAIL", max_chars=50)
        assert "a" * 50 in prompt
        assert "TAIL" not in prompt

    def test_default_truncation_from_config(self):
        prompt = build_extraction_prompt("b" * 2500)
        assert "b" * 2000 in prompt
        assert "b" * 2001 not in prompt

    def test_calls_completion_once_with_system_and_temperature(self):
        complete = MagicMock(return_value=json.dumps([VALID_INSIGHT]))

        result = extract_insights("We decided to use rust.", complete=complete)

        assert result.ok and len(result.insights) == 1
        complete.assert_called_once()
        args, kwargs = complete.call_args
        assert args[0][0]["role"] == "user"
        assert "We decided to use rust." in args[0][0]["text"]
        assert kwargs["temperature"] == EXTRACTION_TEMPERATURE
        assert "extracting and organizing knowledge" in kwargs["system"]

    def test_unavailable_llm_yields_empty(self):
        complete = MagicMock(return_value=None)

        result = extract_insights("anything", complete=complete)

        assert result.insights == []
        assert result.error == "llm_unavailable"
        complete.assert_called_once()  # No retries

    def test_defaults_to_ollama_client(self):
        with patch("memory_palace.services.extraction_service.llm_complete", return_value="[]") as mock:
            result = extract_insights("text")
        assert result.ok
        mock.assert_called_once()
