"""
Insight extraction service for Memory Palace.

Turns conversation text into insight candidates via the LLM. Extraction is
best-effort: an unavailable LLM or an unparseable answer yields no insights
plus an error tag, never an exception.
"""

import logging
from typing import Any, Callable, List, NamedTuple, Optional

from memory_palace.config import get_extraction_max_chars
from memory_palace.json_utils import parse_llm_json
from memory_palace.llm import complete as llm_complete
from memory_palace.models import InsightCandidate, clamp_unit


logger = logging.getLogger(__name__)

CompleteFn = Callable[..., Optional[str]]

EXTRACTION_TEMPERATURE = 0.3

EXTRACTION_SYSTEM = (
    "You are an expert at extracting and organizing knowledge from conversations. "
    "Extract meaningful insights that would be valuable to remember later."
)

EXTRACTION_PROMPT = '''Analyze this conversation and extract key insights, facts, ideas, and important information that should be remembered. For each insight, provide:
1. A clear title
2. The main content/insight
3. A brief summary
4. 3-5 relevant keywords
5. The type (insight, fact, idea, question, solution, pattern)
6. Importance score (0.0-1.0)

Conversation:
{conversation}

Respond with JSON array:
[{{"title": "...", "content": "...", "summary": "...", "keywords": ["..."], "type": "insight", "importance": 0.8}}]'''


class ExtractionResult(NamedTuple):
    """Insights found plus an error tag (None on success)."""
    insights: List[InsightCandidate]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _decode_insight(item: Any) -> Optional[InsightCandidate]:
    """Decode one insight object, or None if a field is missing or mistyped."""
    if not isinstance(item, dict):
        return None

    for name in ("title", "content", "summary", "type"):
        if not isinstance(item.get(name), str):
            return None

    keywords = item.get("keywords")
    if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
        return None

    importance = item.get("importance")
    if not _is_number(importance):
        return None

    return InsightCandidate(
        title=item["title"].strip(),
        content=item["content"].strip(),
        summary=item["summary"].strip(),
        keywords=[k.strip().lower() for k in keywords if k.strip()],
        type=item["type"].strip().lower(),
        importance=clamp_unit(importance),
    )


def parse_insights(response: Optional[str]) -> ExtractionResult:
    """
    Parse an LLM answer into insight candidates.

    The whole answer is rejected if any element fails to decode, matching
    an all-or-nothing JSON decode of the array.
    """
    data, error = parse_llm_json(response)
    if error:
        return ExtractionResult([], error)

    if not isinstance(data, list):
        return ExtractionResult([], "not_a_list")

    insights = []
    for item in data:
        insight = _decode_insight(item)
        if insight is None:
            return ExtractionResult([], "invalid_insight")
        insights.append(insight)

    return ExtractionResult(insights)


def build_extraction_prompt(conversation_text: str, max_chars: Optional[int] = None) -> str:
    """Build the extraction prompt, keeping only the head of the conversation."""
    if max_chars is None:
        max_chars = get_extraction_max_chars()
    return EXTRACTION_PROMPT.format(conversation=conversation_text[:max_chars])


def extract_insights(
    conversation_text: str,
    complete: Optional[CompleteFn] = None,
    max_chars: Optional[int] = None
) -> ExtractionResult:
    """
    Ask the LLM for the insights worth keeping from a conversation.

    Args:
        conversation_text: Raw conversation text
        complete: Completion function (defaults to the Ollama client)
        max_chars: Truncation limit for the conversation (uses config if None)

    Returns:
        ExtractionResult with the candidates, or no candidates and an error tag
    """
    complete = complete or llm_complete
    prompt = build_extraction_prompt(conversation_text, max_chars)

    response = complete(
        [{"role": "user", "text": prompt}],
        system=EXTRACTION_SYSTEM,
        temperature=EXTRACTION_TEMPERATURE,
    )
    if response is None:
        return ExtractionResult([], "llm_unavailable")

    result = parse_insights(response)
    if result.ok:
        logger.info("Extracted %d insight(s)", len(result.insights))
    else:
        logger.warning("Insight extraction failed (%s)", result.error)
    return result
