"""
JSON utilities for cleaning LLM responses.
"""

import json
from typing import Any, Optional, Tuple


def clean_json_response(response: str) -> str:
    """Clean LLM response by removing Markdown code fence markers.

    Args:
        response: Raw LLM response

    Returns:
        Cleaned JSON string
    """
    return response.replace("```json", "").replace("```", "").strip()


def parse_llm_json(response: Optional[str]) -> Tuple[Any, Optional[str]]:
    """Decode an LLM response as JSON after stripping code fences.

    Returns:
        Tuple of (decoded_value, None) on success or (None, error_tag) on
        failure, where error_tag is "empty_response" or "invalid_json"
    """
    if not response or not response.strip():
        return None, "empty_response"

    try:
        return json.loads(clean_json_response(response)), None
    except ValueError:
        return None, "invalid_json"
