"""
LLM text completion for Memory Palace.

Provides the default completion function, backed by the Ollama chat API.
Every failure (Ollama down, timeout, non-2xx, malformed body, empty answer)
comes back as None so callers can treat it like an unusable answer.
"""

import logging
from typing import Dict, List, Optional

import requests

from memory_palace.config import (
    get_ollama_url,
    get_llm_model,
    get_llm_timeout,
    PREFERRED_LLM_MODELS,
)


logger = logging.getLogger(__name__)

# Module-level cache for detected LLM model
_detected_llm_model: Optional[str] = None


def _detect_llm_model() -> Optional[str]:
    """
    Auto-detect an available LLM model from Ollama.

    Returns the first model from the preferred list that Ollama has, or the
    first non-embedding model when none of them is present.

    Returns:
        Model name if found, None if Ollama unavailable or no suitable model
    """
    global _detected_llm_model

    if _detected_llm_model is not None:
        return _detected_llm_model

    try:
        response = requests.get(f"{get_ollama_url()}/api/tags", timeout=5)
        response.raise_for_status()
        data = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning("Could not list Ollama models: %s", e)
        return None

    available_models = [m.get("name", "") for m in data.get("models", [])]

    for preferred in PREFERRED_LLM_MODELS:
        if preferred in available_models:
            _detected_llm_model = preferred
            return preferred

        # Also check without tag suffix
        base_name = preferred.split(":")[0]
        for available in available_models:
            if available.startswith(base_name):
                _detected_llm_model = available
                return available

    for model in available_models:
        # Skip embedding-specific models
        if "embed" in model.lower():
            continue
        _detected_llm_model = model
        return model

    return None


def get_active_llm_model() -> Optional[str]:
    """
    Get the LLM model to use, either configured or auto-detected.

    Returns:
        Model name to use, or None if none available
    """
    configured = get_llm_model()
    if configured:
        return configured
    return _detect_llm_model()


def complete(
    messages: List[Dict[str, str]],
    system: Optional[str] = None,
    temperature: float = 0.7,
    model: Optional[str] = None,
    timeout: Optional[float] = None
) -> Optional[str]:
    """
    Generate a completion for a list of role-tagged messages.

    Args:
        messages: Ordered [{"role": "user"|"assistant", "text": ...}] messages
        system: Optional system instruction
        temperature: Sampling temperature
        model: Model to use (uses config/auto-detected if not specified)
        timeout: Per-call timeout in seconds (uses config if not specified)

    Returns:
        Completion text, or None on any failure
    """
    if model is None:
        model = get_active_llm_model()

    if model is None:
        logger.warning("No LLM model available for completion")
        return None

    chat_messages = []
    if system:
        chat_messages.append({"role": "system", "content": system})
    for message in messages:
        chat_messages.append({"role": message.get("role", "user"), "content": message["text"]})

    request_body = {
        "model": model,
        "messages": chat_messages,
        "stream": False,
        "options": {"temperature": temperature},
    }

    try:
        response = requests.post(
            f"{get_ollama_url()}/api/chat",
            json=request_body,
            timeout=timeout if timeout is not None else get_llm_timeout()
        )
        response.raise_for_status()
        content = response.json()["message"]["content"]
    except requests.exceptions.RequestException as e:
        logger.warning("LLM completion failed: %s", e)
        return None
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("LLM response parsing failed: %s", e)
        return None

    if not content or not content.strip():
        logger.info("LLM returned an empty completion")
        return None
    return content


def is_llm_available() -> bool:
    """
    Check if an LLM model is available for completion.

    Returns:
        True if a model is available, False otherwise
    """
    return get_active_llm_model() is not None


def clear_model_cache() -> None:
    """Clear the detected model cache, forcing re-detection on next call."""
    global _detected_llm_model
    _detected_llm_model = None
