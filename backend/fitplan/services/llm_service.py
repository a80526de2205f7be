import json
import logging
import re
from typing import Any, Optional

# LangChain Imports
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from fitplan.config import LLM_PROVIDER, LLM_API_KEY, LLM_MODEL as OVERRIDE_MODEL, OLLAMA_URL
from fitplan.exceptions import CollaboratorFailure

logger = logging.getLogger(__name__)

# If LLM_MODEL is set in env, it overrides everything.
DEFAULT_MODELS = {
    "ollama": "gpt-oss:120b-cloud",
    "openrouter": "google/gemini-2.0-flash-001",
    "openai": "gpt-4o",
}

MODEL_NAME = OVERRIDE_MODEL if OVERRIDE_MODEL else DEFAULT_MODELS.get(LLM_PROVIDER, "gpt-4o-mini")

# Base URLs for paid providers
PROVIDER_URLS = {
    "openrouter": "https://openrouter.ai/api/v1",
    "openai": None,  # Uses default OpenAI URL
}


def get_llm(temperature: float = 0.2, max_tokens: int = 4000):
    """
    Factory function to get a configured LangChain Chat Model instance.
    Supports: Ollama (Local), OpenRouter, OpenAI
    """
    if LLM_PROVIDER in ["openrouter", "openai"]:
        if not LLM_API_KEY:
            logger.error(f"[LLM Service] Missing API Key for provider {LLM_PROVIDER}")

        return ChatOpenAI(
            model=MODEL_NAME,
            api_key=LLM_API_KEY,
            base_url=PROVIDER_URLS.get(LLM_PROVIDER),
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=60.0,
        )

    if LLM_PROVIDER != "ollama":
        logger.warning(f"[LLM Service] Unknown provider '{LLM_PROVIDER}'. Defaulting to Ollama.")

    return ChatOllama(
        base_url=OLLAMA_URL,
        model=MODEL_NAME,
        temperature=temperature,
        num_predict=max_tokens,
        timeout=120.0,
    )


def call_llm_json(
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.1,
    max_tokens: int = 8000,
) -> Any:
    """
    Executes a structured JSON request and returns the parsed document
    (object or array). Any transport, quota or parse problem is raised as
    CollaboratorFailure; callers must not persist anything when it is.
    """
    logger.info(f"[LLM Service] Calling Model (JSON): {MODEL_NAME}")

    try:
        llm = get_llm(temperature=temperature, max_tokens=max_tokens)
        response = llm.invoke([
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ])
    except Exception as e:
        logger.error(f"[LLM Service] JSON Call Error: {e}")
        raise CollaboratorFailure("AI personalization failed. Please try again.") from e

    content = response.content if isinstance(response.content, str) else ""
    if not content.strip():
        logger.error("[LLM Service] Empty content received.")
        raise CollaboratorFailure("AI personalization returned an empty response.")

    _log_token_usage(getattr(response, "response_metadata", None))

    parsed = _parse_json_from_text(content)
    if parsed is None:
        raise CollaboratorFailure("AI personalization returned an unreadable response.")
    return parsed


def _log_token_usage(metadata: Optional[dict]):
    if not metadata:
        return
    # Ollama returns tokens directly in metadata, not in nested 'usage'
    input_tokens = metadata.get("prompt_eval_count") or 0
    output_tokens = metadata.get("eval_count") or 0

    # Fallback to nested 'usage' dict (for OpenAI-compatible providers)
    if input_tokens == 0 and output_tokens == 0:
        usage = metadata.get("token_usage") or metadata.get("usage") or {}
        input_tokens = usage.get("prompt_tokens") or usage.get("input_tokens") or 0
        output_tokens = usage.get("completion_tokens") or usage.get("output_tokens") or 0

    logger.info(f"[LLM Stats] Input: {input_tokens}, Output: {output_tokens}, Total: {input_tokens + output_tokens}")


def _parse_json_from_text(text: str) -> Optional[Any]:
    """
    Robust JSON parser: strips markdown fences, cuts the outermost array or
    object, and retries once after repairing trailing commas and single quotes.
    """
    cleaned_text = (text or "").strip()

    # 1. Strip Markdown Code Blocks
    if "```json" in cleaned_text:
        parts = cleaned_text.split("```json")
        if len(parts) > 1:
            cleaned_text = parts[1].split("```")[0].strip()
    elif "```" in cleaned_text:
        cleaned_text = cleaned_text.replace("```", "").strip()

    # 2. Cut to the outermost container, whichever opens first
    starts = [i for i in (cleaned_text.find("["), cleaned_text.find("{")) if i != -1]
    if starts:
        start_idx = min(starts)
        closer = "]" if cleaned_text[start_idx] == "[" else "}"
        end_idx = cleaned_text.rfind(closer)
        if end_idx > start_idx:
            cleaned_text = cleaned_text[start_idx:end_idx + 1]

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        logger.warning(f"[LLM Service] Initial JSON parse failed: {e}. Attempting repair...")

    repaired_text = re.sub(r",\s*}", "}", cleaned_text)
    repaired_text = re.sub(r",\s*]", "]", repaired_text)
    repaired_text = re.sub(r"(?<=[{,\[])\s*'([^']+)'\s*:", r'"\1":', repaired_text)

    try:
        return json.loads(repaired_text)
    except json.JSONDecodeError:
        logger.error("[LLM Service] JSON repair failed")
        return None
