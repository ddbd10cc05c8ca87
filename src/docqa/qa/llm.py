"""LLM initialisation — single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible endpoint** — set ``LLM_BASE_URL`` (vLLM, Ollama,
   Azure proxies, …); ``ChatOpenAI`` works unchanged against it.
"""

from __future__ import annotations

import logging

from langchain_openai import ChatOpenAI

from docqa.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def get_llm(cfg: Settings | None = None) -> ChatOpenAI:
    """Return the configured chat model.

    The temperature comes from settings and defaults to ``0`` so identical
    inputs give reproducible answers.  Client-side retries are disabled:
    timeouts and retries are owned by the caller.
    """
    cfg = cfg or default_settings
    kwargs: dict = {
        "model": cfg.llm_model_name,
        "temperature": cfg.temperature,
        "max_retries": 0,
    }

    if cfg.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", cfg.llm_base_url)
        kwargs["base_url"] = cfg.llm_base_url
        # Self-hosted endpoints often need no key; LangChain requires a non-empty value.
        kwargs["api_key"] = cfg.openai_api_key or "EMPTY"
    elif cfg.openai_api_key:
        kwargs["api_key"] = cfg.openai_api_key

    return ChatOpenAI(**kwargs)
