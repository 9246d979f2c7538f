from __future__ import annotations

from functools import lru_cache
from typing import Optional

from loguru import logger
from langchain_openai import ChatOpenAI

from .config import LLMSettings


@lru_cache(maxsize=8)
def get_chat_model(model: Optional[str] = None, temperature: Optional[float] = None) -> Optional[ChatOpenAI]:
    """Return a cached LangChain ChatOpenAI client pointed at Perplexity.

    Env vars:
      - PERPLEXITY_API_KEY (required)
      - PERPLEXITY_MODEL (optional; default: sonar)
      - PERPLEXITY_BASE_URL, PERPLEXITY_TEMPERATURE, PERPLEXITY_MAX_TOKENS, PERPLEXITY_TIMEOUT
    """
    settings = LLMSettings.from_env()
    if not settings.api_key:
        logger.error("PERPLEXITY_API_KEY not set; cannot initialize chat client")
        return None
    mdl = model or settings.model
    temp = settings.temperature if temperature is None else temperature
    logger.debug(f"Initializing Perplexity chat model={mdl} temperature={temp} base_url={settings.base_url}")
    return ChatOpenAI(
        model=mdl,
        temperature=temp,
        api_key=settings.api_key,
        base_url=settings.base_url,
        max_tokens=settings.max_tokens,
        timeout=settings.timeout,
    )
