# utils/llm.py
from functools import lru_cache
from typing import Optional
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_core.caches import InMemoryCache
from langchain_core.globals import set_llm_cache
from stockflow.config import config, Config

# Enable caching if configured
if config.ENABLE_LLM_CACHE:
    set_llm_cache(InMemoryCache())


@lru_cache(maxsize=10)
def get_llm(
    model: str = config.GEMINI_FLASH,
    temperature: float = config.TEMPERATURE,
    max_tokens: Optional[int] = None
) -> ChatGoogleGenerativeAI:
    """
    Get a cached LLM instance for the report discussion chains.

    Raises ConfigurationError when GOOGLE_API_KEY is not set.
    """
    return ChatGoogleGenerativeAI(
        model=model,
        api_key=Config.require_google_api_key(),
        temperature=temperature,
        max_tokens=max_tokens or config.MAX_TOKENS,
        timeout=config.ASYNC_TIMEOUT_SECONDS
    )
