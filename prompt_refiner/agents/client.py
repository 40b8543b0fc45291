"""Agents SDK client setup for OpenAI-compatible gateways."""

import logging

from agents import set_default_openai_api, set_default_openai_client
from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


def configure_agent_client(api_key: str | None, base_url: str | None) -> bool:
    """
    Route refiner and judge agents through the configured endpoint.

    Gateways generally expose only chat completions, so the SDK is switched
    to that API whenever a custom endpoint is used.

    Args:
        api_key: API key for the endpoint (if None, the client reads OPENAI_API_KEY)
        base_url: OpenAI-compatible endpoint; nothing is changed when None

    Returns:
        True if a custom client was installed
    """
    if not base_url:
        return False

    client = AsyncOpenAI(api_key=api_key, base_url=base_url)
    set_default_openai_client(client, use_for_tracing=False)
    set_default_openai_api("chat_completions")
    logger.info(f"Agents SDK client set to {base_url}")
    return True
