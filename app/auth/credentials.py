"""Access credential discovery and resolution for the review query service."""

import re
from typing import Any, Dict, Iterable, Optional
import structlog

from app.config import settings

logger = structlog.get_logger(__name__)

# AWS AppSync API key format
API_KEY_PATTERN = re.compile(r"[\"']?(da2-[a-z0-9]+)[\"']?", re.IGNORECASE)


def find_api_key_in_scripts(script_texts: Iterable[str]) -> Optional[str]:
    """
    Scan inline script contents for an AppSync API key.

    Args:
        script_texts: Contents of every <script> element, in document order

    Returns:
        First key found, or None
    """
    for text in script_texts:
        if not text:
            continue
        match = API_KEY_PATTERN.search(text)
        if match:
            return match.group(1)
    return None


def find_api_key_in_runtime_config(next_data: Dict[str, Any]) -> Optional[str]:
    """Read an explicit apiKey from the runtime configuration embedded in __NEXT_DATA__."""
    runtime_config = next_data.get("runtimeConfig")
    if not isinstance(runtime_config, dict):
        page_props = (next_data.get("props") or {}).get("pageProps") or {}
        runtime_config = page_props.get("runtimeConfig")

    if isinstance(runtime_config, dict):
        api_key = runtime_config.get("apiKey")
        if isinstance(api_key, str) and api_key:
            return api_key
    return None


def extract_api_key(script_texts: Iterable[str], next_data: Dict[str, Any]) -> Optional[str]:
    """
    Recover the API key from already-fetched page content.

    Inline scripts are searched first, then the runtime configuration.
    """
    api_key = find_api_key_in_scripts(script_texts)
    if api_key:
        logger.debug("api_key_found", source="inline_script")
        return api_key

    api_key = find_api_key_in_runtime_config(next_data)
    if api_key:
        logger.debug("api_key_found", source="runtime_config")
    return api_key


def resolve_api_key(
    extracted: Optional[str] = None,
    supplied: Optional[str] = None,
    default: Optional[str] = None,
) -> str:
    """
    Pick the API key to use: extracted > caller-supplied > configured default.

    Args:
        extracted: Key recovered from page content
        supplied: Key the caller echoed back from an earlier response
        default: Configured fallback (defaults to settings.fallback_api_key)

    Returns:
        API key
    """
    if extracted:
        return extracted
    if supplied:
        return supplied

    logger.info("using_fallback_api_key")
    return default or settings.fallback_api_key
