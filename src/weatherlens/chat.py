"""Conversational helper backed by the /api/nasa endpoint."""

import re
import unicodedata

from weatherlens.api import WeatherLensApi

NO_RESPONSE = "No response"
MAX_INPUT_CHARS = 2000


def _clean_input(text: str) -> str | None:
    """Normalize user text; None when there is nothing to send."""
    if not text or not text.strip():
        return None
    text = unicodedata.normalize("NFKC", text)
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    return text.strip()[:MAX_INPUT_CHARS] or None


async def ask(api: WeatherLensApi, text: str) -> str | None:
    """Send one message and return the reply text.

    Returns:
        None for blank input (nothing is sent), otherwise the ``response``
        field or "No response" when the field is missing.

    Raises:
        ApiError: When the endpoint cannot be reached or answers non-2xx.
    """
    cleaned = _clean_input(text)
    if cleaned is None:
        return None
    body = await api.chat(cleaned)
    reply = body.get("response")
    return str(reply) if reply else NO_RESPONSE
