"""Checking that the application under test answers before any browser starts."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .errors import NavigationError

LOGGER = logging.getLogger(__name__)


def check_reachable(
    base_url: str,
    *,
    timeout: float = 5.0,
    client: Optional[httpx.Client] = None,
) -> int:
    """Request ``base_url`` and return the status code.

    Raises :class:`NavigationError` when the server cannot be reached or
    answers with a server error.
    """

    owns_client = client is None
    http = client or httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        response = http.get(base_url)
    except httpx.TransportError as exc:
        raise NavigationError(base_url, f"{type(exc).__name__}: {exc}") from exc
    finally:
        if owns_client:
            http.close()
    LOGGER.info("Preflight %s answered %s", base_url, response.status_code)
    if response.status_code >= 500:
        raise NavigationError(
            base_url,
            f"server responded with {response.status_code}",
            status=response.status_code,
        )
    return response.status_code
