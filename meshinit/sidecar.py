"""
Sidecar shutdown through its admin API.

Sends one shutdown request to the sidecar's local control endpoint (Istio's
pilot-agent ``POST /quitquitquit`` by default). The request is not retried.
"""

import logging
from typing import Optional

import httpx

from .errors import TerminationError

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 10.0


async def terminate(
    endpoint: str,
    *,
    method: str = "POST",
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    """
    Ask the sidecar to shut down.

    Raises:
        TerminationError: on a transport failure or a non-2xx response.
    """
    if client is None:
        async with httpx.AsyncClient() as client:
            return await _send(client, endpoint, method)
    return await _send(client, endpoint, method)


async def _send(client: httpx.AsyncClient, endpoint: str, method: str) -> None:
    try:
        response = await client.request(method, endpoint, timeout=SHUTDOWN_TIMEOUT)
    except httpx.ConnectError as e:
        raise TerminationError(endpoint, f"could not connect: {e}") from e
    except httpx.HTTPError as e:
        raise TerminationError(endpoint, repr(e)) from e

    if not response.is_success:
        raise TerminationError(
            endpoint,
            f"{response.status_code} {response.text[:200]}".strip(),
            status_code=response.status_code,
        )

    logger.info(f"Sidecar accepted shutdown request ({response.status_code})")
