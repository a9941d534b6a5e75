"""
Sidecar readiness polling.

Probes the sidecar's health endpoint with HTTP GET on a fixed interval until
it answers with a 2xx status. There is no backoff and no jitter.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

import httpx

from .errors import ReadinessTimeout

logger = logging.getLogger(__name__)

# Upper bound for a single probe; the deadline may cut it shorter.
PROBE_TIMEOUT = 5.0


class ReadinessState(Enum):
    WAITING = "waiting"
    READY = "ready"
    PROBE_FAILED = "probe_failed"


async def probe(client: httpx.AsyncClient, endpoint: str, timeout: float = PROBE_TIMEOUT) -> ReadinessState:
    """Issue a single readiness probe. The response body is ignored."""
    try:
        response = await client.get(endpoint, timeout=timeout)
    except httpx.HTTPError as e:
        logger.debug(f"Readiness probe to {endpoint} failed: {e!r}")
        return ReadinessState.PROBE_FAILED

    if response.is_success:
        return ReadinessState.READY

    logger.debug(f"Readiness probe to {endpoint} returned {response.status_code}")
    return ReadinessState.WAITING


async def wait_ready(
    endpoint: str,
    interval: float,
    deadline: Optional[float] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> ReadinessState:
    """
    Block until the sidecar at ``endpoint`` reports ready.

    Probes are spaced at least ``interval`` seconds apart. ``deadline`` is a
    duration in seconds counted from the call; once it elapses a
    ReadinessTimeout is raised and no further probes are sent.

    Without a deadline this waits indefinitely: a sidecar that never comes up
    keeps the workload from starting for as long as the container lives.

    Returns:
        ReadinessState.READY

    Raises:
        ReadinessTimeout: if the deadline elapsed first.
    """
    if client is None:
        async with httpx.AsyncClient() as client:
            return await _poll(client, endpoint, interval, deadline)
    return await _poll(client, endpoint, interval, deadline)


async def _poll(
    client: httpx.AsyncClient,
    endpoint: str,
    interval: float,
    deadline: Optional[float],
) -> ReadinessState:
    loop = asyncio.get_running_loop()
    expires_at = loop.time() + deadline if deadline is not None else None
    attempts = 0

    while True:
        timeout = PROBE_TIMEOUT
        if expires_at is not None:
            timeout = min(timeout, max(expires_at - loop.time(), 0.0))

        attempts += 1
        if expires_at is None:
            state = await probe(client, endpoint, timeout)
        else:
            # httpx applies ``timeout`` per phase; bound the whole request here
            try:
                async with asyncio.timeout_at(expires_at):
                    state = await probe(client, endpoint, timeout)
            except TimeoutError:
                logger.debug(f"Readiness probe to {endpoint} cut off at the deadline")
                state = ReadinessState.PROBE_FAILED
        if state is ReadinessState.READY:
            logger.info(f"Sidecar at {endpoint} is ready after {attempts} probe(s)")
            return state

        if expires_at is not None:
            remaining = expires_at - loop.time()
            if remaining <= interval:
                # The next probe would land on or past the deadline
                await asyncio.sleep(max(remaining, 0.0))
                logger.error(f"Sidecar at {endpoint} did not become ready within {deadline:g}s")
                raise ReadinessTimeout(endpoint, deadline, attempts)

        logger.info(f"Sidecar not ready ({state.value}), retrying in {interval:g}s")
        await asyncio.sleep(interval)
