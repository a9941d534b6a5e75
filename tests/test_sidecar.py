"""Tests for the sidecar shutdown request."""

import httpx
import pytest
from conftest import FakeSidecar

from meshinit.errors import TerminationError
from meshinit.sidecar import terminate

URL = "http://127.0.0.1:15021/quitquitquit"


@pytest.mark.asyncio
async def test_shutdown_request_is_sent_once():
    sidecar = FakeSidecar(shutdown=200)
    async with sidecar.client() as client:
        await terminate(URL, client=client)

    assert len(sidecar.requests) == 1
    assert sidecar.shutdowns[0].method == "POST"
    assert str(sidecar.shutdowns[0].url) == URL


@pytest.mark.asyncio
async def test_method_is_configurable():
    sidecar = FakeSidecar(shutdown=200)
    async with sidecar.client() as client:
        await terminate(URL, method="GET", client=client)

    assert sidecar.shutdowns[0].method == "GET"


@pytest.mark.asyncio
async def test_error_status_raises_without_retry():
    sidecar = FakeSidecar(shutdown=500)
    async with sidecar.client() as client:
        with pytest.raises(TerminationError) as exc_info:
            await terminate(URL, client=client)

    assert exc_info.value.status_code == 500
    assert exc_info.value.endpoint == URL
    assert exc_info.value.result is None
    assert len(sidecar.requests) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ReadTimeout])
async def test_transport_failure_raises(error):
    sidecar = FakeSidecar(shutdown=error)
    async with sidecar.client() as client:
        with pytest.raises(TerminationError) as exc_info:
            await terminate(URL, client=client)

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, error)
    assert len(sidecar.requests) == 1
