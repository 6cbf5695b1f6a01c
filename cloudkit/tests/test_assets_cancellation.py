"""
Cancellation — a hanging server must not hang the caller.

Both operations run inside the caller's task, so a deadline or an explicit
cancel aborts the in-flight request and surfaces a cancellation error
instead of a CloudKitError.
"""
from __future__ import annotations

import asyncio

import httpx
import pytest

from cloudkit.assets.ports import UploadFieldRequest
from cloudkit.errors import CloudKitError


pytestmark = pytest.mark.anyio("asyncio")


def _hanging_handler(started: asyncio.Event, finished: list):
    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        try:
            await asyncio.sleep(30)
        finally:
            finished.append(request.url.path)
        return httpx.Response(200, json={})

    return handler


@pytest.mark.anyio
async def test_deadline_aborts_upload_promptly(make_client):
    started = asyncio.Event()
    finished: list = []
    client = make_client(_hanging_handler(started, finished))

    loop = asyncio.get_running_loop()
    t0 = loop.time()
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(client.assets.upload("https://u.test/upload", b"abc"), timeout=0.2)

    assert loop.time() - t0 < 5
    assert started.is_set()
    # The handler was interrupted rather than left running.
    assert finished == ["/upload"]


@pytest.mark.anyio
async def test_cancel_aborts_upload_url_request(make_client):
    started = asyncio.Event()
    finished: list = []
    client = make_client(_hanging_handler(started, finished))

    task = asyncio.create_task(
        client.assets.request_upload_urls("public", [UploadFieldRequest(field_name="photo")])
    )
    await asyncio.wait_for(started.wait(), timeout=5)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await asyncio.wait_for(task, timeout=5)
    assert len(finished) == 1


@pytest.mark.anyio
async def test_cancellation_is_not_wrapped_as_cloudkit_error(make_client):
    started = asyncio.Event()
    client = make_client(_hanging_handler(started, []))

    task = asyncio.create_task(client.assets.upload("https://u.test/upload", b"abc"))
    await asyncio.wait_for(started.wait(), timeout=5)
    task.cancel()

    try:
        await task
    except asyncio.CancelledError:
        pass
    except CloudKitError:  # pragma: no cover - failure path
        pytest.fail("cancellation must not be mapped onto CloudKitError")
    assert task.cancelled()
