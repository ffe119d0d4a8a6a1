from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio

from tests.fakes import generation_failure, make_content


@pytest_asyncio.fixture()
async def session_id(async_client, store):
    res = await async_client.post("/api/v1/sessions")
    sid = res.json()["id"]
    store.get(sid).replace_all(make_content("A", "B", "C"))
    return sid


@pytest.mark.asyncio
async def test_edit_then_submit(async_client, session_id, ws_manager):
    res = await async_client.post(f"/api/v1/sessions/{session_id}/script/edit", json={"index": 1})
    assert res.status_code == 200
    assert res.json()["mode"] == "editing"
    assert res.json()["index"] == 1

    res = await async_client.post(f"/api/v1/sessions/{session_id}/script/submit", json={"instruction": "mưa"})
    assert res.status_code == 200
    script = [s["primary"] for s in res.json()["content"]["script"]]
    assert script == ["A", "Mới: mưa", "C"]
    assert res.json()["edit"]["mode"] == "idle"

    assert ws_manager.types() == ["edit_state_changed", "script_updated"]
    event = ws_manager.events[-1][1]
    assert event["data"]["mode"] == "editing"
    assert event["data"]["index"] == 1
    assert event["data"]["item"] == {"primary": "Mới: mưa", "secondary": "New: mưa"}


@pytest.mark.asyncio
async def test_insert_defaults_to_front(async_client, session_id):
    res = await async_client.post(f"/api/v1/sessions/{session_id}/script/insert", json={})
    assert res.json() == {"mode": "inserting", "index": -1, "is_processing": False, "draft": ""}

    res = await async_client.post(f"/api/v1/sessions/{session_id}/script/submit", json={"instruction": "mở đầu"})
    assert res.json()["content"]["script"][0]["primary"] == "Mới: mở đầu"


@pytest.mark.asyncio
async def test_edit_out_of_range(async_client, session_id):
    res = await async_client.post(f"/api/v1/sessions/{session_id}/script/edit", json={"index": 3})
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "SCENE_INDEX_OUT_OF_RANGE"


@pytest.mark.asyncio
async def test_submit_without_edit(async_client, session_id):
    res = await async_client.post(f"/api/v1/sessions/{session_id}/script/submit", json={"instruction": "x"})
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "NO_ACTIVE_EDIT"


@pytest.mark.asyncio
async def test_cancel(async_client, session_id):
    await async_client.post(f"/api/v1/sessions/{session_id}/script/edit", json={"index": 0})
    res = await async_client.post(f"/api/v1/sessions/{session_id}/script/cancel")
    assert res.json()["mode"] == "idle"


@pytest.mark.asyncio
async def test_submit_failure_keeps_draft(async_client, session_id, gateway, ws_manager):
    gateway.fail_with = generation_failure()
    await async_client.post(f"/api/v1/sessions/{session_id}/script/edit", json={"index": 2})

    res = await async_client.post(f"/api/v1/sessions/{session_id}/script/submit", json={"instruction": "thử lại"})

    assert res.status_code == 502
    event = ws_manager.events[-1][1]
    assert event["type"] == "generation_failed"
    assert event["data"]["kind"] == "scene"
    assert event["data"]["edit"] == {"mode": "editing", "index": 2, "is_processing": False, "draft": "thử lại"}

    res = await async_client.get(f"/api/v1/sessions/{session_id}")
    assert [s["primary"] for s in res.json()["content"]["script"]] == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_second_request_rejected_while_processing(async_client, session_id, gateway):
    gateway.gate = asyncio.Event()
    await async_client.post(f"/api/v1/sessions/{session_id}/script/edit", json={"index": 0})
    pending = asyncio.create_task(
        async_client.post(f"/api/v1/sessions/{session_id}/script/submit", json={"instruction": "chậm"})
    )
    await gateway.started.wait()

    res = await async_client.post(f"/api/v1/sessions/{session_id}/script/insert", json={"after_index": 0})
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "EDIT_IN_PROGRESS"

    res = await async_client.get(f"/api/v1/sessions/{session_id}")
    assert res.json()["edit"]["is_processing"] is True

    gateway.gate.set()
    res = await pending
    assert res.status_code == 200
    assert len(gateway.scene_calls) == 1
