from __future__ import annotations

import logging

from fastapi import APIRouter

from cinescript.api.deps import StoreDep, WsManagerDep
from cinescript.exceptions import GenerationFailure
from cinescript.schemas.session import EditSessionRead, EditStart, InsertStart, SessionRead, SubmitRequest
from cinescript.services.session_store import SessionStore
from cinescript.ws.manager import ConnectionManager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/{session_id}/script/edit", response_model=EditSessionRead)
async def start_edit(
    session_id: str,
    payload: EditStart,
    store: SessionStore = StoreDep,
    ws: ConnectionManager = WsManagerDep,
):
    orchestrator = store.get(session_id)
    orchestrator.start_edit(payload.index)
    await ws.edit_state_changed(session_id, orchestrator.session)
    return EditSessionRead.model_validate(orchestrator.session)


@router.post("/{session_id}/script/insert", response_model=EditSessionRead)
async def start_insert(
    session_id: str,
    payload: InsertStart,
    store: SessionStore = StoreDep,
    ws: ConnectionManager = WsManagerDep,
):
    orchestrator = store.get(session_id)
    orchestrator.start_insert(payload.after_index)
    await ws.edit_state_changed(session_id, orchestrator.session)
    return EditSessionRead.model_validate(orchestrator.session)


@router.post("/{session_id}/script/cancel", response_model=EditSessionRead)
async def cancel_edit(
    session_id: str,
    store: SessionStore = StoreDep,
    ws: ConnectionManager = WsManagerDep,
):
    orchestrator = store.get(session_id)
    orchestrator.cancel()
    await ws.edit_state_changed(session_id, orchestrator.session)
    return EditSessionRead.model_validate(orchestrator.session)


@router.post("/{session_id}/script/submit", response_model=SessionRead)
async def submit_scene(
    session_id: str,
    payload: SubmitRequest,
    store: SessionStore = StoreDep,
    ws: ConnectionManager = WsManagerDep,
):
    """重写或插入一个场景；请求会一直等到生成完成。"""
    orchestrator = store.get(session_id)
    slot = orchestrator.session
    try:
        item = await orchestrator.submit(payload.instruction)
    except GenerationFailure as e:
        logger.warning(f"Scene generation failed for session {session_id}: {e.message}")
        await ws.generation_failed(session_id, "scene", e.message, orchestrator.session)
        raise

    await ws.script_updated(session_id, slot.mode, slot.index, item, orchestrator.content.script)
    return SessionRead.from_orchestrator(session_id, orchestrator)
