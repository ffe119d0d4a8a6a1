from __future__ import annotations

import logging
from typing import Literal
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import PlainTextResponse

from cinescript.api.deps import GatewayDep, StoreDep, WsManagerDep
from cinescript.exceptions import GenerationFailure, InvalidInput
from cinescript.models.content import Language
from cinescript.schemas.session import (
    CharacterSheetRead,
    GenerateRequest,
    OptionsUpdate,
    SectionRead,
    SessionRead,
)
from cinescript.services.character_text import split_character_text
from cinescript.services.export import export_filename, export_script, join_section
from cinescript.services.gateway import GenerationGateway
from cinescript.services.scene_lines import split_scene_lines
from cinescript.services.session_store import SessionStore
from cinescript.ws.manager import ConnectionManager

router = APIRouter()
logger = logging.getLogger(__name__)


def _resolve_lines(payload: GenerateRequest) -> list[str]:
    if payload.lines is not None:
        lines = [line for line in payload.lines if line.strip()]
        if not lines:
            raise InvalidInput("Scene list must not be empty")
        return lines
    if payload.text is not None:
        return split_scene_lines(payload.text)
    if payload.idea is not None and payload.idea.strip():
        return [payload.idea]
    raise InvalidInput("Provide one of `lines`, `text` or `idea`")


@router.post("", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
async def create_session(
    store: SessionStore = StoreDep,
    gateway: GenerationGateway = GatewayDep,
):
    session_id, orchestrator = store.create(gateway)
    logger.info(f"Session created: {session_id}")
    return SessionRead.from_orchestrator(session_id, orchestrator)


@router.get("/{session_id}", response_model=SessionRead)
async def get_session(session_id: str, store: SessionStore = StoreDep):
    return SessionRead.from_orchestrator(session_id, store.get(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    store: SessionStore = StoreDep,
    ws: ConnectionManager = WsManagerDep,
):
    if not store.remove(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    ws.drop_session(session_id)
    return None


@router.put("/{session_id}/options", response_model=SessionRead)
async def update_options(session_id: str, payload: OptionsUpdate, store: SessionStore = StoreDep):
    orchestrator = store.get(session_id)
    orchestrator.set_options(style=payload.style, dialogue=payload.dialogue)
    return SessionRead.from_orchestrator(session_id, orchestrator)


@router.post("/{session_id}/generate", response_model=SessionRead)
async def generate_content(
    session_id: str,
    payload: GenerateRequest,
    store: SessionStore = StoreDep,
    ws: ConnectionManager = WsManagerDep,
):
    orchestrator = store.get(session_id)
    lines = _resolve_lines(payload)
    try:
        content = await orchestrator.generate_bulk(lines)
    except GenerationFailure as e:
        await ws.generation_failed(session_id, "bulk", e.message)
        raise

    await ws.content_replaced(session_id, content)
    return SessionRead.from_orchestrator(session_id, orchestrator)


@router.get("/{session_id}/export")
async def export_session_script(
    session_id: str,
    lang: Language = Language.VI,
    store: SessionStore = StoreDep,
):
    content = store.get(session_id).content
    if not content.script:
        raise HTTPException(status_code=404, detail="Script is empty")
    filename = export_filename(content.title)
    return PlainTextResponse(
        export_script(content.script, lang),
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


@router.get("/{session_id}/sections/{section}", response_model=SectionRead)
async def get_section_text(
    session_id: str,
    section: Literal["context", "characters", "script"],
    lang: Language = Language.VI,
    store: SessionStore = StoreDep,
):
    items = getattr(store.get(session_id).content, section)
    return SectionRead(section=section, language=lang, count=len(items), text=join_section(items, lang))


@router.get("/{session_id}/characters/sheet", response_model=list[CharacterSheetRead])
async def get_character_sheet(
    session_id: str,
    lang: Language = Language.VI,
    store: SessionStore = StoreDep,
):
    """生成的角色描述拆分为名字 + 描述（便于单独复制名字）"""
    content = store.get(session_id).content
    return [
        CharacterSheetRead(**split_character_text(item.text(lang))._asdict())
        for item in content.characters
    ]
