from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from cinescript.api.deps import StoreDep, WsManagerDep
from cinescript.schemas.session import CharacterProfileRead, CharacterSave
from cinescript.services.session_store import SessionStore
from cinescript.ws.manager import ConnectionManager

router = APIRouter()


@router.get("/{session_id}/roster", response_model=list[CharacterProfileRead])
async def list_characters(session_id: str, store: SessionStore = StoreDep):
    roster = store.get(session_id).roster
    return [CharacterProfileRead.model_validate(p) for p in roster.profiles]


@router.post("/{session_id}/roster", response_model=CharacterProfileRead, status_code=status.HTTP_201_CREATED)
async def add_character(
    session_id: str,
    store: SessionStore = StoreDep,
    ws: ConnectionManager = WsManagerDep,
):
    orchestrator = store.get(session_id)
    profile = orchestrator.add_character()
    await ws.roster_updated(session_id, orchestrator.roster)
    return CharacterProfileRead.model_validate(profile)


@router.put("/{session_id}/roster/{character_id}", response_model=CharacterProfileRead)
async def save_character(
    session_id: str,
    character_id: str,
    payload: CharacterSave,
    store: SessionStore = StoreDep,
    ws: ConnectionManager = WsManagerDep,
):
    orchestrator = store.get(session_id)
    if orchestrator.roster.get(character_id) is None:
        raise HTTPException(status_code=404, detail="Character not found")

    roster = orchestrator.save_character(character_id, payload.name, payload.image)
    await ws.roster_updated(session_id, roster)
    return CharacterProfileRead.model_validate(roster.get(character_id))


@router.delete("/{session_id}/roster/{character_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_character(
    session_id: str,
    character_id: str,
    store: SessionStore = StoreDep,
    ws: ConnectionManager = WsManagerDep,
):
    orchestrator = store.get(session_id)
    if orchestrator.roster.get(character_id) is None:
        raise HTTPException(status_code=404, detail="Character not found")

    roster = orchestrator.remove_character(character_id)
    await ws.roster_updated(session_id, roster)
    return None
