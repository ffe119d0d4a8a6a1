from __future__ import annotations

from fastapi import Depends

from cinescript.config import Settings, get_settings
from cinescript.services.gateway import GenerationGateway, LLMGenerationGateway
from cinescript.services.llm import create_llm_service
from cinescript.services.session_store import SessionStore, session_store
from cinescript.ws.manager import ConnectionManager, ws_manager


async def get_app_settings() -> Settings:
    return get_settings()


async def get_gateway(settings: Settings = Depends(get_app_settings)) -> GenerationGateway:
    return LLMGenerationGateway(create_llm_service(settings), settings)


async def get_session_store() -> SessionStore:
    return session_store


async def get_ws_manager() -> ConnectionManager:
    return ws_manager


SettingsDep = Depends(get_app_settings)
GatewayDep = Depends(get_gateway)
StoreDep = Depends(get_session_store)
WsManagerDep = Depends(get_ws_manager)
