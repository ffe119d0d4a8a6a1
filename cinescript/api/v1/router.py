from fastapi import APIRouter

from cinescript.api.v1.routes.characters import router as characters_router
from cinescript.api.v1.routes.script import router as script_router
from cinescript.api.v1.routes.sessions import router as sessions_router

api_router = APIRouter()
api_router.include_router(sessions_router, prefix="/sessions", tags=["sessions"])
api_router.include_router(characters_router, prefix="/sessions", tags=["characters"])
api_router.include_router(script_router, prefix="/sessions", tags=["script"])
