from __future__ import annotations

import logging

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.websockets import WebSocketDisconnect

from cinescript.api.deps import StoreDep, WsManagerDep
from cinescript.api.v1.router import api_router
from cinescript.config import get_settings
from cinescript.exceptions import AppException
from cinescript.services.session_store import SessionStore
from cinescript.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.getLogger("cinescript").setLevel(settings.log_level.upper())

    app = FastAPI(title=settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    # 全局异常处理器
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        """处理自定义应用异常"""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            f"AppException: {exc.code} - {exc.message}",
            extra={
                "code": exc.code,
                "status_code": exc.status_code,
                "details": exc.details,
                "path": request.url.path,
                "method": request.method,
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """处理未捕获的异常"""
        logger.exception(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )
        # 开发环境返回详细错误，生产环境只返回友好消息
        details = {"error": str(exc)} if settings.environment in ("dev", "development") else {}
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "服务器内部错误，请稍后重试",
                    "details": details,
                }
            },
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.websocket("/ws/sessions/{session_id}")
    async def ws_sessions(
        websocket: WebSocket,
        session_id: str,
        store: SessionStore = StoreDep,
        manager: ConnectionManager = WsManagerDep,
    ):
        if session_id not in store:
            await websocket.close(code=4404)
            return

        try:
            await manager.subscribe(session_id, websocket)
            while True:
                try:
                    msg = await websocket.receive_json()
                except WebSocketDisconnect:
                    logger.info(f"WebSocket disconnected for session {session_id}")
                    break
                except ValueError:
                    await manager.reply(
                        websocket,
                        "error",
                        {"code": "WS_MESSAGE_ERROR", "message": "消息不是有效的 JSON"},
                    )
                    continue
                msg_type = msg.get("type") if isinstance(msg, dict) else None
                if msg_type == "ping":
                    await manager.reply(websocket, "pong")
                elif msg_type == "echo":
                    data = msg.get("data")
                    if not isinstance(data, dict):
                        data = {"value": data}
                    await manager.reply(websocket, "echo", data)
        finally:
            manager.unsubscribe(session_id, websocket)

    return app


app = create_app()
