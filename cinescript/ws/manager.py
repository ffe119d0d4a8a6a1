"""工作区事件推送。

每个工作区（session_id）可以有多个订阅者；状态变化事件在这里组装成
`WsEvent` 后广播，路由层只负责告诉管理器“发生了什么”。
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from cinescript.editing.state import EditMode, EditSession
from cinescript.models.content import BilingualItem, ContentAggregate
from cinescript.models.roster import CharacterRoster
from cinescript.schemas.session import CharacterProfileRead, EditSessionRead
from cinescript.schemas.ws import WsEvent, WsEventType

logger = logging.getLogger(__name__)


def _edit_data(session: EditSession) -> dict[str, Any]:
    return EditSessionRead.model_validate(session).model_dump(mode="json")


class ConnectionManager:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[WebSocket]] = {}

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, ()))

    async def subscribe(self, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._subscribers.setdefault(session_id, []).append(websocket)
        await self.reply(websocket, "connected", {"session_id": session_id})

    def unsubscribe(self, session_id: str, websocket: WebSocket) -> None:
        subscribers = self._subscribers.get(session_id)
        if not subscribers:
            return
        if websocket in subscribers:
            subscribers.remove(websocket)
        if not subscribers:
            del self._subscribers[session_id]

    def drop_session(self, session_id: str) -> None:
        """工作区被删除后不再推送（连接由客户端自行关闭）"""
        self._subscribers.pop(session_id, None)

    async def reply(self, websocket: WebSocket, event_type: WsEventType, data: dict[str, Any] | None = None) -> None:
        """只发给一个连接（connected / pong / echo / error）"""
        event = WsEvent(type=event_type, data=data or {})
        await websocket.send_json(event.model_dump(mode="json"))

    async def broadcast(self, session_id: str, event_type: WsEventType, data: dict[str, Any] | None = None) -> None:
        payload = WsEvent(type=event_type, data=data or {}).model_dump(mode="json")
        for ws in list(self._subscribers.get(session_id, ())):
            if ws.client_state != WebSocketState.CONNECTED:
                self.unsubscribe(session_id, ws)
                continue
            try:
                await ws.send_json(payload)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.info(f"Dropping subscriber of session {session_id}: {e!r}")
                self.unsubscribe(session_id, ws)

    # --- 状态事件 ---

    async def content_replaced(self, session_id: str, content: ContentAggregate) -> None:
        await self.broadcast(session_id, "content_replaced", {"content": content.model_dump(mode="json")})

    async def script_updated(
        self,
        session_id: str,
        mode: EditMode,
        index: int | None,
        item: BilingualItem,
        script: tuple[BilingualItem, ...],
    ) -> None:
        await self.broadcast(
            session_id,
            "script_updated",
            {
                "mode": mode.value,
                "index": index,
                "item": item.model_dump(),
                "script": [s.model_dump() for s in script],
            },
        )

    async def roster_updated(self, session_id: str, roster: CharacterRoster) -> None:
        profiles = [CharacterProfileRead.model_validate(p).model_dump() for p in roster.profiles]
        await self.broadcast(session_id, "roster_updated", {"roster": profiles})

    async def edit_state_changed(self, session_id: str, session: EditSession) -> None:
        await self.broadcast(session_id, "edit_state_changed", {"edit": _edit_data(session)})

    async def generation_failed(
        self,
        session_id: str,
        kind: str,
        message: str,
        session: EditSession | None = None,
    ) -> None:
        data: dict[str, Any] = {"kind": kind, "message": message}
        if session is not None:
            data["edit"] = _edit_data(session)
        await self.broadcast(session_id, "generation_failed", data)


ws_manager = ConnectionManager()
