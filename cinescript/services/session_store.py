"""工作区管理器 - 进程内保存每个会话的编排器（不做持久化）

会话数有上限；超过上限时淘汰最久未访问、且没有生成请求在进行中的会话。
"""
from __future__ import annotations

import logging
import uuid
from collections import OrderedDict

from cinescript.config import get_settings
from cinescript.editing.orchestrator import EditOrchestrator
from cinescript.exceptions import SessionNotFound
from cinescript.services.gateway import GenerationGateway

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, max_sessions: int = 200) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        # session_id -> orchestrator，按最近访问排序（最久未访问在前）
        self._sessions: OrderedDict[str, EditOrchestrator] = OrderedDict()

    def create(self, gateway: GenerationGateway) -> tuple[str, EditOrchestrator]:
        self._evict_if_full()
        session_id = uuid.uuid4().hex
        orchestrator = EditOrchestrator(gateway)
        self._sessions[session_id] = orchestrator
        return session_id, orchestrator

    def get(self, session_id: str) -> EditOrchestrator:
        orchestrator = self._sessions.get(session_id)
        if orchestrator is None:
            raise SessionNotFound(f"Session {session_id} not found", details={"session_id": session_id})
        self._sessions.move_to_end(session_id)
        return orchestrator

    def remove(self, session_id: str) -> bool:
        """移除会话，返回是否存在"""
        return self._sessions.pop(session_id, None) is not None

    def _evict_if_full(self) -> None:
        while len(self._sessions) >= self.max_sessions:
            victim = next(
                (sid for sid, orch in self._sessions.items() if not orch.is_processing),
                None,
            )
            if victim is None:
                # 全部在生成中：暂时超出上限，不中断进行中的请求
                logger.warning(f"Session limit {self.max_sessions} exceeded: every session is processing")
                return
            del self._sessions[victim]
            logger.info(f"Evicted idle session {victim} (limit {self.max_sessions})")

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


# 全局单例
session_store = SessionStore(get_settings().max_sessions)
