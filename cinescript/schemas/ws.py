from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


WsEventType = Literal[
    "connected",
    "pong",
    "echo",
    "content_replaced",    # 批量生成完成，内容整体替换
    "script_updated",      # 单场景重写/插入完成
    "roster_updated",      # 角色列表变化
    "edit_state_changed",  # 编辑/插入槽位变化
    "generation_failed",   # 生成失败（编辑状态已恢复）
    "error",
]


class WsEvent(BaseModel):
    type: WsEventType
    data: dict[str, Any] = {}
