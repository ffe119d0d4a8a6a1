from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class EditMode(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    INSERTING = "inserting"


class EditSession(BaseModel):
    """当前打开的编辑槽位。

    - EDITING: `index` 是正在重写的场景
    - INSERTING: `index` 是插入位置的前一个场景（-1 表示插到最前面）
    - `is_processing` 与模式正交；处理中不允许开始新的编辑/插入
    - `draft` 保存最后一次提交的指令，失败后用户可以直接重试
    """

    model_config = ConfigDict(frozen=True)

    mode: EditMode = EditMode.IDLE
    index: int | None = None
    is_processing: bool = False
    draft: str = ""

    @classmethod
    def idle(cls) -> EditSession:
        return cls()

    @classmethod
    def editing(cls, index: int) -> EditSession:
        return cls(mode=EditMode.EDITING, index=index)

    @classmethod
    def inserting(cls, after_index: int) -> EditSession:
        return cls(mode=EditMode.INSERTING, index=after_index)

    @property
    def is_open(self) -> bool:
        return self.mode != EditMode.IDLE

    def processing(self, draft: str | None = None) -> EditSession:
        update: dict = {"is_processing": True}
        if draft is not None:
            update["draft"] = draft
        return self.model_copy(update=update)

    def settled(self) -> EditSession:
        return self.model_copy(update={"is_processing": False})

    def same_slot(self, other: EditSession) -> bool:
        return self.mode == other.mode and self.index == other.index
