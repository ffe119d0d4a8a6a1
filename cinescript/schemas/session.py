from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from cinescript.editing.orchestrator import EditOrchestrator
from cinescript.editing.state import EditMode
from cinescript.models.content import ContentAggregate, DialogueOption, FilmStyle, Language


class OptionsUpdate(BaseModel):
    style: FilmStyle | None = None
    dialogue: DialogueOption | None = None


class GenerateRequest(BaseModel):
    """三选一：场景列表 / 上传文件的原始文本 / 单个创意"""

    lines: list[str] | None = None
    text: str | None = None
    idea: str | None = None


class CharacterSave(BaseModel):
    name: str
    image: str | None = None  # data URL


class EditStart(BaseModel):
    index: int


class InsertStart(BaseModel):
    after_index: int = -1


class SubmitRequest(BaseModel):
    instruction: str


class CharacterProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    image: str | None
    is_active: bool


class EditSessionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mode: EditMode
    index: int | None
    is_processing: bool
    draft: str


class SessionRead(BaseModel):
    id: str
    style: FilmStyle
    dialogue: DialogueOption
    content: ContentAggregate
    roster: list[CharacterProfileRead]
    edit: EditSessionRead

    @classmethod
    def from_orchestrator(cls, session_id: str, orchestrator: EditOrchestrator) -> SessionRead:
        return cls(
            id=session_id,
            style=orchestrator.style,
            dialogue=orchestrator.dialogue,
            content=orchestrator.content,
            roster=[CharacterProfileRead.model_validate(p) for p in orchestrator.roster.profiles],
            edit=EditSessionRead.model_validate(orchestrator.session),
        )


class CharacterSheetRead(BaseModel):
    name: str
    description: str


class SectionRead(BaseModel):
    section: Literal["context", "characters", "script"]
    language: Language
    count: int = Field(ge=0)
    text: str
