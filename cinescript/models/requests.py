"""发往生成服务的请求结构（与具体 LLM 无关）。"""
from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

from cinescript.models.content import DialogueOption, FilmStyle

_DATA_URL_RE = re.compile(r"^data:(.+);base64,(.+)$", re.DOTALL)


class InlineImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    mime_type: str
    data: str  # base64

    @classmethod
    def from_data_url(cls, data_url: str) -> InlineImage:
        match = _DATA_URL_RE.match(data_url)
        if not match:
            raise ValueError("Invalid base64 image format")
        return cls(mime_type=match.group(1), data=match.group(2))


class CharacterEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    image: InlineImage | None = None


class ConsistencyAnchors(BaseModel):
    """单场景生成时携带的已有角色与背景描述（不含剧本本身）"""

    model_config = ConfigDict(frozen=True)

    characters: tuple[str, ...] = ()
    context: tuple[str, ...] = ()


class BulkRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: tuple[str, ...] = Field(min_length=1)
    style: FilmStyle
    dialogue: DialogueOption
    characters: tuple[CharacterEntry, ...] = ()


class SceneRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    instruction: str = Field(min_length=1)
    style: FilmStyle
    dialogue: DialogueOption
    anchors: ConsistencyAnchors | None = None
    characters: tuple[CharacterEntry, ...] = ()
