"""生成内容的数据模型（不可变值对象）。

每次修改都返回新的对象，渲染层读取到的永远是最近一次完成的结果。
"""
from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from cinescript.exceptions import IndexOutOfRange


class FilmStyle(str, Enum):
    CINEMATIC = "cinematic"
    ANIMATION = "animation"

    @property
    def label(self) -> str:
        return _STYLE_LABELS[self]


_STYLE_LABELS = {
    FilmStyle.CINEMATIC: "Điện ảnh (Cinematic)",
    FilmStyle.ANIMATION: "Hoạt hình (Animation)",
}


class DialogueOption(str, Enum):
    NO_DIALOGUE = "no_dialogue"
    WITH_DIALOGUE = "with_dialogue"


class Language(str, Enum):
    VI = "vi"  # primary
    EN = "en"  # secondary


class BilingualItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    primary: str = Field(validation_alias=AliasChoices("primary", "vi"))
    secondary: str = Field(validation_alias=AliasChoices("secondary", "en"))

    def text(self, language: Language) -> str:
        return self.primary if language == Language.VI else self.secondary


DEFAULT_TITLE = BilingualItem(primary="Dự Án Mới", secondary="New Project")


class ContentAggregate(BaseModel):
    """标题 / 背景 / 角色描述 / 剧本 四个部分。

    - `script` 是唯一允许在生成后按索引修改的列表
    - `title` / `context` / `characters` 只会被整体替换（批量生成）
    - 场景编号完全由位置决定，没有独立的场景 ID
    """

    model_config = ConfigDict(frozen=True)

    title: BilingualItem
    context: tuple[BilingualItem, ...]
    characters: tuple[BilingualItem, ...]
    script: tuple[BilingualItem, ...]

    @classmethod
    def new_project(cls) -> ContentAggregate:
        return cls(title=DEFAULT_TITLE, context=(), characters=(), script=())

    def replace_script_item(self, index: int, item: BilingualItem) -> ContentAggregate:
        if not 0 <= index < len(self.script):
            raise IndexOutOfRange(
                f"Scene index {index} out of range (script has {len(self.script)} scenes)",
                details={"index": index, "length": len(self.script)},
            )
        script = self.script[:index] + (item,) + self.script[index + 1 :]
        return self.model_copy(update={"script": script})

    def insert_script_item(self, after_index: int, item: BilingualItem) -> ContentAggregate:
        """在 `after_index` 之后插入；-1 表示插入到最前面。"""
        if after_index < -1 or after_index >= len(self.script):
            raise IndexOutOfRange(
                f"Cannot insert after scene index {after_index} (script has {len(self.script)} scenes)",
                details={"after_index": after_index, "length": len(self.script)},
            )
        position = after_index + 1
        script = self.script[:position] + (item,) + self.script[position:]
        return self.model_copy(update={"script": script})
