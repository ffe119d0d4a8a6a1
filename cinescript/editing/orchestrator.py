"""编辑编排器：管理一个工作区的内容、角色与编辑状态机。

状态：Idle / Editing(i) / Inserting(j)，外加正交的 processing 标记。
同一时间最多只有一个生成请求在进行中（包括批量生成），
第二个请求会被直接拒绝（EditInProgress），不会排队。
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from cinescript.editing.state import EditMode, EditSession
from cinescript.exceptions import EditInProgress, IndexOutOfRange, InvalidInput, NoActiveEdit
from cinescript.models.content import BilingualItem, ContentAggregate, DialogueOption, FilmStyle
from cinescript.models.roster import CharacterProfile, CharacterRoster
from cinescript.services.gateway import GenerationGateway

logger = logging.getLogger(__name__)


class EditOrchestrator:
    def __init__(
        self,
        gateway: GenerationGateway,
        *,
        content: ContentAggregate | None = None,
        roster: CharacterRoster | None = None,
        style: FilmStyle = FilmStyle.CINEMATIC,
        dialogue: DialogueOption = DialogueOption.NO_DIALOGUE,
    ) -> None:
        self.gateway = gateway
        self._content = content or ContentAggregate.new_project()
        self._roster = roster or CharacterRoster()
        self._session = EditSession.idle()
        self.style = style
        self.dialogue = dialogue

    @property
    def content(self) -> ContentAggregate:
        return self._content

    @property
    def roster(self) -> CharacterRoster:
        return self._roster

    @property
    def session(self) -> EditSession:
        return self._session

    @property
    def is_processing(self) -> bool:
        return self._session.is_processing

    def _ensure_not_processing(self, action: str) -> None:
        if self._session.is_processing:
            logger.info(f"Rejected {action}: a generation request is already in flight")
            raise EditInProgress(f"Cannot {action} while a generation request is in progress")

    # --- 生成选项 ---

    def set_options(self, style: FilmStyle | None = None, dialogue: DialogueOption | None = None) -> None:
        if style is not None:
            self.style = style
        if dialogue is not None:
            self.dialogue = dialogue

    # --- 角色管理 ---

    def add_character(self) -> CharacterProfile:
        self._roster, profile = self._roster.add()
        return profile

    def save_character(self, character_id: str, name: str, image: str | None) -> CharacterRoster:
        if not name.strip():
            raise InvalidInput("Character name must not be empty")
        self._roster = self._roster.update(character_id, name, image)
        return self._roster

    def remove_character(self, character_id: str) -> CharacterRoster:
        self._roster = self._roster.remove(character_id)
        return self._roster

    # --- 编辑状态机 ---

    def start_edit(self, index: int) -> EditSession:
        self._ensure_not_processing("start editing")
        if not 0 <= index < len(self._content.script):
            raise IndexOutOfRange(
                f"Scene index {index} out of range (script has {len(self._content.script)} scenes)",
                details={"index": index, "length": len(self._content.script)},
            )
        self._session = EditSession.editing(index)
        logger.debug(f"Editing scene {index}")
        return self._session

    def start_insert(self, after_index: int) -> EditSession:
        self._ensure_not_processing("start inserting")
        if after_index < -1 or after_index >= len(self._content.script):
            raise IndexOutOfRange(
                f"Cannot insert after scene index {after_index} (script has {len(self._content.script)} scenes)",
                details={"after_index": after_index, "length": len(self._content.script)},
            )
        self._session = EditSession.inserting(after_index)
        logger.debug(f"Inserting after scene {after_index}")
        return self._session

    def cancel(self) -> EditSession:
        self._ensure_not_processing("cancel")
        self._session = EditSession.idle()
        return self._session

    async def submit(self, instruction: str) -> BilingualItem:
        """提交当前编辑/插入槽位的指令。

        成功：应用到剧本并回到 Idle。
        失败：回到原槽位（processing=False，保留指令），并把 GenerationFailure 抛给调用方。
        """
        if not instruction.strip():
            raise InvalidInput("Scene instruction must not be empty")
        self._ensure_not_processing("submit")
        if not self._session.is_open:
            raise NoActiveEdit("No scene is being edited or inserted")

        slot = self._session.processing(draft=instruction)
        self._session = slot
        # 生成期间内容不会变化（单请求约束），这里的快照就是请求开始时的状态
        content = self._content
        try:
            item = await self.gateway.generate_single_scene(
                instruction,
                self.style,
                self.dialogue,
                content,
                self._roster,
            )
        except BaseException:
            self._session = slot.settled()
            raise

        if not (self._session.same_slot(slot) and self._content is content):
            self._session = EditSession.idle()
            raise RuntimeError("Edit slot changed while a generation request was in flight")

        try:
            if slot.mode == EditMode.EDITING:
                self._content = content.replace_script_item(slot.index, item)
            else:
                self._content = content.insert_script_item(slot.index, item)
        finally:
            self._session = EditSession.idle()
        logger.info(f"Applied {slot.mode.value} at index {slot.index}; script has {len(self._content.script)} scenes")
        return item

    async def generate_bulk(self, lines: Sequence[str]) -> ContentAggregate:
        """批量生成整套内容，成功后整体替换；失败时内容与编辑状态保持原样。"""
        if not lines:
            raise InvalidInput("Scene list must not be empty")
        self._ensure_not_processing("generate")

        previous_session = self._session
        content = self._content
        self._session = EditSession.idle().processing()
        try:
            new_content = await self.gateway.generate_bulk(lines, self.style, self.dialogue, self._roster)
        except BaseException:
            self._session = previous_session
            raise

        if self._content is not content:
            self._session = EditSession.idle()
            raise RuntimeError("Content changed while a bulk generation request was in flight")

        self.replace_all(new_content)
        self._session = EditSession.idle()
        return new_content

    def replace_all(self, content: ContentAggregate) -> None:
        self._content = content
