"""生成网关：内容模型与外部 LLM 之间的唯一边界。

两个操作都是纯请求（不修改入参），单次调用、不重试；
任何失败都以 `GenerationFailure` 抛出，绝不返回部分数据。
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from cinescript.config import Settings
from cinescript.exceptions import GenerationFailure, InvalidInput
from cinescript.models.content import BilingualItem, ContentAggregate, DialogueOption, FilmStyle
from cinescript.models.requests import (
    BulkRequest,
    CharacterEntry,
    ConsistencyAnchors,
    InlineImage,
    SceneRequest,
)
from cinescript.models.roster import CharacterRoster
from cinescript.prompts.generation import SYSTEM_PROMPT, build_bulk_prompt, build_scene_prompt
from cinescript.services.llm import LLMServiceProtocol
from cinescript.utils import extract_json

logger = logging.getLogger(__name__)


class GenerationGateway(Protocol):
    async def generate_bulk(
        self,
        lines: Sequence[str],
        style: FilmStyle,
        dialogue: DialogueOption,
        roster: CharacterRoster,
    ) -> ContentAggregate: ...

    async def generate_single_scene(
        self,
        instruction: str,
        style: FilmStyle,
        dialogue: DialogueOption,
        existing: ContentAggregate | None,
        roster: CharacterRoster,
    ) -> BilingualItem: ...


def build_character_entries(roster: CharacterRoster) -> tuple[CharacterEntry, ...]:
    """只取已命名的角色；图片无法解析时记录日志并仅保留名字。"""
    entries: list[CharacterEntry] = []
    for profile in roster.active_subset():
        image: InlineImage | None = None
        if profile.image:
            try:
                image = InlineImage.from_data_url(profile.image)
            except ValueError as e:
                logger.warning(f"Skipping reference image for character {profile.name!r}: {e}")
        entries.append(CharacterEntry(name=profile.name, image=image))
    return tuple(entries)


def build_bulk_request(
    lines: Sequence[str],
    style: FilmStyle,
    dialogue: DialogueOption,
    roster: CharacterRoster,
) -> BulkRequest:
    if not lines:
        raise InvalidInput("Scene list must not be empty")
    return BulkRequest(
        lines=tuple(lines),
        style=style,
        dialogue=dialogue,
        characters=build_character_entries(roster),
    )


def build_scene_request(
    instruction: str,
    style: FilmStyle,
    dialogue: DialogueOption,
    existing: ContentAggregate | None,
    roster: CharacterRoster,
) -> SceneRequest:
    if not instruction.strip():
        raise InvalidInput("Scene instruction must not be empty")
    anchors = None
    if existing is not None:
        anchors = ConsistencyAnchors(
            characters=tuple(c.primary for c in existing.characters),
            context=tuple(c.primary for c in existing.context),
        )
    return SceneRequest(
        instruction=instruction,
        style=style,
        dialogue=dialogue,
        anchors=anchors,
        characters=build_character_entries(roster),
    )


def build_messages(prompt: str, characters: tuple[CharacterEntry, ...]) -> list[dict[str, Any]]:
    """文本在前，参考图按角色顺序附在后面（与 prompt 中的 REFERENCE IMAGE #n 对应）"""
    content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
    for entry in characters:
        if entry.image is None:
            continue
        content.append(
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": entry.image.mime_type,
                    "data": entry.image.data,
                },
            }
        )
    return [{"role": "user", "content": content}]


class LLMGenerationGateway:
    def __init__(self, llm: LLMServiceProtocol, settings: Settings):
        self.llm = llm
        self.settings = settings

    async def _call(
        self,
        prompt: str,
        characters: tuple[CharacterEntry, ...],
        schema: type[BaseModel],
    ) -> dict:
        try:
            resp = await self.llm.generate(
                messages=build_messages(prompt, characters),
                system=SYSTEM_PROMPT,
                temperature=self.settings.generation_temperature,
                max_tokens=self.settings.generation_max_tokens,
                json_output=True,
                response_schema=schema,
            )
            return extract_json(resp.text)
        except Exception as e:
            logger.error(f"Generation call failed: {e}", exc_info=True)
            raise GenerationFailure(f"Generation service call failed: {e}", cause=e) from e

    async def generate_bulk(
        self,
        lines: Sequence[str],
        style: FilmStyle,
        dialogue: DialogueOption,
        roster: CharacterRoster,
    ) -> ContentAggregate:
        request = build_bulk_request(lines, style, dialogue, roster)
        logger.info(
            f"Bulk generation: {len(request.lines)} scenes, {len(request.characters)} characters, "
            f"style={style.value}, dialogue={dialogue.value}"
        )
        data = await self._call(build_bulk_prompt(request), request.characters, ContentAggregate)
        try:
            content = ContentAggregate.model_validate(data)
        except ValidationError as e:
            logger.error(f"Bulk response violates the content schema: {e}")
            raise GenerationFailure("Generation service returned malformed content", cause=e) from e
        logger.info(f"Bulk generation done: {len(content.script)} script items")
        return content

    async def generate_single_scene(
        self,
        instruction: str,
        style: FilmStyle,
        dialogue: DialogueOption,
        existing: ContentAggregate | None,
        roster: CharacterRoster,
    ) -> BilingualItem:
        request = build_scene_request(instruction, style, dialogue, existing, roster)
        logger.info(
            f"Single scene generation: {len(request.characters)} characters, anchors={request.anchors is not None}"
        )
        data = await self._call(build_scene_prompt(request), request.characters, BilingualItem)
        try:
            return BilingualItem.model_validate(data)
        except ValidationError as e:
            logger.error(f"Scene response violates the item schema: {e}")
            raise GenerationFailure("Generation service returned a malformed scene", cause=e) from e
