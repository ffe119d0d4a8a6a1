from __future__ import annotations

import json

import pytest

from cinescript.exceptions import GenerationFailure, InvalidInput
from cinescript.models.content import BilingualItem, ContentAggregate, DialogueOption, FilmStyle
from cinescript.models.requests import CharacterEntry, InlineImage
from cinescript.models.roster import CharacterRoster
from cinescript.services.gateway import (
    LLMGenerationGateway,
    build_bulk_request,
    build_character_entries,
    build_messages,
    build_scene_request,
)
from tests.fakes import FakeLLM, make_content

BULK_RESPONSE = {
    "title": {"primary": "Tấm vào rừng", "secondary": "Tam enters the forest"},
    "context": [{"primary": "Khu rừng sương mù", "secondary": "A misty forest"}],
    "characters": [{"primary": "Tấm: áo tứ thân nâu", "secondary": "Tam: brown four-panel dress"}],
    "script": [{"primary": "Tấm bước vào khu rừng...", "secondary": "Tam walks into the forest..."}],
}


def _roster(*names: str, image: str | None = None) -> CharacterRoster:
    roster = CharacterRoster()
    for name in names:
        roster, profile = roster.add()
        roster = roster.update(profile.id, name, image)
    return roster


class TestCharacterEntries:
    def test_blank_profiles_are_not_sent(self):
        roster, _ = _roster("Tấm").add()
        assert build_character_entries(roster) == (CharacterEntry(name="Tấm", image=None),)

    def test_image_data_url_is_parsed(self):
        roster = _roster("Tấm", image="data:image/png;base64,iVBORw0KGgo=")
        entry = build_character_entries(roster)[0]
        assert entry.image == InlineImage(mime_type="image/png", data="iVBORw0KGgo=")

    def test_invalid_image_is_skipped_but_name_kept(self, caplog):
        roster = _roster("Tấm", image="not-a-data-url")
        with caplog.at_level("WARNING"):
            entries = build_character_entries(roster)
        assert entries == (CharacterEntry(name="Tấm", image=None),)
        assert "Skipping reference image" in caplog.text


class TestRequests:
    def test_tam_scenario_request(self):
        request = build_bulk_request(
            ["Tam walks into the forest"], FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, _roster("Tam")
        )
        assert request.characters == (CharacterEntry(name="Tam"),)
        assert request.characters[0].image is None
        assert request.lines == ("Tam walks into the forest",)

    def test_bulk_requires_lines(self):
        with pytest.raises(InvalidInput):
            build_bulk_request([], FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, CharacterRoster())

    def test_scene_anchors_use_characters_and_context_only(self):
        content = make_content("A", "B")
        request = build_scene_request(
            "Tấm ngồi bên giếng", FilmStyle.CINEMATIC, DialogueOption.WITH_DIALOGUE, content, CharacterRoster()
        )
        assert request.anchors is not None
        assert request.anchors.characters == ("Tấm: áo tứ thân nâu",)
        assert request.anchors.context == ("Khu rừng",)

    def test_scene_without_existing_has_no_anchors(self):
        request = build_scene_request(
            "Tấm ngồi bên giếng", FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, None, CharacterRoster()
        )
        assert request.anchors is None

    def test_scene_requires_instruction(self):
        with pytest.raises(InvalidInput):
            build_scene_request("  ", FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, None, CharacterRoster())

    def test_messages_attach_images_in_roster_order(self):
        entries = (
            CharacterEntry(name="A", image=InlineImage(mime_type="image/png", data="AAA")),
            CharacterEntry(name="B"),
            CharacterEntry(name="C", image=InlineImage(mime_type="image/jpeg", data="CCC")),
        )
        content = build_messages("prompt", entries)[0]["content"]
        assert content[0] == {"type": "text", "text": "prompt"}
        assert [block["source"]["data"] for block in content[1:]] == ["AAA", "CCC"]


class TestLLMGenerationGateway:
    @pytest.mark.asyncio
    async def test_bulk_returns_aggregate(self, test_settings):
        llm = FakeLLM(json.dumps(BULK_RESPONSE, ensure_ascii=False))
        gateway = LLMGenerationGateway(llm, test_settings)

        content = await gateway.generate_bulk(
            ["Tam walks into the forest"], FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, _roster("Tam")
        )

        assert isinstance(content, ContentAggregate)
        assert len(content.script) == 1
        call = llm.calls[0]
        assert call["json_output"] is True
        assert call["response_schema"] is ContentAggregate
        assert call["temperature"] == test_settings.generation_temperature
        prompt = call["messages"][0]["content"][0]["text"]
        assert "[Scene 1]: Tam walks into the forest" in prompt
        assert '"Tam"' in prompt
        assert "NO FACE DESCRIPTION" in prompt
        assert "reference image" in prompt.lower()

    @pytest.mark.asyncio
    async def test_bulk_accepts_fenced_json(self, test_settings):
        text = "```json\n" + json.dumps(BULK_RESPONSE) + "\n```"
        gateway = LLMGenerationGateway(FakeLLM(text), test_settings)
        content = await gateway.generate_bulk(["x"], FilmStyle.ANIMATION, DialogueOption.NO_DIALOGUE, CharacterRoster())
        assert content.title.secondary == "Tam enters the forest"

    @pytest.mark.asyncio
    async def test_bulk_missing_key_is_failure(self, test_settings):
        data = {k: v for k, v in BULK_RESPONSE.items() if k != "characters"}
        gateway = LLMGenerationGateway(FakeLLM(json.dumps(data)), test_settings)
        with pytest.raises(GenerationFailure) as exc_info:
            await gateway.generate_bulk(["x"], FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, CharacterRoster())
        assert exc_info.value.cause is not None

    @pytest.mark.asyncio
    async def test_truncated_json_is_failure(self, test_settings):
        text = json.dumps(BULK_RESPONSE)[:-20]
        gateway = LLMGenerationGateway(FakeLLM(text), test_settings)
        with pytest.raises(GenerationFailure):
            await gateway.generate_bulk(["x"], FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, CharacterRoster())

    @pytest.mark.asyncio
    async def test_llm_error_is_wrapped(self, test_settings):
        error = ConnectionError("boom")
        gateway = LLMGenerationGateway(FakeLLM(error=error), test_settings)
        with pytest.raises(GenerationFailure) as exc_info:
            await gateway.generate_single_scene(
                "Tấm", FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, None, CharacterRoster()
            )
        assert exc_info.value.cause is error

    @pytest.mark.asyncio
    async def test_single_scene_returns_item(self, test_settings):
        llm = FakeLLM('{"vi": "Tấm ngồi bên giếng", "en": "Tam sits by the well"}')
        gateway = LLMGenerationGateway(llm, test_settings)
        result = await gateway.generate_single_scene(
            "Tấm ngồi bên giếng", FilmStyle.CINEMATIC, DialogueOption.WITH_DIALOGUE, make_content("A"), _roster("Tấm")
        )
        assert result.primary == "Tấm ngồi bên giếng"
        assert result.secondary == "Tam sits by the well"
        assert llm.calls[0]["response_schema"] is BilingualItem
        prompt = llm.calls[0]["messages"][0]["content"][0]["text"]
        assert "CONSISTENCY DATA" in prompt
        assert "- Tấm: áo tứ thân nâu" in prompt
        assert "NEW OUTFIT" in prompt
        assert "WITH DIALOGUE" in prompt

    @pytest.mark.asyncio
    async def test_single_scene_partial_item_is_failure(self, test_settings):
        gateway = LLMGenerationGateway(FakeLLM('{"primary": "chỉ tiếng Việt"}'), test_settings)
        with pytest.raises(GenerationFailure):
            await gateway.generate_single_scene(
                "x", FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, None, CharacterRoster()
            )

    @pytest.mark.asyncio
    async def test_gateway_does_not_mutate_roster(self, test_settings):
        roster = _roster("Tam")
        before = roster.model_copy(deep=True)
        gateway = LLMGenerationGateway(FakeLLM(json.dumps(BULK_RESPONSE)), test_settings)
        await gateway.generate_bulk(["x"], FilmStyle.CINEMATIC, DialogueOption.NO_DIALOGUE, roster)
        assert roster == before
