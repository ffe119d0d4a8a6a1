from __future__ import annotations

from cinescript.models.content import DialogueOption, FilmStyle
from cinescript.models.requests import BulkRequest, CharacterEntry, SceneRequest

SYSTEM_PROMPT = """You are a Hollywood screenwriter who writes prompts for AI video generators.

Language / 语言要求
- Every text item is bilingual: "primary" is written in Vietnamese, "secondary" is the
  faithful English version of the same prompt.
- Output MUST be a single valid JSON object (no Markdown, no code fences, no extra text).
"""

CINEMATIC_INSTRUCTIONS = """
CINEMATIC STYLE (NATURAL & CLEAN CINEMATIC LOOK):
1. CLEAN IMAGE - NO GRAIN:
   - NEVER use: "film grain", "grain", "noise", "bụi phim", "vhs effect", "gritty texture".
   - Modern digital image: crystal clear, sharp focus, 8k resolution.
   - Do not add vintage effects that blur details.
2. NATURAL NARRATIVE DESCRIPTION:
   - Do NOT stack technical tags.
   - Weave the cinematic qualities into flowing sentences.
   - GOOD: "Ánh sáng chiều tà xuyên qua lớp sương mỏng, tạo nên những vệt nắng dài vàng óng trên mặt đất ẩm ướt."
   - BAD: "Cinematic lighting, volumetric fog, golden hour, wet ground, realistic."
   - Focus on lighting, atmosphere and mood through descriptive language.
"""

ANIMATION_INSTRUCTIONS = """
ANIMATION STYLE:
- High quality 3D imagery in a Pixar/Disney style.
- Vivid lighting, stylised but sharp details.
"""


def style_instructions(style: FilmStyle) -> str:
    if style == FilmStyle.CINEMATIC:
        return CINEMATIC_INSTRUCTIONS
    return ANIMATION_INSTRUCTIONS


def style_keywords(style: FilmStyle, *, bulk: bool) -> str:
    # Cinematic 依赖自然语言描述，不追加关键词
    if style == FilmStyle.CINEMATIC:
        return ""
    if bulk:
        return f"{style.label}, 3d render, pixar style, disney style, vivid colors, 8k, masterpiece"
    return f"{style.label}, 3d render, pixar style, 8k"


def dialogue_label(dialogue: DialogueOption) -> str:
    return "NO DIALOGUE" if dialogue == DialogueOption.NO_DIALOGUE else "WITH DIALOGUE"


def strict_rules(dialogue: DialogueOption) -> str:
    if dialogue == DialogueOption.NO_DIALOGUE:
        dialogue_rule = '- NO DIALOGUE. Add the keyword: "cinematic silence".'
    else:
        dialogue_rule = "- WITH DIALOGUE. The characters are talking to each other."

    return f"""
ABSOLUTE COMPLETENESS - NO OMISSION:
   - EVERY prompt re-describes EVERYTHING from scratch.
   - Never imply. Never write "still wearing the same outfit".
   - Scene 1: "Cô ấy mặc chiếc váy lụa màu đỏ thẫm với họa tiết rồng vàng, đeo vòng cổ ngọc trai..."
   - Scene 2 repeats it verbatim: "Cô ấy (mặc chiếc váy lụa màu đỏ thẫm với họa tiết rồng vàng...) đang chạy..."

CHARACTER NAMING AND DESCRIPTION (NO FACE DESCRIPTION):
   - NEVER describe the face: no eyes, nose or mouth.
   - ONLY the character NAME + a DETAILED OUTFIT description.
   - FORBIDDEN PHRASES: "Face ID of [Name]", "Reference Image [Name]", "[Name] from the image".
   - CORRECT: "Tấm (mặc áo tứ thân màu nâu sờn, váy đụp đen) đang đứng..."

NEGATIVE KEYWORDS:
   - Forbidden: "film grain", "grain", "noise", "blur", "distorted".

SOUND & SFX:
   - Always end the prompt with a detailed sound description.

CHARACTER PROFILES:
   - REQUIRED FORMAT: "Character Name: detailed full-body outfit description... (NO FACE DESCRIPTION)".
   - REQUIRED CAMERA: Full Body Shot.
   - Background: isolated on white background.

DIALOGUE RULE:
   {dialogue_rule}

REQUIRED STRUCTURE FOR EVERY PROMPT:
   [Natural description of the character and action + detailed outfit] + [Setting and lighting in the chosen style] + [Camera angle] + [Sound].
"""


def character_instructions(characters: tuple[CharacterEntry, ...]) -> str:
    """用户定义的角色列表；带图片的角色按顺序对应附带的参考图。"""
    if not characters:
        return ""

    names = ", ".join(f'"{c.name}"' for c in characters)
    with_images = [c for c in characters if c.image is not None]
    lines = [
        "USER DEFINED CHARACTERS:",
        f"Character list: {names}.",
        "Use these exact names in every prompt so the video model keeps identities stable.",
    ]
    if with_images:
        lines.append("Reference images are attached for the characters below (use ONLY their outfits, never their faces):")
        for index, char in enumerate(with_images, start=1):
            lines.append(f'   - REFERENCE IMAGE #{index} IS CHARACTER: "{char.name}"')
        lines.append('Never mention "the reference image" in any prompt.')
    else:
        lines.append("The user did NOT upload any reference image.")
    return "\n".join(lines)


def _keywords_line(style: FilmStyle, *, bulk: bool) -> str:
    keywords = style_keywords(style, bulk=bulk)
    return f'STYLE KEYWORDS: "{keywords}..."' if keywords else ""


def build_bulk_prompt(request: BulkRequest) -> str:
    scene_list = "\n".join(f"[Scene {i + 1}]: {line}" for i, line in enumerate(request.lines))

    return f"""
INPUT - SCENE LIST:
{scene_list}

STYLE: {request.style.label}
DIALOGUE MODE: {dialogue_label(request.dialogue)}

{character_instructions(request.characters)}

{style_instructions(request.style)}

THE MOST IMPORTANT RULES:
1. CHARACTERS:
   - NO FACE DESCRIPTION.
   - Only use the CHARACTER NAME (the video tool handles LoRA/FaceID later).
   - OUTFIT: design a detailed outfit yourself or take it from the reference image (clothes only, never the face).
   - A character keeps the same outfit in every scene unless a line explicitly changes it.

2. NO META-REFERENCES:
   - Never write: "Face ID of", "reference image", "like the picture".
   - Write naturally: "Batman is standing on the rooftop".

3. NO FILM GRAIN:
   - The prompt must not contain "film grain" or "noise". The image must be clean.

{strict_rules(request.dialogue)}

{_keywords_line(request.style, bulk=True)}

Write exactly one script item per input scene, in the same order.

RETURN JSON:
{{
  "title": {{"primary": "...", "secondary": "..."}},
  "context": [{{"primary": "...", "secondary": "..."}}],
  "characters": [{{"primary": "Tên Nhân Vật: Mô tả toàn thân, quần áo (KHÔNG MÔ TẢ MẶT)...", "secondary": "Character Name: Detailed full body outfit (NO FACE DESCRIPTION)..."}}],
  "script": [
    {{"primary": "Prompt chi tiết cảnh 1...", "secondary": "Detailed prompt scene 1..."}}
  ]
}}
"""


def _anchors_block(request: SceneRequest) -> str:
    anchors = request.anchors
    if anchors is None or not (anchors.characters or anchors.context):
        return ""
    characters = "\n".join(f"- {c}" for c in anchors.characters)
    context = "\n".join(f"- {c}" for c in anchors.context)
    return f"""
CONSISTENCY DATA:
1. CHARACTERS:
{characters}
(Keep only NAME and OUTFIT. NEVER describe the face.)

2. SETTINGS:
{context}
(Describe this setting again in full detail.)
"""


def build_scene_prompt(request: SceneRequest) -> str:
    return f"""
Task: write ONE SINGLE PROMPT for the idea: "{request.instruction}".
Style: {request.style.label}
Mode: {dialogue_label(request.dialogue)}

{character_instructions(request.characters)}

{_anchors_block(request)}

{style_instructions(request.style)}

DETAIL REQUIREMENTS:
1. NO FACE DESCRIPTION.
2. No "film grain" or "noise". The image must be clean and clear.
3. WRITE NATURALLY: describe light and atmosphere in sentences, not tag lists.
4. If this scene implies a change of clothes, design a NEW OUTFIT that fits it and describe every item, colour and material; otherwise keep the outfit from the consistency data.
5. DESCRIBE EVERYTHING (NO OMISSION): setting, lighting, hand-held props.

{strict_rules(request.dialogue)}

{_keywords_line(request.style, bulk=False)}

RETURN JSON: {{"primary": "...", "secondary": "..."}}
"""
