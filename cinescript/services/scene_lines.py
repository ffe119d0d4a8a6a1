from __future__ import annotations

import re

from cinescript.exceptions import InvalidInput

_LINE_BREAK_RE = re.compile(r"\r?\n")


def split_scene_lines(text: str) -> list[str]:
    """把上传的文本拆成场景列表（每行一个场景，空行丢弃）。"""
    lines = [line for line in _LINE_BREAK_RE.split(text) if line.strip()]
    if not lines:
        raise InvalidInput("文件中没有可用的场景内容")
    return lines
