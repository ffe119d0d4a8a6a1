"""角色描述拆分：把 "Tên: Mô tả" / "Name - Description" 拆成名字和描述。

按顺序尝试多种策略，第一个成功的结果生效。这是尽力而为的启发式：
没有分隔符的多词名字会被拆错（例如 "Ông Già Noel mặc áo đỏ"），
不要在这里猜测用户意图。
"""
from __future__ import annotations

import re
from collections.abc import Callable
from typing import NamedTuple


class CharacterText(NamedTuple):
    name: str
    description: str


# 第一个 ":" 或 "-" 之前必须至少有一个字符
_DELIMITER_RE = re.compile(r"^([^:-]+)([:-])(.*)$", re.DOTALL)


def _split_on_delimiter(text: str) -> CharacterText | None:
    match = _DELIMITER_RE.match(text)
    if not match:
        return None
    return CharacterText(match.group(1).strip(), match.group(3).strip())


def _split_leading_words(text: str) -> CharacterText | None:
    words = text.split()
    if len(words) < 2:
        return None
    name = " ".join(words[:2]).replace(":", "")
    return CharacterText(name, " ".join(words[2:]))


def _whole_as_name(text: str) -> CharacterText:
    return CharacterText(text.replace(":", "").strip(), "")


_STRATEGIES: tuple[Callable[[str], CharacterText | None], ...] = (
    _split_on_delimiter,
    _split_leading_words,
    _whole_as_name,
)


def split_character_text(text: str) -> CharacterText:
    for strategy in _STRATEGIES:
        result = strategy(text)
        if result is not None:
            return result
    raise RuntimeError("unreachable")  # pragma: no cover
