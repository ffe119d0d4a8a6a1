"""剧本导出：纯文本 + 安全的下载文件名。"""
from __future__ import annotations

import re
from collections.abc import Sequence

from cinescript.models.content import BilingualItem, Language

DEFAULT_EXPORT_NAME = "CineScript_Output"
MAX_FILENAME_LENGTH = 100

# 保留字母数字、拉丁扩展字符（含越南语声调字符）和空白
_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9À-ỹ\s]")


def export_script(script: Sequence[BilingualItem], language: Language) -> str:
    return "\n\n".join(
        f"Scene {index + 1}: {item.text(language)}" for index, item in enumerate(script)
    )


def join_section(items: Sequence[BilingualItem], language: Language) -> str:
    """“复制全部”使用的文本"""
    return "\n\n".join(item.text(language) for item in items)


def export_filename(title: BilingualItem) -> str:
    safe_title = _UNSAFE_FILENAME_RE.sub("", title.primary).strip()
    if len(safe_title) > MAX_FILENAME_LENGTH:
        safe_title = safe_title[:MAX_FILENAME_LENGTH].strip()
    if not safe_title:
        safe_title = DEFAULT_EXPORT_NAME
    return f"{safe_title}.txt"
