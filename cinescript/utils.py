"""LLM 响应解析工具。"""
from __future__ import annotations

import json
import re

_FENCE_RE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)

# (pattern, replacement, flags)，按顺序应用
_REPAIRS: tuple[tuple[str, str, int], ...] = (
    # 注释：// 前面是 ":" 时视为 URL，保留
    (r"(?<!:)//[^\n]*", "", 0),
    (r"/\*.*?\*/", "", re.DOTALL),
    # 尾随逗号
    (r",\s*([\]}])", r"\1", 0),
    # 换行处缺少的逗号：}{ / "" / }" / ]"
    (r"}\s*\n\s*{", "},\n{", 0),
    (r'"\s*\n\s*"', '",\n"', 0),
    (r'([}\]])\s*\n\s*"', r'\1,\n"', 0),
)


def _strip_code_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def _loads_object(text: str) -> dict | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def extract_json(text: str) -> dict:
    """从 LLM 响应中提取 JSON 对象。

    会去掉 markdown 代码块、前后说明文字，并修复注释/尾随逗号等常见错误；
    被截断的 JSON 不做补全（补全会得到残缺数据），直接报错。
    """
    text = _strip_code_fence(text.strip())

    data = _loads_object(text)
    if data is not None:
        return data

    start = text.find("{")
    if start == -1:
        raise ValueError("LLM 响应中未找到 JSON 对象")
    end = text.rfind("}")
    if end <= start:
        raise ValueError(f"LLM 响应中的 JSON 不完整: {text[start:start + 200]}...")

    candidate = text[start : end + 1]
    data = _loads_object(candidate)
    if data is None:
        data = _loads_object(_fix_common_json_errors(candidate))
    if data is None:
        raise ValueError(f"无法解析 LLM 响应的 JSON: {candidate[:200]}...")
    return data


def _fix_common_json_errors(text: str) -> str:
    """修复 LLM 生成 JSON 的常见错误。"""
    for pattern, replacement, flags in _REPAIRS:
        text = re.sub(pattern, replacement, text, flags=flags)
    return text
