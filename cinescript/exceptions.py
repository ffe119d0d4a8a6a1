"""应用异常定义。

所有异常都携带 `code` / `message` / `status_code` / `details`，
由 `cinescript.main` 中的全局异常处理器统一渲染为 JSON。
"""
from __future__ import annotations

from typing import Any


class AppException(Exception):
    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}


class GenerationFailure(AppException):
    """生成服务失败（网络、鉴权、策略拒绝、响应格式错误）。

    永远不会携带部分数据；原始异常保存在 `cause`。
    """

    code = "GENERATION_FAILED"
    status_code = 502

    def __init__(self, message: str, *, cause: BaseException | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.cause = cause
        if cause is not None:
            self.details.setdefault("cause", f"{type(cause).__name__}: {cause}")


class IndexOutOfRange(AppException, IndexError):
    code = "SCENE_INDEX_OUT_OF_RANGE"
    status_code = 404


class InvalidInput(AppException):
    code = "INVALID_INPUT"
    status_code = 422


class EditInProgress(AppException):
    """已有生成请求在处理中，新的编辑/插入/生成请求被拒绝（不排队）"""

    code = "EDIT_IN_PROGRESS"
    status_code = 409


class NoActiveEdit(AppException):
    code = "NO_ACTIVE_EDIT"
    status_code = 409


class SessionNotFound(AppException):
    code = "SESSION_NOT_FOUND"
    status_code = 404
