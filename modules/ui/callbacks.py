"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
from typing import Any, Optional

from config.settings import AppConfig
from modules.errors import (
    DownloadFailed,
    EmptyPrompt,
    GalleryAppError,
    GenerationFailed,
    InvalidPosition,
    MissingCredential,
    PersistenceFailed,
)
from modules.ui import view_state
from modules.ui.view_state import GalleryViewState
from modules.workflow.controller import GenerationController

logger = logging.getLogger(__name__)

DetailOutputs = tuple[GalleryViewState, bool, str, Optional[str]]


def describe_error(exc: GalleryAppError) -> str:
    """Turn a workflow error into a user-facing message."""
    if isinstance(exc, EmptyPrompt):
        return "请输入提示词。"
    if isinstance(exc, MissingCredential):
        return "请先在设置中填写有效的 API Key！"
    if isinstance(exc, GenerationFailed):
        return f"生成失败：{exc.cause}"
    if isinstance(exc, InvalidPosition):
        return f"记录不存在（位置 {exc.position}，共 {exc.length} 条）。"
    if isinstance(exc, DownloadFailed):
        return f"下载失败：{exc.cause}"
    if isinstance(exc, PersistenceFailed):
        return f"本地保存失败：{exc.cause}"
    return f"操作失败：{exc}"


def build_callbacks(config: AppConfig, controller: GenerationController) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions."""

    def _gallery_items() -> list[tuple[str, str]]:
        limit = config.prompt_preview_length
        return [
            (record.url, view_state.truncate_prompt(record.prompt, limit))
            for _, record in view_state.newest_first(controller.records)
        ]

    def _hidden_detail(view: GalleryViewState) -> DetailOutputs:
        return view_state.close_detail(view), False, "", None

    def on_refresh() -> tuple[Optional[str], list[tuple[str, str]], str]:
        return controller.last_image_url, _gallery_items(), controller.credentials.get()

    async def on_generate(prompt: str) -> tuple[Optional[str], list[tuple[str, str]], str]:
        try:
            record = await controller.submit(prompt)
        except GalleryAppError as exc:
            return controller.last_image_url, _gallery_items(), describe_error(exc)

        if record is None:
            return controller.last_image_url, _gallery_items(), "正在生成中，请稍候。"
        return record.url, _gallery_items(), "生成成功"

    def on_select(index: Any, view: GalleryViewState) -> tuple[GalleryViewState, bool, str, Optional[str], str]:
        records = controller.records
        try:
            position = view_state.position_from_display_index(int(index), len(records))
            view = view_state.open_detail(view, position, records)
        except (TypeError, ValueError, GalleryAppError) as exc:
            message = describe_error(exc) if isinstance(exc, GalleryAppError) else "无法打开该记录。"
            return (*_hidden_detail(view), message)
        record = view_state.detail_record(view, records)
        assert record is not None
        return view, True, record.prompt, record.url, ""

    def on_close_detail(view: GalleryViewState) -> DetailOutputs:
        return _hidden_detail(view)

    def on_delete(view: GalleryViewState) -> tuple[GalleryViewState, bool, str, Optional[str], list[tuple[str, str]], str]:
        position = view.detail_position
        if position is None:
            return (*_hidden_detail(view), _gallery_items(), "请先选择要删除的记录。")
        try:
            controller.delete_record(position)
        except GalleryAppError as exc:
            return (*_hidden_detail(view), _gallery_items(), describe_error(exc))
        return (*_hidden_detail(view), _gallery_items(), "已删除该记录。")

    def on_download(view: GalleryViewState) -> tuple[Optional[str], str]:
        position = view.detail_position
        if position is None:
            return None, "请先选择要下载的记录。"
        try:
            path = controller.download_record(position)
        except GalleryAppError as exc:
            return None, describe_error(exc)
        return str(path), f"已保存到 {path}"

    def on_download_latest() -> tuple[Optional[str], str]:
        url = controller.last_image_url
        if not url:
            return None, "暂无可下载的图像。"
        try:
            path = controller.download_url(url)
        except GalleryAppError as exc:
            return None, describe_error(exc)
        return str(path), f"已保存到 {path}"

    def on_toggle_settings(view: GalleryViewState) -> tuple[GalleryViewState, bool]:
        view = view_state.toggle_settings(view)
        return view, view.settings_open

    def on_close_settings(view: GalleryViewState) -> tuple[GalleryViewState, bool]:
        return view_state.close_settings(view), False

    def on_change_api_key(value: str) -> str:
        try:
            controller.set_credential(value)
        except GalleryAppError as exc:
            return f"API Key 保存失败：{exc}"
        if not (value or "").strip():
            return "API Key 已清空。"
        return "API Key 已保存。"

    return {
        "on_refresh": on_refresh,
        "on_generate": on_generate,
        "on_select": on_select,
        "on_close_detail": on_close_detail,
        "on_delete": on_delete,
        "on_download": on_download,
        "on_download_latest": on_download_latest,
        "on_toggle_settings": on_toggle_settings,
        "on_close_settings": on_close_settings,
        "on_change_api_key": on_change_api_key,
    }
