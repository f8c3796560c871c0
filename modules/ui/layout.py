"""Gradio layout composition for the prompt gallery."""

from __future__ import annotations

from typing import Any

try:
    import gradio as gr
except ImportError:  # pragma: no cover
    gr = None  # type: ignore

from config.settings import AppConfig
from modules.ui.callbacks import build_callbacks
from modules.ui.view_state import GalleryViewState
from modules.workflow.controller import build_controller

API_TOKEN_URL = "https://replicate.com/account/api-tokens"


def build_app(config: AppConfig) -> Any:
    """Compose and return the Gradio application."""
    if gr is None:
        raise RuntimeError("Gradio 未安装，请先执行依赖安装。")

    controller = build_controller(config)
    callbacks_map = build_callbacks(config, controller)

    def _detail_updates(view, visible, prompt, url, *rest):
        return (view, gr.update(visible=visible), prompt, url, *rest)

    def on_select(evt: gr.SelectData, view):
        return _detail_updates(*callbacks_map["on_select"](evt.index, view))

    def on_close_detail(view):
        return _detail_updates(*callbacks_map["on_close_detail"](view))

    def on_delete(view):
        return _detail_updates(*callbacks_map["on_delete"](view))

    def on_toggle_settings(view):
        view, visible = callbacks_map["on_toggle_settings"](view)
        return view, gr.update(visible=visible)

    def on_close_settings(view):
        view, visible = callbacks_map["on_close_settings"](view)
        return view, gr.update(visible=visible)

    with gr.Blocks(title="AI Image Generator") as demo:
        view = gr.State(GalleryViewState())

        with gr.Row():
            gr.Markdown("## AI Image Generator")
            settings_btn = gr.Button("⚙ 设置", size="sm", scale=0)

        with gr.Column(visible=False) as settings_panel:
            gr.Markdown("### 设置")
            api_key = gr.Textbox(
                label="API Key",
                type="password",
                value=controller.credentials.get(),
            )
            gr.Markdown(f"可在 [Replicate Account]({API_TOKEN_URL}) 获取 API Key。")
            close_settings_btn = gr.Button("关闭", size="sm")

        with gr.Row():
            with gr.Column():
                prompt = gr.Textbox(
                    label="提示词",
                    lines=4,
                    placeholder="Enter a prompt",
                )
                generate_btn = gr.Button("生成图像", variant="primary")
                status = gr.Markdown("准备就绪。")

            with gr.Column():
                output_image = gr.Image(label="生成结果", type="filepath", interactive=False)
                download_latest_btn = gr.Button("下载", size="sm")

        gallery = gr.Gallery(
            label="Generated Images",
            columns=3,
            allow_preview=False,
            show_label=True,
        )

        with gr.Column(visible=False) as detail_panel:
            detail_prompt = gr.Textbox(label="Full Prompt", lines=4, interactive=False)
            detail_image = gr.Image(type="filepath", interactive=False, show_label=False)
            with gr.Row():
                download_btn = gr.Button("下载")
                delete_btn = gr.Button("删除", variant="stop")
                close_detail_btn = gr.Button("关闭")

        download_file = gr.File(label="下载文件", interactive=False)

        demo.load(
            fn=callbacks_map["on_refresh"],
            inputs=None,
            outputs=[output_image, gallery, api_key],
        )

        generate_btn.click(
            fn=callbacks_map["on_generate"],
            inputs=[prompt],
            outputs=[output_image, gallery, status],
            # 并发点击由控制器丢弃，不在队列中排队
            concurrency_limit=None,
        )

        gallery.select(
            fn=on_select,
            inputs=[view],
            outputs=[view, detail_panel, detail_prompt, detail_image, status],
        )
        close_detail_btn.click(
            fn=on_close_detail,
            inputs=[view],
            outputs=[view, detail_panel, detail_prompt, detail_image],
        )
        delete_btn.click(
            fn=on_delete,
            inputs=[view],
            outputs=[view, detail_panel, detail_prompt, detail_image, gallery, status],
        )
        download_btn.click(
            fn=callbacks_map["on_download"],
            inputs=[view],
            outputs=[download_file, status],
        )
        download_latest_btn.click(
            fn=callbacks_map["on_download_latest"],
            inputs=None,
            outputs=[download_file, status],
        )

        settings_btn.click(fn=on_toggle_settings, inputs=[view], outputs=[view, settings_panel])
        close_settings_btn.click(fn=on_close_settings, inputs=[view], outputs=[view, settings_panel])
        api_key.input(
            fn=callbacks_map["on_change_api_key"],
            inputs=[api_key],
            outputs=[status],
        )

    return demo
