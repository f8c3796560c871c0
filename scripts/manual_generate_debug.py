"""One-off script for debugging a real generation against Replicate."""

import asyncio

from config.settings import load_config
from modules.ui.callbacks import build_callbacks
from modules.workflow.controller import build_controller
from modules.utils.logging import setup_logging


def main() -> None:
    # 1. 准备真实配置与服务对象（读取 .env 中的 REPLICATE_API_TOKEN）
    config = load_config()
    setup_logging(config)
    controller = build_controller(config)
    callbacks = build_callbacks(config, controller)

    print("历史记录数量:", len(controller.records))

    # 2. 调用生成回调，执行一次真实请求
    prompt = "a red fox in a snowy forest at dawn, cinematic lighting"
    image_url, gallery_items, status = asyncio.run(callbacks["on_generate"](prompt))

    print("状态:", status)
    if image_url:
        print("图像地址:", image_url)
        print("当前画廊数量:", len(gallery_items))
        path, message = callbacks["on_download_latest"]()
        print(message)
    else:
        print("未返回图像，请检查日志。")


if __name__ == "__main__":
    main()
