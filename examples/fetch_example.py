"""
并发请求示例

展示如何使用 Agent 并发执行多个请求，并通过监听器读取结果。

运行方式:
    python examples/fetch_example.py https://example.com https://example.org
"""

import asyncio
import logging
from typing import List

import sys
sys.path.insert(0, str(__file__).rsplit("/", 2)[0])
sys.path.insert(0, str(__file__).rsplit("/", 2)[0] + "/curlx-sdk")

from curlx_sdk import Agent, RequestDescriptor, SDKConfig
from curlx_sdk.utils import is_valid_url

logger = logging.getLogger(__name__)


def on_complete(request: RequestDescriptor):
    """完成回调：打印状态码、耗时与响应长度"""
    response = request.get_response() or ""
    logger.info(
        f"{request.get_url()} -> {request.get_http_code()} "
        f"({request.get_time():.3f}s, {len(response)} chars)"
    )


async def fetch(urls: List[str], config: SDKConfig):
    async with Agent(config.agent, request_config=config.request) as agent:
        agent.add_listener(on_complete)

        for url in urls:
            if not is_valid_url(url):
                logger.warning(f"Skipping invalid URL: {url}")
                continue
            request = agent.new_request(url)
            request.set_headers({"Accept": "text/html,application/json;q=0.9,*/*;q=0.8"})

        await agent.execute()


async def main():
    """示例入口"""
    config = SDKConfig.from_env()

    # 配置日志
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    urls = sys.argv[1:]
    if not urls:
        logger.error("Usage: fetch_example.py URL [URL ...]")
        return

    await fetch(urls, config)


if __name__ == "__main__":
    asyncio.run(main())
