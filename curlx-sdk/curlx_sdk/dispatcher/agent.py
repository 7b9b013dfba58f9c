"""
CurlX SDK - 并发请求调度器
"""

import asyncio
import logging
from typing import Optional, List, Tuple

from aiohttp import ClientSession, TCPConnector

from ..config import AgentConfig, RequestConfig
from ..exceptions import AgentNotConnectedError, HandleClosedError
from ..http.handle import TransportHandle
from ..request import RequestDescriptor, Listener

import sys
sys.path.insert(0, str(__file__).rsplit("/", 4)[0])
from shared.models import HandleInfo, RequestPhase

logger = logging.getLogger(__name__)


class Agent:
    """并发请求调度器

    负责：
    - 持有待执行的请求
    - 在所有配置完成后获取各请求的传输句柄
    - 在同一个事件循环中并发执行句柄
    - 每个句柄完成时调用对应请求的 completion_hook（仅一次）

    Usage:
        async with Agent(config) as agent:
            request = agent.new_request("https://example.test/api")
            request.add_listener(on_done)
            await agent.execute()
    """

    def __init__(
        self,
        config: Optional[AgentConfig] = None,
        request_config: Optional[RequestConfig] = None
    ):
        self.config = config or AgentConfig()
        self.request_config = request_config or RequestConfig()
        self._session: Optional[ClientSession] = None

        # 待执行队列
        self._requests: List[RequestDescriptor] = []

        # 应用到新建请求的监听器
        self._listeners: List[Listener] = []

    async def connect(self):
        """建立会话"""
        if self._session is None:
            connector = TCPConnector(
                limit=self.config.connection_limit,
                keepalive_timeout=self.config.keepalive_timeout
            )
            self._session = ClientSession(connector=connector)
            logger.info("Agent session opened")

    async def disconnect(self):
        """关闭会话"""
        if self._session:
            await self._session.close()
            self._session = None
            logger.info("Agent session closed")

    @property
    def session(self) -> ClientSession:
        if self._session is None:
            raise AgentNotConnectedError("Agent not connected. Call connect() first.")
        return self._session

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    def add_listener(self, listener: Listener):
        """注册监听器，之后通过 new_request 创建的请求都会带上"""
        if not callable(listener):
            raise TypeError(f"Listener must be callable, got {type(listener).__name__}")
        if listener not in self._listeners:
            self._listeners.append(listener)

    def new_request(self, url: Optional[str] = None) -> RequestDescriptor:
        """创建带默认配置的请求并加入队列

        Args:
            url: 请求 URL

        Returns:
            新建的请求
        """
        request = RequestDescriptor(url, config=self.request_config)

        if self.config.default_headers:
            request.set_headers(self.config.default_headers)
        if self.config.default_options:
            request.set_options(self.config.default_options)
        if self.config.default_timeout_ms:
            request.set_timeout(self.config.default_timeout_ms)

        for listener in self._listeners:
            request.add_listener(listener)

        self.add_request(request)
        return request

    def add_request(self, request: RequestDescriptor) -> bool:
        """将请求加入队列

        已完成或已释放的请求不会再次执行。

        Returns:
            是否已加入队列
        """
        if not self._runnable(request):
            logger.warning(f"Ignoring request {request.request_id} in phase {request.phase.value}")
            return False
        if request not in self._requests:
            self._requests.append(request)
        return True

    @staticmethod
    def _runnable(request: RequestDescriptor) -> bool:
        if request.phase in (RequestPhase.COMPLETED, RequestPhase.DISPOSED):
            return False
        return not (request.phase == RequestPhase.BOUND and request.get_handle().closed)

    @property
    def pending(self) -> int:
        return len(self._requests)

    async def execute(self) -> List[RequestDescriptor]:
        """并发执行队列中的所有请求

        请求在此处绑定句柄，因此所有配置需在调用前完成。

        Returns:
            已完成的请求（按完成顺序）
        """
        session = self.session
        queued, self._requests = self._requests, []

        # 入队后可能已被释放或在别处完成
        requests = [request for request in queued if self._runnable(request)]
        for request in queued:
            if request not in requests:
                logger.warning(f"Skipping request {request.request_id} in phase {request.phase.value}")
        if not requests:
            return []

        semaphore = asyncio.Semaphore(self.config.max_concurrent)

        bound = [(request, request.get_handle()) for request in requests]

        async def run(request: RequestDescriptor, handle: TransportHandle) -> Tuple[RequestDescriptor, HandleInfo]:
            async with semaphore:
                info = await handle.perform(session)
            return request, info

        logger.info(f"Executing {len(requests)} requests (max_concurrent={self.config.max_concurrent})")

        tasks = [asyncio.ensure_future(run(request, handle)) for request, handle in bound]
        completed = []
        try:
            for future in asyncio.as_completed(tasks):
                try:
                    request, info = await future
                except HandleClosedError as e:
                    logger.warning(f"Skipping closed handle: {e}")
                    continue
                request.completion_hook(info.model_dump())
                completed.append(request)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.info(f"Completed {len(completed)} requests")
        return completed
