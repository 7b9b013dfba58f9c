"""
CurlX SDK - 传输句柄
"""

import asyncio
import logging
import sys
import time
from typing import Optional, Dict, Any, List, Tuple

import aiohttp
from aiohttp import ClientSession, ClientTimeout

from ..exceptions import HandleClosedError

sys.path.insert(0, str(__file__).rsplit("/", 4)[0])
from shared.models import Knob, HandleInfo

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class TransportHandle:
    """传输句柄

    创建时一次性应用 URL 与选项表，之后对请求对象的修改不会影响句柄。
    由 Agent 通过 aiohttp 会话执行。

    Usage:
        handle = TransportHandle("https://example.test", {Knob.TIMEOUT_MS: 2000})
        info = await handle.perform(session)
        print(info.http_code, handle.get_content())
    """

    def __init__(self, url: Optional[str], options: Optional[Dict[Any, Any]] = None):
        self.url = url
        self._options: Dict[Any, Any] = dict(options or {})
        self._closed = False

        # 结果
        self._content = ""
        self._info = HandleInfo(url=url)

        logger.debug(f"Created transport handle for {url}")

    @property
    def options(self) -> Dict[Any, Any]:
        """创建时应用的选项表（副本）"""
        return dict(self._options)

    @property
    def closed(self) -> bool:
        return self._closed

    def duplicate(self) -> "TransportHandle":
        """复制句柄：相同的 URL 与选项，全新的结果状态"""
        if self._closed:
            raise HandleClosedError("Cannot duplicate a closed handle")
        logger.debug(f"Duplicating transport handle for {self.url}")
        return TransportHandle(self.url, self._options)

    def close(self):
        """释放句柄"""
        if not self._closed:
            self._closed = True
            logger.debug(f"Closed transport handle for {self.url}")

    def get_content(self) -> str:
        """响应体（完成前为空字符串）"""
        return self._content

    def get_info(self) -> HandleInfo:
        """完成元数据快照"""
        return self._info.model_copy()

    def _option(self, knob: Knob, default: Any = None) -> Any:
        return self._options.get(knob, default)

    def _method(self) -> str:
        custom = self._option(Knob.CUSTOM_REQUEST)
        if custom:
            return str(custom).upper()
        if self._option(Knob.POST):
            return "POST"
        return "GET"

    def _headers(self) -> List[Tuple[str, str]]:
        headers = []
        for line in self._option(Knob.HTTP_HEADER) or []:
            name, sep, value = str(line).partition(":")
            if not sep:
                logger.debug(f"Ignoring malformed header line: {line!r}")
                continue
            headers.append((name.strip(), value.strip()))

        user_agent = self._option(Knob.USER_AGENT)
        if user_agent:
            headers.append(("User-Agent", str(user_agent)))

        if self._option(Knob.POST_FIELDS) is not None:
            if not any(name.lower() == "content-type" for name, _ in headers):
                headers.append(("Content-Type", FORM_CONTENT_TYPE))
        return headers

    def _request_kwargs(self) -> Dict[str, Any]:
        for key in self._options:
            if not isinstance(key, Knob):
                logger.debug(f"Ignoring unsupported option {key!r}")

        kwargs: Dict[str, Any] = {
            "headers": self._headers(),
            "allow_redirects": bool(self._option(Knob.FOLLOW_LOCATION, False)),
        }

        body = self._option(Knob.POST_FIELDS)
        if body is not None:
            kwargs["data"] = body.encode("utf-8") if isinstance(body, str) else body

        timeout_ms = self._option(Knob.TIMEOUT_MS)
        if timeout_ms:
            kwargs["timeout"] = ClientTimeout(total=timeout_ms / 1000)

        max_redirs = self._option(Knob.MAX_REDIRS)
        if max_redirs is not None:
            kwargs["max_redirects"] = int(max_redirs)
        return kwargs

    async def perform(self, session: ClientSession) -> HandleInfo:
        """执行请求

        传输层错误不会抛出，而是记录在 HandleInfo.error 中，http_code 为 0。

        Args:
            session: aiohttp 会话

        Returns:
            完成元数据
        """
        if self._closed:
            raise HandleClosedError(f"Handle for {self.url} is closed")

        method = self._method()
        kwargs = self._request_kwargs()
        info = HandleInfo(url=self.url)
        text = ""

        start_time = time.monotonic()
        if self.url is None:
            info.error = "No URL set"
            logger.warning(f"{method} request has no URL, skipping")
        else:
            try:
                async with session.request(method, self.url, **kwargs) as response:
                    body = await response.read()
                    info.http_code = response.status
                    info.effective_url = str(response.url)
                    info.content_type = response.content_type
                    text = body.decode(response.charset or "utf-8", errors="replace")

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                info.error = str(e) or e.__class__.__name__
                logger.warning(f"{method} {self.url} failed: {info.error}")

        info.total_time = time.monotonic() - start_time

        if self._option(Knob.RETURN_TRANSFER):
            self._content = text
        else:
            sys.stdout.write(text)
            self._content = ""

        self._info = info
        logger.debug(f"{method} {self.url} -> {info.http_code} in {info.total_time:.3f}s")
        return self.get_info()
