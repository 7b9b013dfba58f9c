"""
CurlX SDK - 请求描述对象

描述一次 HTTP 调用所需的全部配置，延迟创建传输句柄，
并在 Agent 通知完成后回调已注册的监听器。
"""

import logging
import numbers
import warnings
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .config import RequestConfig
from .exceptions import UnknownFieldWarning
from .http.handle import TransportHandle
from .utils import (
    as_header_table,
    build_body,
    camel_to_snake,
    is_valid_url,
    merge_first_wins,
    normalize_headers,
)

import sys
sys.path.insert(0, str(__file__).rsplit("/", 3)[0])
from shared.models import Knob, RequestPhase, generate_id

logger = logging.getLogger(__name__)

Listener = Callable[["RequestDescriptor"], Any]


class RequestDescriptor:
    """请求描述对象

    负责：
    - 累积 URL、表单字段、请求头、传输选项与超时
    - 首次访问时创建传输句柄（之后不再重建）
    - 缓存响应结果（首次读取后固定）
    - 完成时按注册顺序通知监听器

    表单字段、请求头和选项的合并规则一致：键冲突时保留已有的值。

    Usage:
        request = RequestDescriptor("https://example.test/api")
        request.set_body_fields({"id": "7"})
        request.set_timeout(2000)
        request.add_listener(lambda r: print(r.get_http_code()))

        agent.add_request(request)
        await agent.execute()
    """

    def __init__(self, url: Optional[str] = None, config: Optional[RequestConfig] = None):
        self.config = config or RequestConfig()
        self.request_id = generate_id("req")

        self._url: Optional[str] = None
        self._post: Dict[Any, Any] = {}
        self._headers: Dict[Any, Any] = {}
        self._options: Dict[Any, Any] = self.config.baseline_options()
        self._timeout: Optional[float] = None

        # 传输句柄（延迟创建）
        self._handle: Optional[TransportHandle] = None

        # 完成回调
        self._listeners: List[Listener] = []

        # 结果缓存
        self._response: Optional[str] = None
        self._http_code: Optional[int] = None

        self._completed = False
        self._disposed = False

        self.set_url(url)

    def __del__(self):
        if getattr(self, "_handle", None) is not None:
            self.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()

    def __repr__(self) -> str:
        return f"<RequestDescriptor {self.request_id} {self._url!r} {self.phase.value}>"

    # ------------------------------------------------------------------
    # 动态字段访问
    # ------------------------------------------------------------------

    def _accessor(self, prefix: str, name: str) -> Optional[Callable]:
        field = camel_to_snake(name)
        if not field or field.startswith("_") or field == "field":
            return None
        return getattr(self, f"{prefix}_{field}", None)

    def get_field(self, name: str) -> Any:
        """按名称读取字段（post_data / postData -> get_post_data）

        未定义的字段会发出 UnknownFieldWarning 并返回 None
        """
        getter = self._accessor("get", name)
        if getter is None:
            warnings.warn(f"undefined property {name}", UnknownFieldWarning, stacklevel=2)
            return None
        return getter()

    def set_field(self, name: str, value: Any):
        """按名称设置字段

        未定义的字段会发出 UnknownFieldWarning，不做任何修改
        """
        setter = self._accessor("set", name)
        if setter is None:
            warnings.warn(f"undefined property {name}", UnknownFieldWarning, stacklevel=2)
            return
        setter(value)

    # ------------------------------------------------------------------
    # 配置
    # ------------------------------------------------------------------

    def set_url(self, url: Optional[str]):
        """设置 URL，非法的绝对 URL 会被忽略"""
        if is_valid_url(url):
            self._url = url

    def get_url(self) -> Optional[str]:
        return self._url

    def set_body_fields(self, post_data: Mapping):
        """合并表单字段并将请求标记为 POST

        Args:
            post_data: 表单字段，已存在的键不会被覆盖
        """
        self._post = merge_first_wins(self._post, post_data)
        self._options[Knob.POST] = True
        if self._post:
            self._options[Knob.POST_FIELDS] = build_body(self._post)

    def get_body_fields(self) -> Dict[Any, Any]:
        return self._post

    set_post_data = set_body_fields
    get_post_data = get_body_fields

    def set_headers(self, headers: Union[Mapping, Iterable[str]]):
        """添加请求头

        Args:
            headers: {'name': 'value'} 或 ['name: value'] 格式
        """
        self._headers = merge_first_wins(self._headers, as_header_table(headers))
        self._options[Knob.HTTP_HEADER] = normalize_headers(self._headers)

    def get_headers(self) -> Dict[Any, Any]:
        return self._headers

    def set_options(self, options: Mapping):
        """添加传输选项（键可以是 Knob 或其字符串值）"""
        coerced = {Knob.coerce(key): value for key, value in options.items()}
        self._options = merge_first_wins(self._options, coerced)

    def get_options(self) -> Dict[Any, Any]:
        return self._options

    def set_timeout(self, timeout: float):
        """设置超时（毫秒），仅接受正数"""
        if isinstance(timeout, bool) or not isinstance(timeout, numbers.Real):
            return
        if timeout > 0:
            self._timeout = timeout
            self._options[Knob.TIMEOUT_MS] = timeout

    def get_timeout(self) -> Optional[float]:
        return self._timeout

    # ------------------------------------------------------------------
    # 句柄与结果
    # ------------------------------------------------------------------

    def get_handle(self) -> TransportHandle:
        """获取传输句柄，首次调用时使用当前 URL 与选项创建"""
        if self._handle is None:
            self._handle = TransportHandle(self._url, self._options)
            logger.debug(f"Bound request {self.request_id} to {self._url}")
        return self._handle

    def get_response(self) -> Optional[str]:
        """响应内容

        首次读取后缓存；在完成前读取会得到空字符串并一直保留。
        """
        if self._response is None and self._handle is not None:
            self._response = self._handle.get_content()
        return self._response

    def get_http_code(self) -> Optional[int]:
        """HTTP 状态码（缓存规则同 get_response，过早读取得到 0）"""
        if self._http_code is None and self._handle is not None:
            self._http_code = self._handle.get_info().http_code
        return self._http_code

    def get_time(self) -> float:
        """请求耗时（秒），尚未创建句柄时为 0.0"""
        if self._handle is not None:
            return self._handle.get_info().total_time
        return 0.0

    @property
    def phase(self) -> RequestPhase:
        if self._disposed:
            return RequestPhase.DISPOSED
        if self._completed:
            return RequestPhase.COMPLETED
        if self._handle is not None:
            return RequestPhase.BOUND
        return RequestPhase.UNBOUND

    # ------------------------------------------------------------------
    # 监听器
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener):
        """注册完成监听器，重复注册会被忽略"""
        if not callable(listener):
            raise TypeError(f"Listener must be callable, got {type(listener).__name__}")
        if listener not in self._listeners:
            self._listeners.append(listener)

    def get_listeners(self) -> List[Listener]:
        return self._listeners

    def completion_hook(self, info: Any):
        """由 Agent 在句柄完成时调用（每个请求仅一次）

        Args:
            info: Agent 提供的完成信息，此处不解析
        """
        self._completed = True
        self._notify()

    def _notify(self):
        for listener in self._listeners:
            listener(self)

    # ------------------------------------------------------------------
    # 复制与释放
    # ------------------------------------------------------------------

    def __copy__(self) -> "RequestDescriptor":
        cls = self.__class__
        duplicate = cls.__new__(cls)
        duplicate.__dict__.update(self.__dict__)

        duplicate.request_id = generate_id("req")
        duplicate._post = dict(self._post)
        duplicate._headers = dict(self._headers)
        duplicate._options = dict(self._options)
        duplicate._listeners = list(self._listeners)

        # 句柄不能共享，复制出的请求尚未执行
        if self._handle is not None:
            if self._handle.closed:
                duplicate._handle = None
            else:
                duplicate._handle = self._handle.duplicate()
        duplicate._completed = False
        duplicate._disposed = False
        return duplicate

    def clone(self) -> "RequestDescriptor":
        """复制请求；已绑定的句柄会被复制而不是共享"""
        return self.__copy__()

    def dispose(self):
        """释放传输句柄"""
        if self._handle is not None and not self._handle.closed:
            self._handle.close()
        self._disposed = True

    # ------------------------------------------------------------------
    # 属性访问
    # ------------------------------------------------------------------

    url = property(get_url, set_url)
    post_data = property(get_body_fields, set_body_fields)
    headers = property(get_headers, set_headers)
    options = property(get_options, set_options)
    timeout = property(get_timeout, set_timeout)
    handle = property(get_handle)
    listeners = property(get_listeners)
    response = property(get_response)
    http_code = property(get_http_code)
