"""
CurlX SDK - 工具函数
"""

from typing import Any, Dict, Iterable, List, Mapping, Union
from urllib.parse import urlencode

from pydantic import AnyUrl, TypeAdapter, ValidationError

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_url(url: Any) -> bool:
    """判断是否为合法的绝对 URL"""
    if not isinstance(url, str):
        return False
    try:
        _url_adapter.validate_python(url)
    except ValidationError:
        return False
    return True


def merge_first_wins(current: Mapping, new: Mapping) -> Dict:
    """合并映射，键冲突时保留已有的值

    已有的键保持原顺序，新键追加在后面。
    """
    merged = dict(current)
    for key, value in new.items():
        merged.setdefault(key, value)
    return merged


def as_header_table(headers: Union[Mapping, Iterable[str]]) -> Dict[Any, Any]:
    """将请求头转换为映射

    原始的 "name: value" 字符串使用位置下标 (0, 1, ...) 作为键。
    """
    if isinstance(headers, Mapping):
        return dict(headers)
    if isinstance(headers, str):
        headers = [headers]
    return {index: line for index, line in enumerate(headers)}


def normalize_headers(headers: Mapping) -> List[str]:
    """{'key': 'value'} -> ['key: value']，原始字符串条目原样保留"""
    normalized = []
    for key, value in headers.items():
        if isinstance(key, str):
            normalized.append(f"{key}: {value}")
        else:
            normalized.append(value)
    return normalized


def build_body(fields: Mapping) -> str:
    """将表单字段编码为 application/x-www-form-urlencoded 字符串"""
    return urlencode(list(_flatten(fields)))


def _flatten(fields: Mapping, prefix: str = ""):
    # 嵌套结构展开为 a[b]=c / a[0]=c
    for key, value in fields.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, Mapping):
            yield from _flatten(value, name)
        elif isinstance(value, (list, tuple)):
            yield from _flatten(dict(enumerate(value)), name)
        elif value is None:
            continue
        elif isinstance(value, bool):
            yield name, int(value)
        else:
            yield name, value


def camel_to_snake(name: str) -> str:
    """postData -> post_data, httpCode -> http_code, URL -> url"""
    chars = []
    for index, char in enumerate(name):
        if char.isupper() and index > 0:
            prev = name[index - 1]
            following = name[index + 1] if index + 1 < len(name) else ""
            # 连续大写视为一个缩写：HTTPCode -> http_code
            if prev.islower() or prev.isdigit() or (prev.isupper() and following.islower()):
                chars.append("_")
        chars.append(char.lower())
    return "".join(chars)
