"""
基于 JSON 的编解码器实现。

- JSONCodec：紧凑 JSON 文本，便于调试时直接阅读报文
- Base64Codec：先编码为 JSON，再做 base64 包装，得到对传输层完全不透明的字符串
"""

import base64
import binascii
import json
from typing import Any

from arnelify_broker.codec.base import Codec
from arnelify_broker.errors import DecodeError


class JSONCodec(Codec):
    """紧凑 JSON 编解码器（不含多余空白，保留非 ASCII 字符）。"""

    name = "json"

    def encode(self, value: Any) -> str:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)

    def decode(self, message: str) -> Any:
        try:
            return json.loads(message)
        except (json.JSONDecodeError, TypeError) as e:
            raise DecodeError(f"Deserialized must be a valid JSON: {e}") from e


class Base64Codec(JSONCodec):
    """JSON + base64 包装。"""

    name = "base64"

    def encode(self, value: Any) -> str:
        raw = super().encode(value).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    def decode(self, message: str) -> Any:
        try:
            raw = base64.b64decode(message, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError, TypeError) as e:
            raise DecodeError(f"Message is not valid base64: {e}") from e
        return super().decode(raw)
