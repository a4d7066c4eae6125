"""
编解码器基类定义模块。

broker 把信封的编码/解码视为一个不透明的"字节变换"服务：
- encode(value) → str：把结构化数据变成可以在传输层上发送的字符串
- decode(str) → value：逆变换

解码失败是致命的（报文损坏无法恢复），实现类必须抛出 DecodeError，
不允许返回部分结果或"尽力而为"的结果。

类比 Java：
  - Codec 相当于一个 interface，类似 Jackson 的 ObjectMapper 被抽象成 encode/decode 两个方法
"""

from abc import ABC, abstractmethod
from typing import Any


class Codec(ABC):
    """
    编解码器抽象基类。

    属性：
        name: 编解码器名称（如 "json"），与配置中的 broker.codec 字段对应
    """

    name: str = "base"

    @abstractmethod
    def encode(self, value: Any) -> str:
        """把结构化数据编码为字符串。"""
        pass

    @abstractmethod
    def decode(self, message: str) -> Any:
        """
        把字符串解码为结构化数据。

        异常：
            DecodeError: 输入不是合法的编码数据
        """
        pass
