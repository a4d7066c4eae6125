"""
编解码器模块（codec 包）。

模块组成：
- base.py       : Codec 抽象基类
- json_codec.py : JSONCodec / Base64Codec 两个内置实现

添加新的编解码器只需实现 Codec 并登记到 CODECS 字典中，
配置文件里的 broker.codec 即可按名称引用。
"""

from arnelify_broker.codec.base import Codec
from arnelify_broker.codec.json_codec import Base64Codec, JSONCodec

# 按名称登记的内置编解码器
CODECS: dict[str, type[Codec]] = {
    JSONCodec.name: JSONCodec,
    Base64Codec.name: Base64Codec,
}


def create_codec(name: str) -> Codec:
    """按名称创建编解码器实例。未知名称抛出 ValueError。"""
    if name not in CODECS:
        raise ValueError(f"Unknown codec: {name}")
    return CODECS[name]()


__all__ = ["Codec", "JSONCodec", "Base64Codec", "CODECS", "create_codec"]
