"""
工具函数集合 - arnelify-broker 全局通用的辅助函数。

函数分类：
- 标识与时间：new_uuid, timestamp（broker 默认注入的身份/时间服务）
- 通道命名：request_channel, reply_channel
"""

import uuid
from datetime import datetime

# 通道后缀属于线上契约，调用方和服务方必须保持一致
REQUEST_SUFFIX = ":req"
REPLY_SUFFIX = ":res"


def new_uuid() -> str:
    """生成一个新的关联标识（uuid4 字符串）。"""
    return str(uuid.uuid4())


def timestamp() -> str:
    """获取当前时间的 ISO 8601 格式字符串。"""
    return datetime.now().isoformat()


def request_channel(topic: str) -> str:
    """主题对应的请求通道名，如 "first.welcome" → "first.welcome:req"。"""
    return f"{topic}{REQUEST_SUFFIX}"


def reply_channel(topic: str) -> str:
    """主题对应的应答通道名，如 "first.welcome" → "first.welcome:res"。"""
    return f"{topic}{REPLY_SUFFIX}"
