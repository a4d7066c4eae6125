"""
工具函数模块 - 标识、时间与通道命名等通用辅助函数。
"""

from arnelify_broker.utils.helpers import new_uuid, reply_channel, request_channel, timestamp

__all__ = ["new_uuid", "reply_channel", "request_channel", "timestamp"]
