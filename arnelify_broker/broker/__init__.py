"""
Broker 核心模块 - 调用/应答关联与主题分发。

模块组成：
- core.py     : Broker 编排类（call / subscribe / receive / handler）
- registry.py : ActionRegistry / ChannelRegistry 两张名称映射表
- pending.py  : PendingCalls 待决调用表（uuid → Future）
"""

from arnelify_broker.broker.core import Broker
from arnelify_broker.broker.pending import PendingCalls
from arnelify_broker.broker.registry import ActionRegistry, ChannelRegistry

__all__ = ["Broker", "PendingCalls", "ActionRegistry", "ChannelRegistry"]
