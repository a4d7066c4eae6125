"""
消息总线模块 - 信封数据结构与进程内发布/订阅传输层。

消息流向（调用方 C 在主题 T 上发起调用，服务方 S 已订阅 T）：
  C.call(T) → Ctx → 通道 "T:req" → S 的请求消费者 → Action
  S 的 Action 返回 → Res → 通道 "T:res" → C 的应答消费者 → 唤醒等待中的调用

【Java 开发者类比】
- Ctx / Res 类似于 RPC 框架中的 Request / Response DTO
- Transport 类似于 JMS 的 Destination + MessageListener 抽象
"""

from arnelify_broker.bus.events import Ctx, Res
from arnelify_broker.bus.queue import DirectTransport, LocalTransport, create_transport
from arnelify_broker.bus.transport import Transport

__all__ = ["Ctx", "Res", "Transport", "LocalTransport", "DirectTransport", "create_transport"]
