"""
传输层基类模块 - 定义 broker 所依赖的发布/订阅传输契约。

broker 本身不关心字节是怎么从生产者送到消费者的，只要求传输层提供：
- publish(channel, message)：在指定通道上发布一条已编码的字符串
- register_consumer(channel, handler)：为通道注册消费者，每个通道只保留一个
  （后注册者覆盖先注册者，本层不做扇出）
- unregister_consumer(channel)：移除通道的消费者
- start() / stop()：生命周期管理

投递顺序、至少一次/至多一次等语义由具体传输层决定，broker 原样继承。

【Java 开发者类比】
- Transport 相当于 JMS 的 ConnectionFactory + MessageProducer/MessageConsumer 的合体接口
- 具体实现见 bus/queue.py（进程内队列 / 直接调用两种）
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

# 消费者回调：接收一条已编码的消息字符串
ConsumerHandler = Callable[[str], Awaitable[None]]

# 致命错误回调：传输层在后台分发中遇到致命错误时通知上层
FatalHandler = Callable[[BaseException], None]


class Transport(ABC):
    """
    传输层抽象基类。

    属性:
        name: 传输层标识名（如 "local"、"direct"），与配置中的 transport 字段对应
        on_fatal: 可选的致命错误回调，由 Broker 在构造时挂载
    """

    name: str = "base"

    def __init__(self):
        self.on_fatal: FatalHandler | None = None

    @abstractmethod
    async def publish(self, channel: str, message: str) -> None:
        """在 channel 上发布一条已编码的消息。"""
        pass

    @abstractmethod
    def register_consumer(self, channel: str, handler: ConsumerHandler) -> None:
        """为 channel 注册消费者；同名通道已有消费者时直接替换。"""
        pass

    @abstractmethod
    def unregister_consumer(self, channel: str) -> None:
        """移除 channel 的消费者；通道不存在时什么也不做。"""
        pass

    async def start(self) -> None:
        """启动传输层。默认无需任何准备工作。"""
        pass

    async def stop(self) -> None:
        """停止传输层并释放资源。"""
        pass

    @property
    def is_running(self) -> bool:
        """传输层是否处于可投递状态。"""
        return True
