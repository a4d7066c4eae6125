"""
进程内传输层实现 - broker 默认使用的两种发布/订阅底座。

- LocalTransport：基于 asyncio.Queue 的异步队列。publish() 只负责入队，
  后台 dispatch() 任务持续消费队列，按通道名找到消费者，并为每条消息
  创建独立的 Task 执行。消费者之间互不阻塞，因此 Action 内部发起的
  嵌套调用可以在外层 Action 挂起期间完成完整的往返。
- DirectTransport：publish() 直接 await 对应通道的消费者，没有队列，
  也没有后台任务。整条调用链在同一个协程栈上展开，适合测试和嵌入式场景。

【Java 开发者类比】
- asyncio.Queue 类似于 Java 的 LinkedBlockingQueue
- dispatch() 后台任务类似于 ExecutorService 中的消费者线程
- 每条消息一个 Task，类似于把 Runnable 提交给线程池
"""

import asyncio

from loguru import logger

from arnelify_broker.bus.transport import ConsumerHandler, Transport
from arnelify_broker.errors import BrokerError, FatalBrokerError, NoConsumerError


class LocalTransport(Transport):
    """
    异步队列传输层。

    属性:
        queue: 待投递消息队列，元素为 (channel, message)
        _consumers: 通道消费者字典 {通道名: 回调函数}，每个通道只保留一个
        _inflight: 正在执行的投递任务集合
        _fatal: 分发过程中遇到的第一个致命错误
    """

    name = "local"

    def __init__(self, poll_interval: float = 1.0):
        super().__init__()
        self.queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue()
        self.poll_interval = poll_interval
        self._consumers: dict[str, ConsumerHandler] = {}
        self._inflight: set[asyncio.Task] = set()
        self._task: asyncio.Task | None = None
        self._running = False
        self._fatal: BaseException | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending_size(self) -> int:
        """队列中尚未分发的消息数量。"""
        return self.queue.qsize()

    def register_consumer(self, channel: str, handler: ConsumerHandler) -> None:
        self._consumers[channel] = handler

    def unregister_consumer(self, channel: str) -> None:
        self._consumers.pop(channel, None)

    async def publish(self, channel: str, message: str) -> None:
        if self._fatal is not None:
            raise self._fatal
        if not self._running:
            raise BrokerError("Transport is not running")
        logger.debug(f"Publish on {channel} ({len(message)} chars)")
        await self.queue.put((channel, message))

    async def start(self) -> None:
        """启动后台分发任务。重复调用无副作用。"""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self.dispatch())
        logger.info("Local transport started")

    async def dispatch(self) -> None:
        """
        消息分发器（后台常驻任务）。

        使用 wait_for 超时机制避免在 stop() 时长时间阻塞。
        找不到消费者的消息记录警告后丢弃。
        """
        while self._running:
            try:
                channel, message = await asyncio.wait_for(
                    self.queue.get(), timeout=self.poll_interval
                )
            except asyncio.TimeoutError:
                continue

            handler = self._consumers.get(channel)
            if handler is None:
                logger.warning(f"No consumer on channel {channel}, message dropped")
                continue

            task = asyncio.create_task(self._deliver(channel, handler, message))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def _deliver(self, channel: str, handler: ConsumerHandler, message: str) -> None:
        """执行单条消息的投递。普通异常只记录日志，致命异常终止分发。"""
        try:
            await handler(message)
        except FatalBrokerError as e:
            logger.critical(f"Fatal error on {channel}: {e}")
            self._fail(e)
        except Exception as e:
            logger.error(f"Error dispatching to {channel}: {e}")

    def _fail(self, exc: BaseException) -> None:
        if self._fatal is None:
            self._fatal = exc
        self._running = False
        # 队列中剩余的消息不再分发
        if self._task and self._task is not asyncio.current_task():
            self._task.cancel()
        if self.on_fatal:
            self.on_fatal(exc)

    async def wait_closed(self) -> None:
        """等待分发任务结束。如果是因致命错误结束，则重新抛出该错误。"""
        if self._task:
            await asyncio.gather(self._task, return_exceptions=True)
        if self._fatal is not None:
            raise self._fatal

    async def stop(self) -> None:
        """
        停止分发器，取消所有未完成的投递任务。

        如果此前发生过致命错误，停止后重新抛出。
        """
        self._running = False
        tasks = list(self._inflight)
        if self._task:
            tasks.append(self._task)
            self._task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
        logger.info("Local transport stopped")
        if self._fatal is not None:
            raise self._fatal


class DirectTransport(Transport):
    """
    直接调用传输层：publish() 即 await 消费者。

    消费者抛出的任何异常（包括致命异常）都会沿调用栈直接抛回给发布方。
    没有队列可以暂存消息，所以发布到无消费者的通道会抛出 NoConsumerError。
    """

    name = "direct"

    def __init__(self):
        super().__init__()
        self._consumers: dict[str, ConsumerHandler] = {}

    def register_consumer(self, channel: str, handler: ConsumerHandler) -> None:
        self._consumers[channel] = handler

    def unregister_consumer(self, channel: str) -> None:
        self._consumers.pop(channel, None)

    async def publish(self, channel: str, message: str) -> None:
        handler = self._consumers.get(channel)
        if handler is None:
            logger.warning(f"No consumer on channel {channel}")
            raise NoConsumerError(channel)
        logger.debug(f"Deliver on {channel} ({len(message)} chars)")
        await handler(message)


# 按名称查找传输层实现（与配置中的 broker.transport 对应）
TRANSPORTS: dict[str, type[Transport]] = {
    LocalTransport.name: LocalTransport,
    DirectTransport.name: DirectTransport,
}


def create_transport(name: str) -> Transport:
    """按名称创建传输层实例。未知名称抛出 ValueError。"""
    if name not in TRANSPORTS:
        raise ValueError(f"Unknown transport: {name}")
    return TRANSPORTS[name]()
