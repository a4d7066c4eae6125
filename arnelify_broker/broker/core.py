"""
Broker 核心模块 - 请求/应答关联与主题分发的实现。

本模块实现了 Broker 类，它把一个"发布/订阅"传输层变成基于主题的 RPC：

调用流程（调用方 C 在主题 T 上发起调用，服务方 S 已订阅 T）：
  1. C.call(T, params)：生成 uuid U，在待决表登记 U → Future，
     把调用信封编码后发布到通道 "T:req"
  2. S 的 "T:req" 消费者解码信封，执行 S.handler(T, ctx)：查找 T 的 Action，
     执行后构造应答信封（相同的 U 和 T），编码后发布到通道 "T:res"
  3. C 的 "T:res" 消费者解码应答，调用 C.receive(res)：找到 U 对应的 Future，
     移除条目，用 res.content 完成它

第 2 步中的 Action 可以再调用 broker.call()，于是调用链天然支持递归：
外层调用的应答会一直推迟到内层调用完整往返之后。

【Java 开发者类比】
- call() 返回的协程类似于 CompletableFuture.get()，但不会阻塞线程
- 待决表类似于 Netty RPC 框架中的 ConcurrentHashMap<requestId, Promise>
- subscribe() 类似于同时注册一个 @RabbitListener（请求）和一个回调队列监听（应答）
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable

from loguru import logger

from arnelify_broker.broker.pending import PendingCalls
from arnelify_broker.broker.registry import Action, ActionRegistry, ChannelRegistry
from arnelify_broker.bus.events import Ctx, Res
from arnelify_broker.bus.queue import LocalTransport
from arnelify_broker.bus.transport import ConsumerHandler, Transport
from arnelify_broker.codec import Codec, JSONCodec
from arnelify_broker.errors import (
    ActionError,
    BrokerError,
    CallTimeoutError,
    DecodeError,
    FatalBrokerError,
    NoActionError,
)
from arnelify_broker.utils.helpers import new_uuid, reply_channel, request_channel, timestamp

# 发送函数：接收编码后的调用信封，负责把它交给传输层
Producer = Callable[[str], Awaitable[None]]


class Broker:
    """
    主题寻址的请求/应答消息代理。

    Broker 独占三张表：Action 注册表、通道注册表、待决调用表，
    其它组件只能通过下面的公开操作间接修改它们。

    属性:
        codec: 信封编解码器
        transport: 发布/订阅传输层
        call_timeout: 默认调用截止时间（秒），None 表示无限等待
        actions: 主题 → Action 注册表
        channels: 通道 → 消费者注册表
        pending: uuid → Future 待决调用表
    """

    def __init__(
        self,
        codec: Codec | None = None,
        transport: Transport | None = None,
        call_timeout: float | None = None,
        clock: Callable[[], str] = timestamp,
        id_factory: Callable[[], str] = new_uuid,
    ):
        """
        初始化 Broker。

        参数:
            codec: 编解码器，默认 JSONCodec
            transport: 传输层，默认 LocalTransport
            call_timeout: 默认调用截止时间（秒），None 表示不设上限
            clock: 时间服务，返回当前时间标签
            id_factory: 标识服务，返回进程内唯一的 uuid
        """
        self.codec = codec or JSONCodec()
        self.transport = transport or LocalTransport()
        self.transport.on_fatal = self._on_fatal
        self.call_timeout = call_timeout
        self._clock = clock
        self._id_factory = id_factory

        self.actions = ActionRegistry()
        self.channels = ChannelRegistry()
        self.pending = PendingCalls()

    @classmethod
    def from_config(cls, config: Any) -> "Broker":
        """根据配置对象（Config 或 BrokerConfig）创建 Broker。"""
        from arnelify_broker.bus.queue import create_transport
        from arnelify_broker.codec import create_codec

        cfg = getattr(config, "broker", config)
        return cls(
            codec=create_codec(cfg.codec),
            transport=create_transport(cfg.transport),
            call_timeout=cfg.call_timeout,
        )

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """启动传输层。"""
        await self.transport.start()
        logger.info(
            f"Broker started (codec={self.codec.name}, transport={self.transport.name})"
        )

    async def stop(self) -> None:
        """
        停止传输层。

        仍在等待应答的调用以 BrokerError 结束；如果传输层此前遇到过
        致命错误，该错误会在这里重新抛出。
        """
        dropped = self.pending.fail_all(BrokerError("Broker stopped"))
        if dropped:
            logger.warning(f"Broker stopped with {dropped} pending call(s)")
        await self.transport.stop()
        logger.info("Broker stopped")

    async def __aenter__(self) -> "Broker":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def _on_fatal(self, exc: BaseException) -> None:
        """传输层报告致命错误：让所有等待中的调用以该错误结束。"""
        self.pending.fail_all(exc)

    # ------------------------------------------------------------------
    # 编解码
    # ------------------------------------------------------------------

    def serialize(self, value: dict[str, Any]) -> str:
        """把信封字典编码为传输层字符串。"""
        return self.codec.encode(value)

    def deserialize(self, message: str) -> dict[str, Any]:
        """
        把传输层字符串解码为信封字典。

        异常:
            DecodeError: 报文无法解码，或解码结果不是字典
        """
        data = self.codec.decode(message)
        if not isinstance(data, dict):
            raise DecodeError("Deserialized must be a valid JSON object.")
        return data

    # ------------------------------------------------------------------
    # 传输层薄封装
    # ------------------------------------------------------------------

    async def producer(self, channel: str, message: str) -> None:
        """在 channel 上发布一条已编码的消息。"""
        await self.transport.publish(channel, message)

    def consumer(self, channel: str, handler: ConsumerHandler) -> None:
        """
        为 channel 注册消费者（后注册者覆盖先注册者）。

        传输层上绑定的是一个按通道名转发的闭包，实际回调始终以
        通道注册表中的最新记录为准。
        """
        self.channels.register(channel, handler)

        async def on_message(message: str) -> None:
            current = self.channels.get(channel)
            if current is None:
                logger.warning(f"Channel {channel} has no consumer, message dropped")
                return
            await current(message)

        self.transport.register_consumer(channel, on_message)

    # ------------------------------------------------------------------
    # Action 与订阅
    # ------------------------------------------------------------------

    def set_action(self, topic: str, action: Action) -> None:
        """为 topic 注册 Action，替换已有的注册。topic 不能为空。"""
        self.actions.register(topic, action)

    def subscribe(self, topic: str, action: Action) -> None:
        """
        订阅主题（复合操作）。

        1. 把 action 注册为 topic 的 Action
        2. 在 "topic:res" 上注册应答消费者：解码应答并调用 receive()
        3. 在 "topic:req" 上注册请求消费者：解码调用信封，执行 handler()，
           把应答编码后发布到 "topic:res"

        同一次 subscribe 既让本进程能服务该主题的请求，
        也让本进程此前在该主题上发出的调用能收到应答。
        """
        self.set_action(topic, action)

        async def on_reply(message: str) -> None:
            res = Res.from_dict(self.deserialize(message))
            self.receive(res)

        async def on_request(message: str) -> None:
            ctx = Ctx.from_dict(self.deserialize(message))
            res = await self.handler(ctx.topic, ctx)
            try:
                message = self.serialize(res.to_dict())
            except FatalBrokerError:
                raise
            except Exception as e:
                # Action 的返回值无法编码时改为回复失败标记
                logger.error(f"Reply for {ctx.topic} ({ctx.uuid}) cannot be encoded: {e}")
                error = {"type": type(e).__name__, "text": str(e)}
                res = Res.reply(ctx, None, self._clock(), error=error)
                message = self.serialize(res.to_dict())
            await self.producer(reply_channel(ctx.topic), message)

        self.consumer(reply_channel(topic), on_reply)
        self.consumer(request_channel(topic), on_request)
        logger.info(f"Subscribed to {topic}")

    def unsubscribe(self, topic: str) -> None:
        """
        取消订阅：移除 topic 的 Action 以及 "topic:req" / "topic:res" 两个通道的消费者。

        之后本进程既不再服务该主题，也收不到该主题的应答。
        topic 未订阅时什么也不做。
        """
        self.actions.unregister(topic)
        for channel in (request_channel(topic), reply_channel(topic)):
            self.channels.unregister(channel)
            self.transport.unregister_consumer(channel)
        logger.info(f"Unsubscribed from {topic}")

    # ------------------------------------------------------------------
    # 调用方
    # ------------------------------------------------------------------

    async def call(self, topic: str, params: Any, timeout: float | None = None) -> Any:
        """
        在 topic 上发起一次调用并等待结果。

        参数:
            topic: 目标主题
            params: 任意可编码的参数
            timeout: 截止时间（秒），None 时使用 call_timeout

        返回:
            服务方 Action 的返回值（应答信封的 content）

        异常:
            ActionError: 服务方 Action 执行失败
            CallTimeoutError: 截止时间内未收到应答
        """

        async def produce(message: str) -> None:
            await self.producer(request_channel(topic), message)

        return await self.send(topic, params, produce, timeout=timeout)

    async def send(
        self,
        topic: str,
        params: Any,
        producer: Producer,
        timeout: float | None = None,
    ) -> Any:
        """
        构造调用信封并通过 producer 发出，然后等待匹配的应答。

        状态变化：CREATED → SENT → PENDING → RESOLVED。
        发送失败时立即移除待决条目并把异常抛给调用方。
        """
        if timeout is None:
            timeout = self.call_timeout

        uuid = self._id_factory()
        future = self.pending.add(uuid)
        ctx = Ctx(topic=topic, created_at=self._clock(), params=params, uuid=uuid)

        try:
            await producer(self.serialize(ctx.to_dict()))
        except BaseException:
            self.pending.pop(uuid)
            raise
        logger.debug(f"Call {uuid} sent to {topic}")

        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Call {uuid} to {topic} timed out after {timeout}s")
            raise CallTimeoutError(topic, uuid, timeout) from None
        finally:
            self.pending.pop(uuid)

    def receive(self, res: Res) -> bool:
        """
        把应答交给等待中的调用。

        uuid 不在待决表中（调用已放弃、超时或重复投递）属于链路噪声：
        记录警告并丢弃，不抛异常。

        返回:
            True 表示完成了一个调用，False 表示应答被丢弃
        """
        if res.error is not None:
            exc = ActionError(
                res.topic,
                res.uuid,
                str(res.error.get("type", "Error")),
                str(res.error.get("text", "")),
            )
            matched = self.pending.reject(res.uuid, exc)
        else:
            matched = self.pending.resolve(res.uuid, res.content)

        if matched:
            logger.debug(f"Call {res.uuid} resolved from {res.topic}")
        else:
            logger.warning(f"Unmatched reply {res.uuid} on {res.topic}, dropped")
        return matched

    # ------------------------------------------------------------------
    # 服务方
    # ------------------------------------------------------------------

    async def handler(self, topic: str, ctx: Ctx) -> Res:
        """
        执行 topic 的 Action 并把返回值包装成应答信封。

        应答的 createdAt / topic / uuid 原样复制自 ctx，与 Action 的行为无关。
        Action 抛出的普通异常被编码进应答的 error 标记；
        致命错误（如嵌套调用遇到的 NoActionError）继续向上抛出。

        异常:
            NoActionError: topic 没有注册 Action
        """
        ctx.received_at = self._clock()
        action = self.actions.get(topic)
        if action is None:
            raise NoActionError(topic)

        try:
            content = action(ctx)
            if inspect.isawaitable(content):
                content = await content
        except FatalBrokerError:
            raise
        except Exception as e:
            logger.error(f"Action for {topic} failed: {e}")
            if isinstance(e, ActionError):
                error = {"type": e.error_type, "text": e.text}
            else:
                error = {"type": type(e).__name__, "text": str(e)}
            return Res.reply(ctx, None, self._clock(), error=error)

        return Res.reply(ctx, content, self._clock())

    @property
    def topics(self) -> list[str]:
        """已注册 Action 的主题列表。"""
        return self.actions.names
