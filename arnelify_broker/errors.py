"""
异常定义模块 - arnelify-broker 的统一错误分类。

错误分为三个层级：
- 进程级（FatalBrokerError）：对端之间的契约已被破坏，本地无法恢复，
  例如收到无法解码的报文、请求了未注册处理函数的主题
- 调用级（CallTimeoutError / ActionError / NoConsumerError）：只影响单次调用，由调用方自行处理
- 链路级：未匹配的应答（uuid 不在待决表中）只记录日志，不抛异常

【Java 开发者类比】
- FatalBrokerError 类似于 java.lang.Error，不应该被业务代码捕获后继续运行
- ActionError 类似于 RPC 框架中的 RemoteException，携带远端异常的类型与信息
"""


class BrokerError(Exception):
    """所有 broker 异常的基类。"""


class FatalBrokerError(BrokerError):
    """
    致命错误基类。

    传输层的分发器遇到此类异常时会停止分发并向上抛出，
    宿主进程应当据此终止运行。
    """


class DecodeError(FatalBrokerError):
    """报文无法解码为结构良好的信封（非法编码、非字典、缺少必需字段等）。"""


class NoActionError(FatalBrokerError):
    """收到某主题的请求，但该主题没有注册任何 Action。"""

    def __init__(self, topic: str):
        super().__init__(f"No action registered for topic '{topic}'")
        self.topic = topic


class CallTimeoutError(BrokerError):
    """调用在截止时间内没有收到应答，待决表中的条目已被移除。"""

    def __init__(self, topic: str, uuid: str, timeout: float):
        super().__init__(f"Call to '{topic}' ({uuid}) timed out after {timeout}s")
        self.topic = topic
        self.uuid = uuid
        self.timeout = timeout


class ActionError(BrokerError):
    """
    远端 Action 执行失败。

    应答信封中的 error 标记会在调用方被还原为此异常，
    error_type 为远端异常类名，text 为异常信息。
    """

    def __init__(self, topic: str, uuid: str, error_type: str, text: str):
        super().__init__(f"{error_type}: {text}")
        self.topic = topic
        self.uuid = uuid
        self.error_type = error_type
        self.text = text


class NoConsumerError(BrokerError):
    """消息发布到了没有消费者的通道上，且传输层无法把它留待以后投递。"""

    def __init__(self, channel: str):
        super().__init__(f"No consumer on channel '{channel}'")
        self.channel = channel
