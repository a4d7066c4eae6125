"""
信封类型定义模块 - 定义调用双方在传输层上交换的两种数据结构。

本模块定义了两个核心数据类：
- Ctx：调用信封（调用方 → 服务方），一次逻辑调用对应一个 Ctx
- Res：应答信封（服务方 → 调用方），携带 Action 的返回值

两者通过 uuid 字段关联：Res.uuid 原样复制自 Ctx.uuid，调用方据此
在待决表中找到正在等待的调用。

线上格式使用 camelCase 键名（createdAt / receivedAt），
Python 内部使用 snake_case 属性名，to_dict() / from_dict() 负责转换。

【Java 开发者类比】
- @dataclass 等价于 Java 的 record 类或 Lombok 的 @Data
- from_dict() 相当于 Jackson 反序列化 + 最基本的结构校验
"""

from dataclasses import dataclass
from typing import Any, Mapping

from arnelify_broker.errors import DecodeError

# Ctx 在线上必须携带的键
CTX_FIELDS = ("topic", "createdAt", "receivedAt", "params", "uuid")
# Res 在线上必须携带的键（error 为可选键）
RES_FIELDS = ("content", "createdAt", "receivedAt", "topic", "uuid")


def _require(data: Any, fields: tuple[str, ...], kind: str) -> Mapping[str, Any]:
    """
    校验解码后的数据是否具备信封的基本结构。

    只做结构良好性检查：必须是字典、必须包含所有键、
    topic / uuid / createdAt 必须是字符串。不做任何业务层面的 schema 校验。

    异常:
        DecodeError: 结构不合法
    """
    if not isinstance(data, Mapping):
        raise DecodeError(f"{kind} must be an object, got {type(data).__name__}")
    missing = [f for f in fields if f not in data]
    if missing:
        raise DecodeError(f"{kind} is missing fields: {', '.join(missing)}")
    for key in ("topic", "uuid", "createdAt"):
        if not isinstance(data[key], str):
            raise DecodeError(f"{kind}.{key} must be a string")
    return data


@dataclass
class Ctx:
    """
    调用信封 - 描述一次对外发起的逻辑调用。

    属性:
        topic: 调用的目标主题（创建后不可更改）
        created_at: 信封创建时间
        params: 调用方提供的任意结构化参数
        uuid: 全局唯一的关联标识，创建时分配一次，之后不再改变
        received_at: 服务方开始处理时写入的时间，发送时为 None
    """

    topic: str
    created_at: str
    params: Any
    uuid: str
    received_at: str | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        # topic 与 uuid 只允许在构造时赋值
        if name in ("topic", "uuid") and name in self.__dict__:
            raise AttributeError(f"Ctx.{name} is immutable")
        super().__setattr__(name, value)

    def to_dict(self) -> dict[str, Any]:
        """转换为线上格式（camelCase 键名）。"""
        return {
            "topic": self.topic,
            "createdAt": self.created_at,
            "receivedAt": self.received_at,
            "params": self.params,
            "uuid": self.uuid,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Ctx":
        """从线上格式还原调用信封。结构不合法时抛出 DecodeError。"""
        data = _require(data, CTX_FIELDS, "Ctx")
        return cls(
            topic=data["topic"],
            created_at=data["createdAt"],
            received_at=data["receivedAt"],
            params=data["params"],
            uuid=data["uuid"],
        )


@dataclass
class Res:
    """
    应答信封 - 描述一次调用的处理结果。

    属性:
        content: Action 的返回值（可以是嵌套调用的最终结果）
        created_at: 原样复制自调用信封
        received_at: 处理函数生成应答时的时间
        topic: 原样复制自调用信封
        uuid: 原样复制自调用信封，是把应答路由回调用方的关联键
        error: 失败标记。Action 正常返回时为 None；
               Action 抛出异常时为 {"type": 异常类名, "text": 异常信息}
    """

    content: Any
    created_at: str
    received_at: str
    topic: str
    uuid: str
    error: dict[str, str] | None = None

    @property
    def ok(self) -> bool:
        """应答是否表示成功。"""
        return self.error is None

    @classmethod
    def reply(cls, ctx: Ctx, content: Any, received_at: str,
              error: dict[str, str] | None = None) -> "Res":
        """根据调用信封构造应答，createdAt / topic / uuid 均原样复制。"""
        return cls(
            content=content,
            created_at=ctx.created_at,
            received_at=received_at,
            topic=ctx.topic,
            uuid=ctx.uuid,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        """转换为线上格式（camelCase 键名），成功时省略 error 键。"""
        data = {
            "content": self.content,
            "createdAt": self.created_at,
            "receivedAt": self.received_at,
            "topic": self.topic,
            "uuid": self.uuid,
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Res":
        """从线上格式还原应答信封。结构不合法时抛出 DecodeError。"""
        data = _require(data, RES_FIELDS, "Res")
        error = data.get("error")
        if error is not None and not isinstance(error, Mapping):
            raise DecodeError("Res.error must be an object")
        return cls(
            content=data["content"],
            created_at=data["createdAt"],
            received_at=data["receivedAt"],
            topic=data["topic"],
            uuid=data["uuid"],
            error=dict(error) if error is not None else None,
        )
