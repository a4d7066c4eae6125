"""
注册表模块 (broker/registry.py)

模块职责：
    管理 broker 实例持有的两张"名称 → 回调"映射表：
    - ActionRegistry：主题名 → 业务处理函数（Action）
    - ChannelRegistry：通道名 → 消费者回调

    两张表都遵循"后注册者覆盖先注册者"的规则，不做扇出。
    它们只归 Broker 所有，只能通过 Broker 的公开操作修改。

设计模式对比（Java 视角）：
    类似于 Spring 中的 HandlerMapping：
    - register() 相当于注册一个 @RequestMapping
    - get() 相当于按 URL 查找 Handler
    区别是这里是运行时动态注册，而非编译时注解扫描。
"""

from typing import Any, Callable, Generic, TypeVar

from arnelify_broker.bus.events import Ctx
from arnelify_broker.bus.transport import ConsumerHandler

# Action 可以是普通函数，也可以是协程函数
Action = Callable[[Ctx], Any]

H = TypeVar("H")


class _Registry(Generic[H]):
    """名称 → 回调的简单映射，名称不能为空。"""

    kind = "name"

    def __init__(self):
        self._items: dict[str, H] = {}

    def register(self, name: str, handler: H) -> None:
        """
        注册回调。

        注意: 如果同名回调已存在，会被新回调覆盖（后注册的优先）。

        异常:
            ValueError: 名称为空
        """
        if not name:
            raise ValueError(f"{self.kind} must not be empty")
        self._items[name] = handler

    def unregister(self, name: str) -> None:
        """按名称注销。不存在则静默忽略。"""
        self._items.pop(name, None)

    def get(self, name: str) -> H | None:
        return self._items.get(name)

    @property
    def names(self) -> list[str]:
        """获取所有已注册的名称列表。"""
        return list(self._items.keys())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: str) -> bool:
        return name in self._items


class ActionRegistry(_Registry[Action]):
    """主题 → Action 注册表。"""

    kind = "topic"


class ChannelRegistry(_Registry[ConsumerHandler]):
    """通道 → 消费者注册表。"""

    kind = "channel"
