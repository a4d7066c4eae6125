"""
欢迎调用链示例 - 演示递归调用。

- "second.welcome"：在参数中写入 success 字段后原样返回
- "first.welcome"：把 code 改为 200，再转发给 "second.welcome"，
  并把内层调用的结果作为自己的返回值

调用 "first.welcome" 并传入 {"code": 0, "success": ""}，
最终得到 {"code": 200, "success": "Welcome to Arnelify Broker"}。
外层应答要等内层调用完整往返之后才会发出。
"""

from typing import Any

from arnelify_broker.broker.core import Broker
from arnelify_broker.bus.events import Ctx

WELCOME_TEXT = "Welcome to Arnelify Broker"


def setup(broker: Broker) -> None:
    """在 broker 上订阅两个欢迎主题。"""

    async def second_welcome(ctx: Ctx) -> dict[str, Any]:
        params = ctx.params
        params["success"] = WELCOME_TEXT
        return params

    async def first_welcome(ctx: Ctx) -> Any:
        params = ctx.params
        params["code"] = 200
        return await broker.call("second.welcome", params)

    broker.subscribe("second.welcome", second_welcome)
    broker.subscribe("first.welcome", first_welcome)


async def run_welcome(broker: Broker) -> Any:
    """在已启动的 broker 上跑一遍欢迎调用链，返回最终结果。"""
    setup(broker)
    return await broker.call("first.welcome", {"code": 0, "success": ""})
