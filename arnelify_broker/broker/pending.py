"""
待决调用表 (broker/pending.py)

保存 "uuid → 等待应答的 Future" 映射：
- call 发出请求前登记一个 Future
- receive 收到匹配的应答时取出并完成它（只会完成一次）
- 超时或发送失败时直接丢弃条目

Future 是 asyncio 的一次性结果句柄，调用方 await 它即可挂起，
事件循环在此期间继续分发其它消息。
"""

import asyncio
from typing import Any


class PendingCalls:
    """
    待决调用表。

    属性:
        _futures: {uuid: Future} 映射，只在事件循环线程内修改
    """

    def __init__(self):
        self._futures: dict[str, asyncio.Future] = {}

    def add(self, uuid: str) -> asyncio.Future:
        """
        为 uuid 登记一个新的 Future 并返回。

        异常:
            ValueError: uuid 已存在（标识生成器违反了唯一性）
        """
        if uuid in self._futures:
            raise ValueError(f"Duplicate correlation id: {uuid}")
        future = asyncio.get_running_loop().create_future()
        self._futures[uuid] = future
        return future

    def pop(self, uuid: str) -> asyncio.Future | None:
        """取出并移除 uuid 对应的 Future。不存在时返回 None。"""
        return self._futures.pop(uuid, None)

    def resolve(self, uuid: str, value: Any) -> bool:
        """
        用 value 完成 uuid 对应的调用。

        返回:
            True 表示找到并完成了一个调用；False 表示 uuid 未知或调用已被放弃
        """
        future = self.pop(uuid)
        if future is None or future.done():
            return False
        future.set_result(value)
        return True

    def reject(self, uuid: str, exc: BaseException) -> bool:
        """以异常完成 uuid 对应的调用，返回值含义同 resolve()。"""
        future = self.pop(uuid)
        if future is None or future.done():
            return False
        future.set_exception(exc)
        return True

    def fail_all(self, exc: BaseException) -> int:
        """以同一个异常完成所有待决调用并清空表，返回受影响的调用数。"""
        futures = list(self._futures.values())
        self._futures.clear()
        count = 0
        for future in futures:
            if not future.done():
                future.set_exception(exc)
                count += 1
        return count

    def __len__(self) -> int:
        return len(self._futures)

    def __contains__(self, uuid: str) -> bool:
        return uuid in self._futures
