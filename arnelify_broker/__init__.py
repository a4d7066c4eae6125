"""
arnelify-broker - 轻量级主题寻址 RPC 消息代理

模块概述：
    本文件是 arnelify_broker 包的入口文件（__init__.py），定义了包的元信息，
    并导出最常用的公共接口。

    arnelify-broker 把一个"发布/订阅"传输层包装成基于主题的请求/应答调用：
    - 调用方通过 broker.call(topic, params) 发起调用并等待结果
    - 服务方通过 broker.subscribe(topic, action) 注册业务处理函数
    - 处理函数内部可以继续 call 其他主题（递归调用链）
"""

# 版本号，遵循语义化版本规范（主版本.次版本.修订号）
__version__ = "0.1.0"

# 项目 logo 表情符号，用于 CLI 输出等场景的品牌标识
__logo__ = "📨"

from arnelify_broker.broker.core import Broker
from arnelify_broker.bus.events import Ctx, Res

__all__ = ["Broker", "Ctx", "Res", "__version__", "__logo__"]
