"""
CLI 命令模块 - arnelify-broker 的所有命令行命令定义。

本模块使用 Typer 框架定义完整 CLI 命令体系：
- onboard：初始化配置文件
- status：查看当前生效的配置
- demo：运行内置的欢迎调用链示例
- call：加载用户的订阅脚本后发起一次调用

技术栈：
- Typer：CLI 框架（基于 Click，支持类型注解自动生成帮助文档）
- Rich：终端美化输出（表格、彩色文本）
"""

import asyncio
import importlib
import inspect
import json
import sys
from typing import Any, Callable

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from arnelify_broker import __logo__, __version__
from arnelify_broker.errors import ActionError, BrokerError, CallTimeoutError, FatalBrokerError

# 创建 Typer 应用实例（CLI 根命令）
app = typer.Typer(
    name="arnelify-broker",
    help=f"{__logo__} arnelify-broker - Topic-addressed request/reply broker",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    """版本号回调：当用户传入 --version/-v 参数时，打印版本号并退出。"""
    if value:
        console.print(f"{__logo__} arnelify-broker v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """arnelify-broker CLI 根命令回调。处理全局选项（如 --version）。"""
    pass


def _setup_logging(enabled: bool, level: str) -> None:
    """按 --logs 开关和配置中的级别设置 loguru 输出。"""
    logger.remove()
    if enabled:
        logger.add(sys.stderr, level=level.upper())
        logger.enable("arnelify_broker")
    else:
        logger.disable("arnelify_broker")


def _load_setup(spec: str) -> Callable[..., Any]:
    """
    解析 "module:function" 形式的订阅脚本入口。

    参数:
        spec: 模块路径与函数名，用冒号分隔

    返回:
        可调用对象，接收 Broker 实例并完成订阅
    """
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise typer.BadParameter(f"Expected module:function, got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import {module_name}: {e}") from e
    func = getattr(module, attr, None)
    if not callable(func):
        raise typer.BadParameter(f"{spec} is not callable")
    return func


def _print_result(result: Any) -> None:
    console.print_json(json.dumps(result, ensure_ascii=False))


# ============================================================================
# Onboard / Status
# ============================================================================


@app.command()
def onboard():
    """
    初始化配置文件。

    在 ~/.arnelify-broker/ 下创建默认 config.json，已存在时先确认是否覆盖。
    """
    from arnelify_broker.config.loader import get_config_path, save_config
    from arnelify_broker.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print(f"\n{__logo__} arnelify-broker is ready!")
    console.print("  Try: [cyan]arnelify-broker demo[/cyan]")


@app.command()
def status():
    """显示配置文件位置与当前生效的配置。"""
    from arnelify_broker.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()

    console.print(f"{__logo__} arnelify-broker status\n")
    console.print(
        f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}"
    )

    table = Table(title="Broker")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("codec", config.broker.codec)
    table.add_row("transport", config.broker.transport)
    timeout = config.broker.call_timeout
    table.add_row("callTimeout", "none" if timeout is None else f"{timeout}s")
    table.add_row("logLevel", config.logging.level)
    console.print(table)


# ============================================================================
# Demo / Call
# ============================================================================


def _run(coro_factory: Callable[[Any], Any], logs: bool) -> Any:
    """
    按配置创建 Broker，在其生命周期内执行 coro_factory(broker)。

    致命错误、Action 失败、超时都会以退出码 1 结束进程。
    """
    from arnelify_broker.broker.core import Broker
    from arnelify_broker.config.loader import load_config

    config = load_config()
    _setup_logging(logs, config.logging.level)

    async def run():
        async with Broker.from_config(config) as broker:
            return await coro_factory(broker)

    try:
        return asyncio.run(run())
    except FatalBrokerError as e:
        console.print(f"[red]Fatal: {e}[/red]")
        raise typer.Exit(1)
    except ActionError as e:
        console.print(f"[red]Action failed on {e.topic}: {e}[/red]")
        raise typer.Exit(1)
    except CallTimeoutError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except BrokerError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def demo(
    logs: bool = typer.Option(False, "--logs/--no-logs", help="Show broker runtime logs"),
):
    """运行欢迎调用链示例：first.welcome → second.welcome。"""
    from arnelify_broker.demo import run_welcome

    result = _run(run_welcome, logs)
    _print_result(result)


@app.command()
def call(
    topic: str = typer.Argument(..., help="Topic to call"),
    app_spec: str = typer.Option(..., "--app", "-a", help="Setup entry point, module:function"),
    params: str = typer.Option("{}", "--params", "-p", help="Call parameters as JSON"),
    timeout: float = typer.Option(None, "--timeout", "-t", help="Call deadline in seconds"),
    logs: bool = typer.Option(False, "--logs/--no-logs", help="Show broker runtime logs"),
):
    """
    加载订阅脚本并发起一次调用。

    订阅脚本是一个接收 Broker 的函数（可以是协程函数），负责 subscribe 所需的主题。
    示例: arnelify-broker call first.welcome --app arnelify_broker.demo:setup -p '{"code": 0}'
    """
    try:
        payload = json.loads(params)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON params: {e}[/red]")
        raise typer.Exit(1)

    setup = _load_setup(app_spec)

    async def run_call(broker):
        outcome = setup(broker)
        if inspect.isawaitable(outcome):
            await outcome
        return await broker.call(topic, payload, timeout=timeout)

    result = _run(run_call, logs)
    _print_result(result)
