"""
arnelify_broker 模块入口点 - 支持通过 `python -m arnelify_broker` 方式启动

启动链路：
    python -m arnelify_broker → __main__.py → cli/commands.py 中的 Typer app
"""

from arnelify_broker.cli.commands import app

if __name__ == "__main__":
    app()
