"""
统一的控制台输出工具，基于 rich 实现结构化的 CLI 交互。
SmartApply 不使用 logging 模块，所有提示、警告和诊断信息都经由这里输出。
"""
from rich.console import Console as RichConsole
from rich.theme import Theme
from rich.syntax import Syntax
from typing import Optional

# 自定义主题
CUSTOM_THEME = Theme({
    "info": "cyan bold",
    "success": "green bold",
    "warning": "yellow bold",
    "error": "red bold",
    "heading": "bold underline",
    "path": "magenta",
    "code": "bold white on black",
    "ghost": "dim italic",
    "prompt": "green",
})

# 全局控制台实例（单例）
console = RichConsole(theme=CUSTOM_THEME, soft_wrap=True)


def set_quiet(quiet: bool = True):
    """静默/恢复控制台输出（--quiet 和测试使用）"""
    console.quiet = quiet


# --- 便捷输出函数 ---

def info(message: str):
    """蓝色信息提示"""
    console.print(f"💡 [info]INFO[/info]: {message}")


def success(message: str):
    """绿色成功提示"""
    console.print(f"✅ [success]SUCCESS[/success]: {message}")


def warning(message: str):
    """黄色警告提示"""
    console.print(f"⚠️  [warning]WARNING[/warning]: {message}")


def error(message: str):
    """红色错误提示"""
    console.print(f"❌ [error]ERROR[/error]: {message}")


def heading(title: str):
    """标题输出"""
    console.print(f"\n🎯 [heading]{title}[/heading]\n")


def code_block(code: str, language: str = "text", title: Optional[str] = None):
    """带语法高亮地输出代码块"""
    if title:
        console.print(f"\n[bold]{title}[/bold]")
    console.print(Syntax(code, language or "text", line_numbers=False, word_wrap=True))


# --- 交互式输入 ---

def prompt_input(prompt: str, default: str = None) -> str:
    """带样式的输入提示"""
    default_str = f" ({default})" if default else ""
    full_prompt = f"📝 [prompt]{prompt}{default_str}:[/prompt] "
    value = console.input(full_prompt)
    return value if value else default


def confirm(prompt: str, default: bool = True) -> bool:
    """确认对话（Y/N）"""
    yes_no = "[Y/n]" if default else "[y/N]"
    full_prompt = f"❓ {prompt} {yes_no}: "
    response = console.input(full_prompt).strip().lower()

    if not response:
        return default
    return response in ("y", "yes", "是")


# --- 表格输出 ---

def print_table(data: list, headers: list = None, title: str = "📋 结果列表"):
    """打印简单表格"""
    from rich.table import Table

    table = Table(
        title=title,
        show_header=True,
        header_style="bold magenta"
    )

    if headers:
        for h in headers:
            table.add_column(h)
    else:
        table.add_column("字段")
        table.add_column("值")

    for row in data:
        table.add_row(*[str(cell) for cell in row])

    console.print(table)


def show_welcome():
    """显示欢迎横幅"""
    console.print("\n" + "═" * 50, style="bold blue")
    console.print("🧩 [bold green]SmartApply CLI[/bold green] - 代码块智能落地", end="")
    console.print(" 🤖", emoji=True)
    console.print("═" * 50 + "\n", style="bold blue")
