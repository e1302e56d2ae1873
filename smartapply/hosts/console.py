"""
控制台实现：选择对话、终端暂存区和差异预览。
"""

import difflib
from typing import Any, Callable, Dict, List, Optional

from rich.markup import escape

from ..core.interfaces import IDocumentStore, IPickerPrompt, IPreviewPresenter, ITerminalSink
from ..core.models import Position
from ..utils.console import (
    console, code_block, confirm, heading, info, prompt_input, warning
)


class ConsolePicker(IPickerPrompt):
    """基于 rich 控制台输入的选择对话；空输入或 EOF 视为取消"""

    def choose(self, message: str, options: List[str]) -> Optional[str]:
        console.print(f"\n❓ {message}")
        for i, option in enumerate(options, start=1):
            console.print(f"  [cyan]{i}[/cyan]. {option}")
        try:
            answer = prompt_input("Select an option (empty to cancel)")
        except (EOFError, KeyboardInterrupt):
            return None
        if not answer:
            return None
        answer = answer.strip()
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        for option in options:
            if option.lower() == answer.lower():
                return option
        warning(f"Unknown option: {answer}")
        return None

    def pick_folder(self, default: Optional[str] = None) -> Optional[str]:
        try:
            folder = prompt_input("Select Folder", default)
        except (EOFError, KeyboardInterrupt):
            return None
        return folder or None

    def confirm(self, message: str, confirm_label: str = "OK") -> bool:
        try:
            return confirm(f"{message} ({confirm_label})", default=False)
        except (EOFError, KeyboardInterrupt):
            return False


class ConsoleTerminalSink(ITerminalSink):
    """
    只把命令打印出来供用户自行执行，从不运行任何 shell 文本。
    """

    def __init__(self):
        self.name: Optional[str] = None
        self.staged: List[str] = []

    def has_active_terminal(self) -> bool:
        return self.name is not None

    def create_terminal(self, name: str) -> None:
        self.name = name

    def show(self) -> None:
        heading(f"Terminal: {self.name or 'default'}")

    def send_text(self, text: str, execute: bool = False) -> None:
        if execute:
            warning("Automatic execution is not supported; the command is only staged.")
        self.staged.append(text)
        code_block(text, "bash")
        info("Copy the command above and run it yourself.")


class ConsolePreviewPresenter(IPreviewPresenter):
    """以统一 diff 格式在控制台展示预览"""

    def __init__(self, document_store: IDocumentStore):
        self.document_store = document_store
        self._providers: Dict[str, Callable[[str], str]] = {}
        self.open_previews: List[str] = []
        self.decorations: List[Any] = []

    def register_content_provider(self, scheme: str, provider: Callable[[str], str]) -> None:
        self._providers[scheme] = provider

    def _content(self, ref: str) -> str:
        scheme = ref.split(":", 1)[0]
        provider = self._providers.get(scheme)
        if provider is not None and ":" in ref:
            return provider(ref)
        return self.document_store.get_text(ref)

    def show_diff(self, original_ref: str, proposed_ref: str, title: str) -> None:
        original = self._content(original_ref)
        proposed = self._content(proposed_ref)
        diff = "".join(difflib.unified_diff(
            original.splitlines(keepends=True),
            proposed.splitlines(keepends=True),
            fromfile=original_ref,
            tofile=proposed_ref,
        ))
        self.open_previews.append(proposed_ref)
        code_block(diff or "(no changes)", "diff", title=title)

    def close_preview(self, proposed_ref: str) -> None:
        if proposed_ref in self.open_previews:
            self.open_previews.remove(proposed_ref)

    def show_decoration(self, document_ref: str, position: Position, text: str) -> Any:
        handle = (document_ref, position, text)
        self.decorations.append(handle)
        console.print(f"[dim]{document_ref}:{position.line + 1}:{position.character + 1}[/dim] [ghost]{escape(text)}[/ghost]")
        return handle

    def clear_decoration(self, decoration: Any) -> None:
        if decoration in self.decorations:
            self.decorations.remove(decoration)
