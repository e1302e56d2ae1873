# tests/conftest.py
"""
SmartApply 测试配置和共享 fixtures
核心组件只依赖协作者接口，这里提供内存中的假实现。
"""

import itertools
import os
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from smartapply.core.interfaces import (
    IDocumentStore, IPickerPrompt, IPreviewPresenter, ISymbolIndex, ITerminalSink, IWorkspace
)
from smartapply.core.models import EditorContext, Position, SymbolInfo, TextEdit
from smartapply.core.orchestrator import ApplyOrchestrator
from smartapply.core.text import splice
from smartapply.utils.console import set_quiet


# --- 假协作者 ---

class FakeDocumentStore(IDocumentStore):
    def __init__(self, documents: Optional[Dict[str, str]] = None):
        self.documents: Dict[str, str] = dict(documents or {})
        self.views = set()
        self.edits: List[tuple] = []
        self.opened: List[str] = []
        self.shown: List[str] = []
        self.untitled: List[tuple] = []
        self.fail_apply = False
        self.apply_delay = 0.0
        self._counter = itertools.count(1)

    def get_text(self, document_ref: str) -> str:
        if document_ref not in self.documents:
            raise FileNotFoundError(document_ref)
        return self.documents[document_ref]

    def apply_edit(self, document_ref: str, edit: TextEdit) -> bool:
        if self.fail_apply:
            return False
        if self.apply_delay:
            time.sleep(self.apply_delay)
        self.documents[document_ref] = splice(
            self.documents.get(document_ref, ""), edit.position, edit.new_text, edit.range
        )
        self.edits.append((document_ref, edit))
        return True

    def find_views(self, document_ref: str) -> List[str]:
        return [document_ref] if document_ref in self.views else []

    def open_document(self, document_ref: str) -> str:
        self.opened.append(document_ref)
        self.views.add(document_ref)
        return document_ref

    def open_untitled(self, content: str, language: str) -> str:
        ref = f"untitled:{next(self._counter)}"
        self.documents[ref] = content
        self.untitled.append((content, language))
        return ref

    def show_document(self, document_ref: str) -> None:
        self.shown.append(document_ref)


class FakeSymbolIndex(ISymbolIndex):
    def __init__(self, symbols: Optional[Dict[str, List[SymbolInfo]]] = None):
        self.symbols = dict(symbols or {})
        self.fail = False

    def get_symbols(self, document_ref: str) -> List[SymbolInfo]:
        if self.fail:
            raise RuntimeError("symbol provider crashed")
        return self.symbols.get(document_ref, [])


class FakePicker(IPickerPrompt):
    """按预设顺序回答选择；没有预设答案时视为取消"""

    def __init__(self, choices: Optional[List[Optional[str]]] = None, folder: Optional[str] = None,
                 confirm_answer: bool = False):
        self.choices = list(choices or [])
        self.folder = folder
        self.confirm_answer = confirm_answer
        self.questions: List[tuple] = []
        self.confirmations: List[str] = []

    def choose(self, message: str, options: List[str]) -> Optional[str]:
        self.questions.append((message, options))
        return self.choices.pop(0) if self.choices else None

    def pick_folder(self, default: Optional[str] = None) -> Optional[str]:
        return self.folder

    def confirm(self, message: str, confirm_label: str = "OK") -> bool:
        self.confirmations.append(message)
        return self.confirm_answer


class FakeTerminal(ITerminalSink):
    def __init__(self, active: bool = False):
        self.active = active
        self.created: List[str] = []
        self.show_count = 0
        self.sent: List[tuple] = []

    def has_active_terminal(self) -> bool:
        return self.active

    def create_terminal(self, name: str) -> None:
        self.created.append(name)
        self.active = True

    def show(self) -> None:
        self.show_count += 1

    def send_text(self, text: str, execute: bool = False) -> None:
        self.sent.append((text, execute))


class FakePresenter(IPreviewPresenter):
    def __init__(self):
        self.providers = {}
        self.diffs: List[tuple] = []
        self.closed: List[str] = []
        self.decorations: List[tuple] = []
        self.cleared: List[tuple] = []
        self.fail_decoration = False

    def register_content_provider(self, scheme, provider) -> None:
        self.providers[scheme] = provider

    def show_diff(self, original_ref: str, proposed_ref: str, title: str) -> None:
        self.diffs.append((original_ref, proposed_ref, title))

    def close_preview(self, proposed_ref: str) -> None:
        self.closed.append(proposed_ref)

    def show_decoration(self, document_ref: str, position: Position, text: str):
        if self.fail_decoration:
            raise RuntimeError("decoration failed")
        handle = (document_ref, position, text)
        self.decorations.append(handle)
        return handle

    def clear_decoration(self, decoration) -> None:
        self.cleared.append(decoration)


class FakeWorkspace(IWorkspace):
    def __init__(self, root: Optional[str] = "/ws", editor: Optional[EditorContext] = None):
        self._root = root
        self.editor = editor
        self.files: Dict[str, str] = {}
        self.directories: List[str] = []
        self.fail_write = False

    @property
    def root(self) -> Optional[str]:
        return self._root

    def active_editor(self) -> Optional[EditorContext]:
        return self.editor

    def file_exists(self, path: str) -> bool:
        return path in self.files

    def create_directory(self, path: str) -> None:
        self.directories.append(path)

    def write_file(self, path: str, content: str) -> None:
        if self.fail_write:
            raise PermissionError(f"read-only: {path}")
        self.files[path] = content


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, now: float = 1000.0):
        self.now = now
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now += seconds


# --- Pytest Fixtures ---

@pytest.fixture(autouse=True)
def quiet_console():
    """测试期间静默 rich 控制台"""
    set_quiet(True)
    yield
    set_quiet(False)


@pytest.fixture
def document_store():
    return FakeDocumentStore()


@pytest.fixture
def presenter():
    return FakePresenter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_orchestrator():
    """
    构造使用假协作者的 ApplyOrchestrator。
    返回 (orchestrator, 协作者字典)，测试结束时自动 dispose。
    """
    created = []

    def factory(documents=None, symbols=None, editor=None, root="/ws", picker=None, config=None,
                terminal=None):
        parts = {
            "workspace": FakeWorkspace(root=root, editor=editor),
            "document_store": FakeDocumentStore(documents),
            "symbol_index": FakeSymbolIndex(symbols),
            "picker": picker or FakePicker(),
            "terminal": terminal or FakeTerminal(),
            "presenter": FakePresenter(),
        }
        orchestrator = ApplyOrchestrator(config=config, auto_sweep=False, **parts)
        created.append(orchestrator)
        return orchestrator, parts

    yield factory
    for orchestrator in created:
        orchestrator.dispose()


@pytest.fixture(scope="function")
def isolated_filesystem(tmp_path):
    """
    提供隔离的临时目录并切换当前工作目录，测试结束后恢复。
    """
    original_cwd = os.getcwd()
    os.chdir(tmp_path)
    yield Path(tmp_path)
    os.chdir(original_cwd)


@pytest.fixture
def runner():
    """提供一个 Click CliRunner 实例用于测试 CLI 命令"""
    from click.testing import CliRunner
    return CliRunner()
