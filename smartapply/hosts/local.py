"""
本地文件系统实现：工作区、文档存储与符号索引。
供 CLI 在编辑器之外驱动 SmartApply 流水线。
"""

import ast
import itertools
import re
import threading
from pathlib import Path
from typing import Dict, List, Optional

from rich.markup import escape

from ..core.interfaces import IDocumentStore, ISymbolIndex, IWorkspace
from ..core.models import EditorContext, Position, SymbolInfo, TextEdit
from ..core.text import splice
from ..core.utils import read_file_safely
from ..utils.console import code_block, error, info

UNTITLED_PREFIX = "untitled:"
CRLF = "\r\n"


class LocalWorkspace(IWorkspace):
    """以本地目录为根的工作区"""

    def __init__(self, root: Optional[str] = None, active_file: Optional[str] = None,
                 cursor: Optional[Position] = None):
        self._root = str(Path(root).resolve()) if root else None
        self.active_file = active_file
        self.cursor = cursor or Position(0, 0)

    @property
    def root(self) -> Optional[str]:
        return self._root

    def active_editor(self) -> Optional[EditorContext]:
        if not self.active_file:
            return None
        return EditorContext(document_ref=self.active_file, cursor=self.cursor)

    def file_exists(self, path: str) -> bool:
        return Path(path).exists()

    def create_directory(self, path: str) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def write_file(self, path: str, content: str) -> None:
        target = Path(path)
        temp_file = target.with_name(target.name + ".tmp")
        temp_file.write_text(content, encoding="utf-8")
        temp_file.replace(target)


class LocalDocumentStore(IDocumentStore):
    """
    文档即文件路径；未保存的缓冲区使用 "untitled:<n>" 引用。
    每次编辑都会写回磁盘，并记录撤销栈。
    """

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root).resolve() if root else Path.cwd()
        self._untitled: Dict[str, str] = {}
        self._languages: Dict[str, str] = {}
        self._undo: Dict[str, List[str]] = {}
        self._open: List[str] = []
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def resolve_path(self, document_ref: str) -> Path:
        path = Path(document_ref)
        return path if path.is_absolute() else self.root / path

    def get_text(self, document_ref: str) -> str:
        return self._raw_text(document_ref).replace(CRLF, "\n")

    def _raw_text(self, document_ref: str) -> str:
        """原样读取（不做换行转换）"""
        if document_ref in self._untitled:
            return self._untitled[document_ref]
        path = self.resolve_path(document_ref)
        if not path.is_file():
            raise FileNotFoundError(f"Document not found: {document_ref}")
        with open(path, 'r', encoding='utf-8', newline='') as f:
            return f.read()

    def apply_edit(self, document_ref: str, edit: TextEdit) -> bool:
        with self._lock:
            try:
                original = self._raw_text(document_ref)
                # 按 LF 拼接，再还原文件原有的换行符
                updated = splice(original.replace(CRLF, "\n"), edit.position, edit.new_text, edit.range)
                if CRLF in original:
                    updated = updated.replace(CRLF, "\n").replace("\n", CRLF)
                self._write(document_ref, updated)
            except OSError as e:
                error(f"Failed to edit {document_ref}: {e}")
                return False
            self._undo.setdefault(document_ref, []).append(original)
            return True

    def undo(self, document_ref: str) -> bool:
        """撤销最近一次编辑"""
        with self._lock:
            history = self._undo.get(document_ref)
            if not history:
                return False
            self._write(document_ref, history.pop())
            return True

    def _write(self, document_ref: str, content: str) -> None:
        if document_ref in self._untitled:
            self._untitled[document_ref] = content
            return
        path = self.resolve_path(document_ref)
        temp_file = path.with_name(path.name + ".tmp")
        with open(temp_file, 'w', encoding='utf-8', newline='') as f:
            f.write(content)
        temp_file.replace(path)

    def find_views(self, document_ref: str) -> List[str]:
        return [ref for ref in self._open if ref == document_ref]

    def open_document(self, document_ref: str) -> str:
        self.get_text(document_ref)
        if document_ref not in self._open:
            self._open.append(document_ref)
        return document_ref

    def open_untitled(self, content: str, language: str) -> str:
        ref = f"{UNTITLED_PREFIX}{next(self._counter)}"
        self._untitled[ref] = content
        self._languages[ref] = language
        self._open.append(ref)
        return ref

    def language_of(self, document_ref: str) -> Optional[str]:
        return self._languages.get(document_ref)

    def show_document(self, document_ref: str) -> None:
        if document_ref not in self._open:
            self._open.append(document_ref)
        if document_ref in self._untitled:
            code_block(self._untitled[document_ref], self._languages.get(document_ref, "text"),
                       title=f"📄 {document_ref} ({self._languages.get(document_ref)})")
        else:
            info(f"Opened [path]{escape(document_ref)}[/path]")


# ==================== 符号索引 ====================

DECLARATION_RE = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(?:pub\s+)?(?:async\s+)?"
    r"(?:class|function|def|fn|func|const|let|var|struct|interface)\s+(\w+)"
)


def _python_symbols(nodes: List[ast.stmt]) -> List[SymbolInfo]:
    symbols = []
    for node in nodes:
        if isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            symbols.append(SymbolInfo(
                name=node.name,
                range_start=Position(node.lineno - 1, node.col_offset),
                range_end=Position(node.end_lineno - 1, node.end_col_offset),
                children=_python_symbols(node.body),
            ))
    return symbols


def _block_end(lines: List[str], start: int) -> Position:
    """大括号语言：从声明行开始找到配对的右括号；找不到时视为单行声明"""
    depth = 0
    opened = False
    for i in range(start, len(lines)):
        for j, ch in enumerate(lines[i]):
            if ch == "{":
                depth += 1
                opened = True
            elif ch == "}":
                depth -= 1
                if opened and depth == 0:
                    return Position(i, j + 1)
        if not opened and i > start:
            break
    return Position(start, len(lines[start]))


def _regex_symbols(text: str) -> List[SymbolInfo]:
    lines = text.split("\n")
    symbols = []
    for i, line in enumerate(lines):
        match = DECLARATION_RE.match(line)
        if match:
            symbols.append(SymbolInfo(
                name=match.group(1),
                range_start=Position(i, len(line) - len(line.lstrip())),
                range_end=_block_end(lines, i),
            ))
    return symbols


class LocalSymbolIndex(ISymbolIndex):
    """Python 文件使用 ast 解析，其他文件使用声明正则"""

    def __init__(self, document_store: LocalDocumentStore):
        self.document_store = document_store

    def get_symbols(self, document_ref: str) -> List[SymbolInfo]:
        try:
            text = self.document_store.get_text(document_ref)
        except (OSError, UnicodeDecodeError):
            return []

        if document_ref.endswith(".py"):
            try:
                return _python_symbols(ast.parse(text).body)
            except SyntaxError:
                pass
        return _regex_symbols(text)


def read_document(path: str) -> Optional[str]:
    """CLI 读取代码块文件"""
    return read_file_safely(Path(path))
