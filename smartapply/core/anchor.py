"""
锚点解析器 (AnchorResolver)

将锚点名称（函数名、类名或 "imports"）解析为文档中的位置。
回退链：精确符号 → 模糊符号 → 文本搜索 → 光标位置。
每一级都是返回 Optional[ResolvedLocation] 的纯函数，第一个非 None 的结果胜出。
"""

import re
from typing import Callable, List, Optional

from .interfaces import IDocumentStore, ISymbolIndex
from .models import Position, ResolvedLocation, ResolveMethod, SymbolInfo
from .text import position_at
from .utils import levenshtein_distance

IMPORTS_ANCHOR = "imports"
FUZZY_MAX_DISTANCE = 3

IMPORT_LINE_RE = re.compile(r"^(import\s|from\s|use\s|using\s|const\s+\w+\s*=\s*require\()", re.I)
COMMENT_PREFIXES = ("//", "#", "/*", "*")

# 声明形式的正则模板，按顺序尝试
DECLARATION_TEMPLATES = [
    r"function\s+{name}\s*\(",
    r"def\s+{name}\s*\(",
    r"(const|let|var)\s+{name}\s*=",
    r"class\s+{name}",
    r"fn\s+{name}\s*\(",
    r"func\s+{name}\s*\(",
]


# ==================== import 区域定位 ====================

def find_import_section(text: str) -> Position:
    """
    找到 import 区域之后的插入位置。
    没有 import 时返回前 5 行中第一条非空、非注释行的行首，否则返回 (0, 0)。
    """
    lines = text.split("\n")
    last_import_line = -1

    for i, raw in enumerate(lines):
        line = raw.strip()

        # 文件开头的空行和注释跳过
        if i < 10 and (line == "" or line.startswith(COMMENT_PREFIXES)):
            continue

        if IMPORT_LINE_RE.match(line):
            last_import_line = i
        elif last_import_line >= 0 and line != "":
            break

    if last_import_line >= 0:
        return Position(last_import_line + 1, 0)

    for i, raw in enumerate(lines[:5]):
        line = raw.strip()
        if line != "" and not line.startswith(COMMENT_PREFIXES):
            return Position(i, 0)

    return Position(0, 0)


# ==================== 回退链各级 ====================

def _walk(symbols: List[SymbolInfo]):
    """深度优先遍历符号树（包含子符号）"""
    for symbol in symbols:
        yield symbol
        if symbol.children:
            yield from _walk(symbol.children)


def _is_fuzzy_match(candidate: str, anchor: str) -> bool:
    if not candidate:
        return False
    return (
        anchor in candidate
        or candidate in anchor
        or levenshtein_distance(candidate, anchor) <= FUZZY_MAX_DISTANCE
    )


def _symbol_location(symbol: SymbolInfo, method: ResolveMethod) -> ResolvedLocation:
    return ResolvedLocation(
        position=symbol.range_start,
        range=symbol.range,
        method=method,
        symbol_name=symbol.name,
    )


def match_exact_symbol(symbols: List[SymbolInfo], anchor: str) -> Optional[ResolvedLocation]:
    wanted = anchor.lower()
    for symbol in _walk(symbols):
        if symbol.name.lower() == wanted:
            return _symbol_location(symbol, ResolveMethod.EXACT_SYMBOL)
    return None


def match_fuzzy_symbol(symbols: List[SymbolInfo], anchor: str) -> Optional[ResolvedLocation]:
    wanted = anchor.lower()
    for symbol in _walk(symbols):
        if _is_fuzzy_match(symbol.name.lower(), wanted):
            return _symbol_location(symbol, ResolveMethod.FUZZY_SYMBOL)
    return None


def match_text(text: str, anchor: str) -> Optional[ResolvedLocation]:
    """先做不区分大小写的子串搜索，再尝试声明形式的正则"""
    index = text.lower().find(anchor.lower())
    if index >= 0:
        return ResolvedLocation(position=position_at(text, index), method=ResolveMethod.TEXT_SEARCH)

    escaped = re.escape(anchor)
    for template in DECLARATION_TEMPLATES:
        match = re.search(template.format(name=escaped), text, re.I)
        if match:
            return ResolvedLocation(position=position_at(text, match.start()), method=ResolveMethod.TEXT_SEARCH)
    return None


class AnchorResolver:
    """利用符号索引和文档文本定位代码插入点"""

    def __init__(self, document_store: IDocumentStore, symbol_index: ISymbolIndex):
        self.document_store = document_store
        self.symbol_index = symbol_index

    def resolve_anchor(
        self,
        document_ref: str,
        anchor: Optional[str],
        cursor: Position
    ) -> ResolvedLocation:
        if not anchor:
            return ResolvedLocation(position=cursor, method=ResolveMethod.CURSOR_FALLBACK)

        text = self._get_text(document_ref)

        if anchor.lower() == IMPORTS_ANCHOR:
            return ResolvedLocation(position=find_import_section(text), method=ResolveMethod.TEXT_SEARCH)

        symbols = self._get_symbols(document_ref)
        chain: List[Callable[[], Optional[ResolvedLocation]]] = [
            lambda: match_exact_symbol(symbols, anchor),
            lambda: match_fuzzy_symbol(symbols, anchor),
            lambda: match_text(text, anchor),
        ]
        for stage in chain:
            resolved = stage()
            if resolved is not None:
                return resolved

        return ResolvedLocation(position=cursor, method=ResolveMethod.CURSOR_FALLBACK)

    def find_all_matching_symbols(self, document_ref: str, pattern: str) -> List[SymbolInfo]:
        """返回名称包含 pattern 的所有符号（用于批量替换）"""
        wanted = pattern.lower()
        return [s for s in _walk(self._get_symbols(document_ref)) if wanted in s.name.lower()]

    def _get_symbols(self, document_ref: str) -> List[SymbolInfo]:
        # 符号索引失败视为“无符号”
        try:
            return self.symbol_index.get_symbols(document_ref) or []
        except Exception:
            return []

    def _get_text(self, document_ref: str) -> str:
        try:
            return self.document_store.get_text(document_ref)
        except Exception:
            return ""
