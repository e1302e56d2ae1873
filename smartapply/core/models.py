"""
SmartApply 核心数据模型
定义了意图分类、锚点解析、待确认变更和应用结果之间传递的数据结构。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Intent(Enum):
    CREATE = "create"
    EDIT = "edit"
    COMMAND = "command"

    @classmethod
    def parse(cls, value: Any) -> Optional['Intent']:
        """将字符串/枚举转换为 Intent，无法识别时返回 None"""
        if isinstance(value, Intent):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return None


class ResolveMethod(Enum):
    EXACT_SYMBOL = "exact_symbol"
    FUZZY_SYMBOL = "fuzzy_symbol"
    TEXT_SEARCH = "text_search"
    CURSOR_FALLBACK = "cursor_fallback"


class ApplyAction(Enum):
    CREATED = "created"
    EDITED = "edited"
    SENT_TO_TERMINAL = "sent_to_terminal"
    PREVIEW_SHOWN = "preview_shown"
    CANCELLED = "cancelled"
    ERROR = "error"


class NoticeLevel(Enum):
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Position:
    """文档中的位置，行列均从 0 开始"""
    line: int
    character: int = 0


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position


@dataclass
class ApplyPayload:
    """待应用的代码块"""
    code: str
    language: str = ""
    intent: Optional[Intent] = None
    target: Optional[str] = None  # 文件路径提示
    anchor: Optional[str] = None  # 符号/上下文名称提示

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplyPayload':
        """从字典（例如 YAML 批处理文件）创建 ApplyPayload"""
        return cls(
            code=data.get("code", ""),
            language=data.get("language") or "",
            intent=Intent.parse(data.get("intent")),
            target=data.get("target") or None,
            anchor=data.get("anchor") or None,
        )


@dataclass
class DetectedIntent:
    intent: Intent
    confidence: float  # 0.0 - 1.0
    target: Optional[str] = None
    anchor: Optional[str] = None


@dataclass
class ResolvedLocation:
    position: Position
    method: ResolveMethod
    range: Optional[Range] = None  # 仅替换时存在
    symbol_name: Optional[str] = None


@dataclass
class SymbolInfo:
    """符号索引返回的符号树节点"""
    name: str
    range_start: Position
    range_end: Position
    children: List['SymbolInfo'] = field(default_factory=list)

    @property
    def range(self) -> Range:
        return Range(self.range_start, self.range_end)


@dataclass
class TextEdit:
    """一次原子、可撤销的插入或区间替换"""
    position: Position
    new_text: str
    range: Optional[Range] = None


@dataclass
class EditorContext:
    """当前活动文档及光标"""
    document_ref: str
    cursor: Position = field(default_factory=lambda: Position(0, 0))


@dataclass
class PendingChange:
    id: str
    document_ref: str
    position: Position
    new_code: str
    proposed_full_content: str
    created_at: float
    range: Optional[Range] = None


@dataclass
class Notice:
    """随结果返回的提示信息，不影响控制流"""
    level: NoticeLevel
    message: str


@dataclass
class ApplyResult:
    success: bool
    action: ApplyAction
    message: Optional[str] = None
    change_id: Optional[str] = None
    notices: List[Notice] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "action": self.action.value}
        if self.message is not None:
            data["message"] = self.message
        if self.change_id is not None:
            data["changeId"] = self.change_id
        if self.notices:
            data["notices"] = [{"level": n.level.value, "message": n.message} for n in self.notices]
        return data


@dataclass
class GhostTextHandle:
    change_id: str
    decoration: Any = None
