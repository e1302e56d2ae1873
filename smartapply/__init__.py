"""
SmartApply: 将聊天回复中的代码块智能落地到工作区
（新建文件、编辑现有文档或暂存为终端命令）。
"""

from .core.models import ApplyPayload, ApplyResult, DetectedIntent, Intent, Position, ResolvedLocation
from .core.orchestrator import ApplyOrchestrator
from .core.intent import IntentClassifier
from .core.anchor import AnchorResolver
from .core.pending import PendingChangeStore
from .core.config import SmartApplyConfig, load_config

__version__ = "0.1.0"

__all__ = [
    "ApplyOrchestrator",
    "IntentClassifier",
    "AnchorResolver",
    "PendingChangeStore",
    "SmartApplyConfig",
    "load_config",
    "ApplyPayload",
    "ApplyResult",
    "DetectedIntent",
    "Intent",
    "Position",
    "ResolvedLocation",
]
