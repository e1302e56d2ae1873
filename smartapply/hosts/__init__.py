"""
宿主适配层：在编辑器之外用本地文件系统和控制台实现核心协作者接口。
"""

from typing import Optional

from ..core.config import SmartApplyConfig
from ..core.models import Position
from ..core.orchestrator import ApplyOrchestrator
from .console import ConsolePicker, ConsolePreviewPresenter, ConsoleTerminalSink
from .local import LocalDocumentStore, LocalSymbolIndex, LocalWorkspace


def build_local_orchestrator(
    root: str,
    active_file: Optional[str] = None,
    cursor: Optional[Position] = None,
    config: Optional[SmartApplyConfig] = None,
    auto_sweep: bool = False
) -> ApplyOrchestrator:
    """用本地适配器组装编排器（CLI 为一次性进程，默认不启动清理线程）"""
    workspace = LocalWorkspace(root, active_file=active_file, cursor=cursor)
    document_store = LocalDocumentStore(root)
    return ApplyOrchestrator(
        workspace=workspace,
        document_store=document_store,
        symbol_index=LocalSymbolIndex(document_store),
        picker=ConsolePicker(),
        terminal=ConsoleTerminalSink(),
        presenter=ConsolePreviewPresenter(document_store),
        config=config,
        auto_sweep=auto_sweep,
    )


__all__ = [
    "build_local_orchestrator",
    "LocalWorkspace",
    "LocalDocumentStore",
    "LocalSymbolIndex",
    "ConsolePicker",
    "ConsoleTerminalSink",
    "ConsolePreviewPresenter",
]
