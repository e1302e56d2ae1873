"""
待确认变更存储 (PendingChangeStore)

负责暂存尚未确认的代码变更、展示差异预览、并在用户确认/拒绝后原子地应用或丢弃。

特性：
- 每个变更一个唯一 ID，ID 不复用
- 后台清理线程每 60 秒清除超过 10 分钟的变更（核心中唯一的定时任务）
- accept/reject 在锁内“认领” ID，同一 ID 的并发调用只有一个能看到有效条目
"""

import threading
import time
from pathlib import PurePath
from typing import Any, Callable, Dict, List, Optional, Set

from .interfaces import IDocumentStore, IPreviewPresenter
from .models import (
    ApplyAction, ApplyResult, GhostTextHandle, PendingChange, Position, Range, TextEdit
)
from .text import splice
from .utils import generate_change_id
from ..utils.console import error, info, success, warning

PREVIEW_SCHEME = "smartapply-preview"
CHANGE_TTL_SECONDS = 10 * 60
SWEEP_INTERVAL_SECONDS = 60


def preview_uri(change: PendingChange) -> str:
    """待确认变更对应的只读虚拟文档地址"""
    return f"{PREVIEW_SCHEME}:{PurePath(change.document_ref).name}?{change.id}"


class PendingChangeStore:
    """
    管理差异预览及 accept/reject 流程。
    由调用方创建，并通过 dispose() 释放（停止清理线程）。
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        presenter: IPreviewPresenter,
        clock: Callable[[], float] = time.time,
        ttl: float = CHANGE_TTL_SECONDS,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
        auto_sweep: bool = True
    ):
        self.document_store = document_store
        self.presenter = presenter
        self.clock = clock
        self.ttl = ttl
        self.sweep_interval = sweep_interval

        self._pending: Dict[str, PendingChange] = {}
        self._decorations: Dict[str, Any] = {}
        self._in_flight: Set[str] = set()
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        self.presenter.register_content_provider(PREVIEW_SCHEME, self.provide_preview_content)
        if auto_sweep:
            self.start_sweeper()

    # ==================== 预览 ====================

    def show_preview(
        self,
        document_ref: str,
        position: Position,
        new_code: str,
        range: Optional[Range] = None
    ) -> ApplyResult:
        """计算拼接后的完整内容并展示原文/新文的差异"""
        change_id = None
        try:
            original = self.document_store.get_text(document_ref)
            proposed = splice(original, position, new_code, range)

            change_id = generate_change_id()
            change = PendingChange(
                id=change_id,
                document_ref=document_ref,
                position=position,
                range=range,
                new_code=new_code,
                proposed_full_content=proposed,
                created_at=self.clock(),
            )
            with self._lock:
                self._pending[change_id] = change

            name = PurePath(document_ref).name
            self.presenter.show_diff(document_ref, preview_uri(change), f"Preview Changes: {name}")
            return ApplyResult(success=True, action=ApplyAction.PREVIEW_SHOWN, change_id=change_id)
        except Exception as e:
            if change_id is not None:
                with self._lock:
                    self._pending.pop(change_id, None)
            return ApplyResult(success=False, action=ApplyAction.ERROR, message=str(e))

    def show_ghost_text(self, document_ref: str, position: Position, code: str) -> Optional[GhostTextHandle]:
        """在 position 处以行内装饰展示代码首行（多行时追加 "..."）"""
        change_id = generate_change_id()
        change = PendingChange(
            id=change_id,
            document_ref=document_ref,
            position=position,
            new_code=code,
            proposed_full_content="",
            created_at=self.clock(),
        )
        with self._lock:
            self._pending[change_id] = change

        text = code.split("\n")[0] + ("..." if "\n" in code else "")
        try:
            decoration = self.presenter.show_decoration(document_ref, position, text)
        except Exception as e:
            with self._lock:
                self._pending.pop(change_id, None)
            error(f"Failed to show inline preview: {e}")
            return None

        with self._lock:
            self._decorations[change_id] = decoration
        return GhostTextHandle(change_id=change_id, decoration=decoration)

    def provide_preview_content(self, uri: str) -> str:
        """虚拟文档内容提供者：按 URI 中的变更 ID 返回拼接后的内容"""
        change_id = uri.rsplit("?", 1)[-1]
        change = self.get_pending_change(change_id)
        return change.proposed_full_content if change else ""

    # ==================== 确认 / 拒绝 ====================

    def accept_change(self, change_id: str) -> bool:
        with self._lock:
            change = self._pending.get(change_id)
            if change is None or change_id in self._in_flight:
                warning("Change not found or expired.")
                return False
            self._in_flight.add(change_id)

        applied = False
        decoration = None
        try:
            if not self.document_store.find_views(change.document_ref):
                self.document_store.open_document(change.document_ref)
                self.document_store.show_document(change.document_ref)
            edit = TextEdit(position=change.position, new_text=change.new_code, range=change.range)
            applied = bool(self.document_store.apply_edit(change.document_ref, edit))
        except Exception as e:
            error(f"Failed to apply changes: {e}")
        finally:
            with self._lock:
                self._in_flight.discard(change_id)
                if applied:
                    self._pending.pop(change_id, None)
                    decoration = self._decorations.pop(change_id, None)

        if applied:
            self._close(change, decoration)
            success("Changes applied successfully.")
        return applied

    def reject_change(self, change_id: str) -> bool:
        """丢弃变更，从不修改文档；ID 不存在时为空操作"""
        with self._lock:
            if change_id in self._in_flight or change_id not in self._pending:
                return False
            change = self._pending.pop(change_id)
            decoration = self._decorations.pop(change_id, None)

        self._close(change, decoration)
        info("Changes rejected.")
        return True

    def _close(self, change: PendingChange, decoration: Any = None):
        """关闭预览视图并清除装饰；失败只提示不影响结果"""
        try:
            if decoration is not None:
                self.presenter.clear_decoration(decoration)
            self.presenter.close_preview(preview_uri(change))
        except Exception as e:
            warning(f"Failed to close preview: {e}")

    # ==================== 查询 / 管理 ====================

    def get_pending_change(self, change_id: str) -> Optional[PendingChange]:
        with self._lock:
            return self._pending.get(change_id)

    def pending_ids(self) -> List[str]:
        """按创建顺序返回所有待确认变更的 ID"""
        with self._lock:
            return list(self._pending)

    def has_pending_changes(self) -> bool:
        with self._lock:
            return len(self._pending) > 0

    def clear_pending_changes(self) -> None:
        with self._lock:
            decorations = list(self._decorations.values())
            self._pending.clear()
            self._decorations.clear()
        for decoration in decorations:
            try:
                self.presenter.clear_decoration(decoration)
            except Exception as e:
                warning(f"Failed to clear decoration: {e}")

    # ==================== 过期清理 ====================

    def sweep_expired(self) -> int:
        """清除超过 TTL 的变更，返回清除数量"""
        now = self.clock()
        with self._lock:
            expired = [
                cid for cid, change in self._pending.items()
                if now - change.created_at > self.ttl and cid not in self._in_flight
            ]
            decorations = []
            for cid in expired:
                del self._pending[cid]
                decoration = self._decorations.pop(cid, None)
                if decoration is not None:
                    decorations.append(decoration)

        for decoration in decorations:
            try:
                self.presenter.clear_decoration(decoration)
            except Exception as e:
                warning(f"Failed to clear decoration: {e}")
        if expired:
            info(f"Expired {len(expired)} pending change(s).")
        return len(expired)

    def start_sweeper(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="smartapply-pending-sweep", daemon=True
        )
        self._sweeper.start()

    def _sweep_loop(self):
        while not self._stop_event.wait(self.sweep_interval):
            self.sweep_expired()

    def dispose(self) -> None:
        """停止清理线程并清空所有待确认变更"""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None
        self.clear_pending_changes()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
