# smartapply/core/orchestrator.py
"""
智能应用编排器 (ApplyOrchestrator)
根据检测到的意图将代码块路由到对应的处理器：新建文件、编辑文档或发送到终端。
支持多文件批量应用（严格按顺序，遇到失败立即停止，不回滚已应用的部分）。
"""

import os
import re
from dataclasses import replace
from pathlib import Path, PurePath
from typing import List, Optional, Sequence, Union

from .anchor import AnchorResolver
from .config import CreateFileLocation, PreviewMode, SmartApplyConfig
from .intent import IntentClassifier, match_file_header
from .interfaces import (
    IDocumentStore, IPickerPrompt, IPreviewPresenter, ISymbolIndex, ITerminalSink, IWorkspace
)
from .models import (
    ApplyAction, ApplyPayload, ApplyResult, DetectedIntent, Intent, Notice, NoticeLevel,
    Position, ResolvedLocation, ResolveMethod, TextEdit
)
from .pending import PendingChangeStore

# 检测结果的置信度超过该值才会覆盖调用方给出的意图
DETECTION_ADOPT_THRESHOLD = 0.6

TERMINAL_NAME = "SmartApply"
PROMPT_PREFIX_RE = re.compile(r"^[$>%]\s*")

LOCATION_WORKSPACE = "Workspace Root"
LOCATION_CURRENT = "Current Folder"
LOCATION_CHOOSE = "Choose Location..."

APPLY_HERE = "Apply Here"
CREATE_NEW_FILE = "Create New File"
CANCEL = "Cancel"

LANGUAGE_ALIASES = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "rb": "ruby",
    "rs": "rust",
    "sh": "shellscript",
    "bash": "shellscript",
    "zsh": "shellscript",
    "yml": "yaml",
    "md": "markdown",
}


def normalize_language(language: str) -> str:
    """将语言标签规范化为编辑器语言标识（忽略 lang:path 中的路径部分）"""
    lang_only = (language or "").split(":")[0].strip()
    return LANGUAGE_ALIASES.get(lang_only.lower(), lang_only) or "plaintext"


def clean_code_for_file(code: str) -> str:
    """去掉首行的文件路径注释/标题"""
    lines = code.split("\n")
    if match_file_header(lines[0]) is not None:
        return "\n".join(lines[1:]).lstrip()
    return code


def _target_path(base_dir: str, target: str) -> Optional[str]:
    """
    将目标路径嵌套在基准目录下（绝对路径去掉根部分）。
    结果离开基准目录（例如 ../ 逃逸）时返回 None。
    """
    relative = PurePath(target)
    if relative.anchor:
        relative = relative.relative_to(relative.anchor)
    base = os.path.normpath(base_dir)
    joined = os.path.normpath(os.path.join(base, str(relative)))
    if os.path.relpath(joined, base).split(os.sep)[0] in (os.curdir, os.pardir):
        return None
    return joined


def _cancelled() -> ApplyResult:
    return ApplyResult(success=False, action=ApplyAction.CANCELLED)


class ApplyOrchestrator:
    """
    组合意图分类器、锚点解析器和待确认变更存储，实现 apply()。
    """

    def __init__(
        self,
        workspace: IWorkspace,
        document_store: IDocumentStore,
        symbol_index: ISymbolIndex,
        picker: IPickerPrompt,
        terminal: ITerminalSink,
        presenter: IPreviewPresenter,
        config: Optional[SmartApplyConfig] = None,
        classifier: Optional[IntentClassifier] = None,
        pending_store: Optional[PendingChangeStore] = None,
        auto_sweep: bool = True
    ):
        self.workspace = workspace
        self.document_store = document_store
        self.picker = picker
        self.terminal = terminal
        self.config = config or SmartApplyConfig()

        self.classifier = classifier or IntentClassifier(workspace_root=workspace.root)
        self.resolver = AnchorResolver(document_store, symbol_index)
        self.pending_store = pending_store or PendingChangeStore(
            document_store, presenter, auto_sweep=auto_sweep
        )

    def get_config(self) -> SmartApplyConfig:
        return self.config

    # ==================== 入口 ====================

    def apply(self, payload: Union[ApplyPayload, Sequence[ApplyPayload]]) -> ApplyResult:
        """
        应用单个或多个代码块。

        多个代码块按顺序逐一应用，第一个失败的结果直接返回，后续不再处理。
        """
        if isinstance(payload, (list, tuple)):
            notices: List[Notice] = []
            for unit in payload:
                result = self.apply_single(unit)
                if not result.success:
                    return result
                notices.extend(result.notices)
            return ApplyResult(
                success=True,
                action=ApplyAction.CREATED,
                message=f"Applied {len(payload)} files",
                notices=notices,
            )
        return self.apply_single(payload)

    def apply_single(self, payload: ApplyPayload) -> ApplyResult:
        config = self.get_config()

        intent = payload.intent
        if config.auto_detect_intent:
            editor = self.workspace.active_editor()
            active_file = editor.document_ref if editor else None
            detected = self.classifier.detect(payload.code, payload.language, active_file)

            if detected.confidence > DETECTION_ADOPT_THRESHOLD:
                intent = detected.intent
                # 显式给出的 target/anchor 优先
                payload = replace(
                    payload,
                    target=payload.target or detected.target,
                    anchor=payload.anchor or detected.anchor,
                )
        payload = replace(payload, intent=intent)

        if intent == Intent.CREATE:
            return self.handle_create(payload, config)
        if intent == Intent.COMMAND:
            return self.handle_command(payload)
        return self.handle_edit(payload, config)

    # ==================== create ====================

    def handle_create(self, payload: ApplyPayload, config: Optional[SmartApplyConfig] = None) -> ApplyResult:
        """新建文件；总是创建新文件，不修改活动编辑器"""
        config = config or self.get_config()
        cleaned = clean_code_for_file(payload.code)
        root = self.workspace.root
        target = payload.target

        if not (target and root):
            try:
                ref = self.document_store.open_untitled(cleaned, normalize_language(payload.language))
                self.document_store.show_document(ref)
            except Exception as e:
                return ApplyResult(success=False, action=ApplyAction.ERROR, message=f"Failed to create new file: {e}")
            return ApplyResult(success=True, action=ApplyAction.CREATED, message="Created new file")

        base_dir = self._resolve_base_dir(target, root, config)
        if base_dir is None:
            return _cancelled()

        target_path = _target_path(base_dir, target)
        if target_path is None:
            return ApplyResult(
                success=False, action=ApplyAction.ERROR,
                message=f"Refusing to create {target}: path leaves {base_dir}"
            )
        if self._file_exists(target_path):
            if not self.picker.confirm(f'File "{target}" already exists. Overwrite?', "Overwrite"):
                return _cancelled()

        try:
            self.workspace.create_directory(str(Path(target_path).parent))
            self.workspace.write_file(target_path, cleaned)
            self.document_store.open_document(target_path)
            self.document_store.show_document(target_path)
        except Exception as e:
            return ApplyResult(success=False, action=ApplyAction.ERROR, message=f"Failed to create {target}: {e}")

        return ApplyResult(success=True, action=ApplyAction.CREATED, message=f"Created {target}")

    def _resolve_base_dir(self, target: str, root: str, config: SmartApplyConfig) -> Optional[str]:
        """按 create_file_location 策略确定基准目录；用户取消时返回 None"""
        location = config.create_file_location
        if location == CreateFileLocation.CURRENT_FOLDER:
            return self._current_folder(root)
        if location != CreateFileLocation.ASK:
            return root

        choice = self.picker.choose(
            f"Where to create {target}?",
            [LOCATION_WORKSPACE, LOCATION_CURRENT, LOCATION_CHOOSE],
        )
        if choice is None:
            return None
        if choice == LOCATION_CURRENT:
            return self._current_folder(root)
        if choice == LOCATION_CHOOSE:
            return self.picker.pick_folder(root) or None
        return root

    def _current_folder(self, root: str) -> str:
        editor = self.workspace.active_editor()
        if editor is None:
            return root
        return str(Path(root) / PurePath(editor.document_ref).parent)

    def _file_exists(self, path: str) -> bool:
        try:
            return self.workspace.file_exists(path)
        except Exception:
            return False

    # ==================== command ====================

    def handle_command(self, payload: ApplyPayload) -> ApplyResult:
        """
        将命令暂存到终端，不自动执行；执行永远是用户的显式操作。
        """
        command = PROMPT_PREFIX_RE.sub("", payload.code.strip(), count=1).strip()
        try:
            if not self.terminal.has_active_terminal():
                self.terminal.create_terminal(TERMINAL_NAME)
            self.terminal.show()
            self.terminal.send_text(command, execute=False)
        except Exception as e:
            return ApplyResult(success=False, action=ApplyAction.ERROR, message=f"Failed to send command: {e}")

        return ApplyResult(
            success=True,
            action=ApplyAction.SENT_TO_TERMINAL,
            message="Command sent to terminal (press Enter to run)",
        )

    # ==================== edit ====================

    def handle_edit(self, payload: ApplyPayload, config: Optional[SmartApplyConfig] = None) -> ApplyResult:
        config = config or self.get_config()
        editor = self.workspace.active_editor()

        # 没有活动文档时退化为新建文件
        if editor is None:
            return self.handle_create(payload, config)

        if payload.target:
            active_name = PurePath(editor.document_ref).name
            target_name = PurePath(payload.target).name
            if active_name != target_name:
                choice = self.picker.choose(
                    f'Target file "{payload.target}" doesn\'t match active file "{active_name}". Apply anyway?',
                    [APPLY_HERE, CREATE_NEW_FILE, CANCEL],
                )
                if choice == CREATE_NEW_FILE:
                    return self.handle_create(payload, config)
                if choice != APPLY_HERE:
                    return _cancelled()

        resolved = self.resolver.resolve_anchor(editor.document_ref, payload.anchor, editor.cursor)
        notices = self._location_notices(payload, resolved, config)

        should_preview = config.preview_mode == PreviewMode.ALWAYS or (
            config.preview_mode == PreviewMode.EDITS_ONLY and payload.intent == Intent.EDIT
        )
        if should_preview:
            result = self.pending_store.show_preview(
                editor.document_ref, resolved.position, payload.code, resolved.range
            )
            result.notices = notices + result.notices
            return result

        edit = TextEdit(position=resolved.position, new_text=payload.code, range=resolved.range)
        try:
            applied = bool(self.document_store.apply_edit(editor.document_ref, edit))
        except Exception as e:
            return ApplyResult(
                success=False, action=ApplyAction.ERROR, message=f"Failed to apply code: {e}", notices=notices
            )

        return ApplyResult(
            success=applied,
            action=ApplyAction.EDITED if applied else ApplyAction.ERROR,
            message="Code applied" if applied else "Failed to apply code",
            notices=notices,
        )

    def _location_notices(
        self,
        payload: ApplyPayload,
        resolved: ResolvedLocation,
        config: SmartApplyConfig
    ) -> List[Notice]:
        if resolved.method == ResolveMethod.CURSOR_FALLBACK and payload.anchor:
            if config.show_fallback_warnings:
                return [Notice(NoticeLevel.WARNING, f'Could not find "{payload.anchor}". Inserting at cursor position.')]
        elif resolved.method == ResolveMethod.FUZZY_SYMBOL and resolved.symbol_name:
            return [Notice(NoticeLevel.INFO, f'Matched to "{resolved.symbol_name}" (fuzzy match)')]
        return []

    # ==================== 透传 ====================

    def detect_intent(self, code: str, language: str = "", active_file: Optional[str] = None) -> DetectedIntent:
        """供前端预先分类代码块"""
        return self.classifier.detect(code, language, active_file)

    def resolve_anchor(self, document_ref: str, anchor: Optional[str], cursor: Position) -> ResolvedLocation:
        return self.resolver.resolve_anchor(document_ref, anchor, cursor)

    def accept_change(self, change_id: str) -> bool:
        return self.pending_store.accept_change(change_id)

    def reject_change(self, change_id: str) -> bool:
        return self.pending_store.reject_change(change_id)

    def dispose(self) -> None:
        self.pending_store.dispose()
