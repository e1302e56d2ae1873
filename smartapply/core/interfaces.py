"""
SmartApply 协作者接口
核心流水线只依赖这些抽象基类，不依赖任何具体的编辑器 SDK。
具体实现见 smartapply.hosts（本地文件系统 + 控制台）。
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional
from .models import EditorContext, Position, SymbolInfo, TextEdit


class IDocumentStore(ABC):
    """文档存储：读取全文、执行原子编辑、打开/查找视图"""

    @abstractmethod
    def get_text(self, document_ref: str) -> str:
        pass

    @abstractmethod
    def apply_edit(self, document_ref: str, edit: TextEdit) -> bool:
        """执行一次原子、可撤销的插入或替换，返回是否成功"""
        pass

    @abstractmethod
    def find_views(self, document_ref: str) -> List[Any]:
        """列出该文档当前打开/可见的视图"""
        pass

    @abstractmethod
    def open_document(self, document_ref: str) -> Any:
        pass

    @abstractmethod
    def open_untitled(self, content: str, language: str) -> str:
        """打开一个未保存的内存缓冲区，返回其引用"""
        pass

    @abstractmethod
    def show_document(self, document_ref: str) -> None:
        pass


class ISymbolIndex(ABC):
    """符号索引"""

    @abstractmethod
    def get_symbols(self, document_ref: str) -> List[SymbolInfo]:
        """返回符号树；允许失败或返回空列表，调用方视为“无符号”"""
        pass


class IPickerPrompt(ABC):
    """选择/确认对话"""

    @abstractmethod
    def choose(self, message: str, options: List[str]) -> Optional[str]:
        """N 选 1，取消时返回 None"""
        pass

    @abstractmethod
    def pick_folder(self, default: Optional[str] = None) -> Optional[str]:
        pass

    @abstractmethod
    def confirm(self, message: str, confirm_label: str = "OK") -> bool:
        pass


class ITerminalSink(ABC):
    """终端：只暂存文本，从不自动执行"""

    @abstractmethod
    def has_active_terminal(self) -> bool:
        pass

    @abstractmethod
    def create_terminal(self, name: str) -> None:
        pass

    @abstractmethod
    def show(self) -> None:
        pass

    @abstractmethod
    def send_text(self, text: str, execute: bool = False) -> None:
        pass


class IPreviewPresenter(ABC):
    """差异预览与行内装饰"""

    @abstractmethod
    def register_content_provider(self, scheme: str, provider: Callable[[str], str]) -> None:
        """注册只读虚拟文档的内容提供者"""
        pass

    @abstractmethod
    def show_diff(self, original_ref: str, proposed_ref: str, title: str) -> None:
        pass

    @abstractmethod
    def close_preview(self, proposed_ref: str) -> None:
        pass

    @abstractmethod
    def show_decoration(self, document_ref: str, position: Position, text: str) -> Any:
        pass

    @abstractmethod
    def clear_decoration(self, decoration: Any) -> None:
        pass


class IWorkspace(ABC):
    """工作区：根目录、活动编辑器与文件写入"""

    @property
    @abstractmethod
    def root(self) -> Optional[str]:
        pass

    @abstractmethod
    def active_editor(self) -> Optional[EditorContext]:
        pass

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def create_directory(self, path: str) -> None:
        pass

    @abstractmethod
    def write_file(self, path: str, content: str) -> None:
        pass
