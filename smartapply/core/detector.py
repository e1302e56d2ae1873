"""
项目类型探测器（node / python / rust / go）
结果仅作为分类参考，不具约束力。
"""

from pathlib import Path
from typing import List

# ==================== 探测规则 ====================

# 按顺序探测，第一个存在任一标记文件的项目类型胜出
PROJECT_RULES = {
    "node": ["package.json"],
    "python": ["pyproject.toml", "requirements.txt", "setup.py"],
    "rust": ["Cargo.toml"],
    "go": ["go.mod"],
}

# ==================== 核心 API ====================

def detect_project_type(root: Path = Path(".")) -> str:
    """
    探测项目类型，返回如 'node', 'python', 'rust', 'go'，无法识别时返回 'unknown'
    """
    try:
        for project_type, markers in PROJECT_RULES.items():
            if _has_marker(root, markers):
                return project_type
    except OSError:
        # 文件系统错误一律视为未知
        pass
    return "unknown"

# ==================== 私有实现 ====================

def _has_marker(root: Path, markers: List[str]) -> bool:
    return any((root / marker).exists() for marker in markers)
