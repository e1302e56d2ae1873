# smartapply/core/utils.py
"""通用工具函数，无外部依赖"""

import uuid
from pathlib import Path
from typing import Optional

def read_file_safely(path: Path, encoding: str = "utf-8") -> Optional[str]:
    """安全读取文件内容"""
    try:
        if path.exists() and path.is_file():
            return path.read_text(encoding=encoding)
    except (UnicodeDecodeError, PermissionError, OSError):
        pass
    return None

def generate_change_id() -> str:
    """生成待确认变更的唯一 ID（不会复用）"""
    return uuid.uuid4().hex

def levenshtein_distance(a: str, b: str) -> int:
    """计算两个字符串的编辑距离"""
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(min(
                    previous[j - 1] + 1,  # 替换
                    current[j - 1] + 1,   # 插入
                    previous[j] + 1,      # 删除
                ))
        previous = current
    return previous[-1]
