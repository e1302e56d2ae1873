"""文本拼接与位置换算工具，无外部依赖。所有行都按 "\\n" 切分。"""

from typing import Optional
from .models import Position, Range


def line_count(code: str) -> int:
    return len(code.split("\n"))


def position_at(text: str, offset: int) -> Position:
    """将字符偏移量换算为 (line, character)"""
    offset = max(0, min(offset, len(text)))
    before = text[:offset]
    line = before.count("\n")
    character = offset - (before.rfind("\n") + 1)
    return Position(line, character)


def splice(original: str, position: Position, new_code: str, range: Optional[Range] = None) -> str:
    """
    将 new_code 拼入原文本。
    - 给定 range：替换该区间，保留起始行的前缀与结束行的后缀
    - 未给定 range：在 position 处插入，保留该行的前后文
    """
    lines = original.split("\n")

    if range is not None:
        start_line = min(range.start.line, len(lines) - 1)
        end_line = min(range.end.line, len(lines) - 1)
        before_lines = lines[:start_line]
        after_lines = lines[end_line + 1:]

        start_prefix = lines[start_line][:range.start.character]
        end_suffix = lines[end_line][range.end.character:]

        new_lines = new_code.split("\n")
        if len(new_lines) == 1:
            return "\n".join(before_lines + [start_prefix + new_code + end_suffix] + after_lines)
        new_lines[0] = start_prefix + new_lines[0]
        new_lines[-1] = new_lines[-1] + end_suffix
        return "\n".join(before_lines + new_lines + after_lines)

    if position.line >= len(lines):
        # 超出末行时追加
        return original + "\n" + new_code

    current = lines[position.line]
    lines[position.line] = current[:position.character] + new_code + current[position.character:]
    return "\n".join(lines)
