"""
代码块意图分类器 (IntentClassifier)

在用户点击 "Apply" 之前判断代码块的用途：新建文件 (create)、
编辑现有文件 (edit) 或执行命令 (command)。

分类规则以数据表的形式组织：每个阶段 (Stage) 是一组有序的
(名称, 匹配器, 置信度) 规则。阶段内第一条命中的规则决定该阶段的置信度，
置信度超过阶段阈值即返回，否则进入下一阶段。
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .detector import detect_project_type
from .models import DetectedIntent, Intent
from .text import line_count

# ==================== 正则表达式 ====================

SHELL_PROMPT_RE = re.compile(r"^[$>%]\s+(.+)$")

COMMAND_PATTERNS = [
    ("package_manager", re.compile(r"^(npm|yarn|pnpm|npx)\s+(install|run|start|test|build|dev|init|create)", re.I), 0.9),
    ("python_tooling", re.compile(r"^(pip|pip3|python|python3)\s+(install|run|-m)", re.I), 0.9),
    ("cargo", re.compile(r"^cargo\s+(build|run|test|new|init|add)", re.I), 0.9),
    ("go", re.compile(r"^go\s+(run|build|test|mod|get)", re.I), 0.9),
    ("git", re.compile(r"^git\s+(clone|pull|push|commit|checkout|branch|merge|rebase|stash|add|status|diff)", re.I), 0.9),
    ("docker", re.compile(r"^docker(-compose)?\s+(run|build|pull|push|up|down|exec|ps|logs)", re.I), 0.9),
    ("kubectl", re.compile(r"^kubectl\s+(apply|get|describe|logs|exec|delete|create)", re.I), 0.9),
    ("cli_tool", re.compile(r"^(curl|wget|ssh|scp|rsync|chmod|chown|mkdir|rm|cp|mv|cat|grep|find|awk|sed|head|tail)\s+", re.I), 0.85),
]

# 单行命令中不应出现的语法标记
CODE_MARKERS = ("{", "function", "class", "def ", "import ", "const ", "let ", "var ")

# 首行文件路径注释，也供 orchestrator 清理文件头使用
FILE_COMMENT_PATTERNS = [
    re.compile(r"^//\s*([^\s]+\.\w+)\s*$"),            # // path/file.ext
    re.compile(r"^#\s*([^\s]+\.\w+)\s*$"),             # # path/file.ext
    re.compile(r"^/\*\s*([^\s]+\.\w+)\s*\*/\s*$"),     # /* path/file.ext */
    re.compile(r"^<!--\s*([^\s]+\.\w+)\s*-->\s*$"),    # <!-- path/file.html -->
    re.compile(r'^"""\s*([^\s]+\.\w+)\s*"""\s*$'),     # """ path/file.py """
]
MARKDOWN_HEADER_RE = re.compile(r"^#{1,3}\s+([^\s]+\.\w+)\s*$")
FILE_HEADER_PATTERNS = FILE_COMMENT_PATTERNS + [MARKDOWN_HEADER_RE]

LANG_PATH_RE = re.compile(r":([^\s]+\.\w+)$")

IMPORTS_AT_TOP_RE = re.compile(r"^(import\s|from\s|require\(|use\s|using\s)", re.I)
EXPORTS_RE = re.compile(r"(export\s+(default\s+)?|module\.exports\s*=)", re.I)
CLASS_OR_FUNCTION_RE = re.compile(r"(^|\n)(class\s+\w+|function\s+\w+|def\s+\w+|fn\s+\w+|func\s+\w+)", re.I)

# Dockerfile 的 FROM 区分大小写，否则会吞掉 Python 的 "from x import y"
CONFIG_PATTERNS = [
    re.compile(r'^{\s*"name"\s*:', re.I),              # package.json
    re.compile(r'^{\s*"compilerOptions"\s*:', re.I),   # tsconfig.json
    re.compile(r"^\[tool\.", re.I),                    # pyproject.toml
    re.compile(r"^version\s*=", re.I),                 # Cargo.toml
    re.compile(r"^FROM\s+"),                           # Dockerfile
    re.compile(r"^version:\s*['\"]?\d", re.I),         # docker-compose.yml
]

SINGLE_IMPORT_RE = re.compile(
    r"^(import\s+.+|from\s+.+\s+import\s+.+|const\s+\w+\s*=\s*require\(.+\)|use\s+.+;?)$", re.I
)
SINGLE_FUNCTION_RE = re.compile(r"^(async\s+)?(function|const|let|var)\s+(\w+)", re.I)
PYTHON_FUNCTION_RE = re.compile(r"^(async\s+)?def\s+(\w+)", re.I)
METHOD_RE = re.compile(r"^\s*(public|private|protected|static|async)?\s*(function|def|fn|func)?\s*(\w+)\s*\(", re.I | re.M)

COMPLETE_FILE_IMPORTS_RE = re.compile(r"^(import\s|from\s|require\(|use\s|using\s|package\s)", re.I)
MAIN_ENTRY_RE = re.compile(
    r"(if\s+__name__\s*==\s*['\"]__main__|fn\s+main\s*\(|func\s+main\s*\(|int\s+main\s*\()", re.I
)

# ==================== 规则表 ====================


@dataclass
class CodeSample:
    """一次分类中各规则共享的预处理结果"""
    code: str
    language: str
    trimmed: str
    lines: List[str]
    first_line: str

    @classmethod
    def of(cls, code: str, language: str) -> 'CodeSample':
        trimmed = code.strip()
        lines = trimmed.split("\n")
        return cls(code=code, language=language or "", trimmed=trimmed, lines=lines, first_line=lines[0])

    @property
    def line_count(self) -> int:
        """原始代码行数（未去除首尾空白）"""
        return line_count(self.code)


# 匹配器返回 None 表示未命中；命中时返回需要写入结果的附加字段
Matcher = Callable[[CodeSample], Optional[Dict[str, str]]]


@dataclass
class Rule:
    name: str
    matcher: Matcher
    confidence: float


@dataclass
class Stage:
    intent: Intent
    threshold: float
    rules: List[Rule] = field(default_factory=list)

    def evaluate(self, sample: CodeSample) -> DetectedIntent:
        """阶段内第一条命中的规则决定置信度"""
        for rule in self.rules:
            extras = rule.matcher(sample)
            if extras is not None:
                return DetectedIntent(intent=self.intent, confidence=rule.confidence, **extras)
        return DetectedIntent(intent=self.intent, confidence=0.0)

    def accepts(self, detected: DetectedIntent) -> bool:
        return detected.confidence > self.threshold


def looks_like_complete_file(code: str) -> bool:
    """判断代码是否像一个完整文件（而非片段）：至少命中两项特征"""
    indicators = [
        code.startswith("#!"),
        bool(COMPLETE_FILE_IMPORTS_RE.match(code)),
        bool(MAIN_ENTRY_RE.search(code)),
        bool(EXPORTS_RE.search(code)),
    ]
    return sum(indicators) >= 2


def match_file_header(line: str) -> Optional[str]:
    """若该行是文件路径注释或 Markdown 文件名标题，返回其中的路径"""
    for pattern in FILE_HEADER_PATTERNS:
        match = pattern.match(line)
        if match:
            return match.group(1)
    return None


# --- command 阶段 ---

def _regex_on_first_line(pattern: re.Pattern) -> Matcher:
    def matcher(sample: CodeSample) -> Optional[Dict[str, str]]:
        return {} if pattern.search(sample.first_line.strip()) else None
    return matcher


def _single_line_without_code_markers(sample: CodeSample) -> Optional[Dict[str, str]]:
    if len(sample.lines) != 1:
        return None
    lowered = sample.first_line.strip().lower()
    if any(marker in lowered for marker in CODE_MARKERS):
        return None
    return {}


# --- create 阶段 ---

def _path_comment(sample: CodeSample) -> Optional[Dict[str, str]]:
    for pattern in FILE_COMMENT_PATTERNS:
        match = pattern.match(sample.first_line)
        if match:
            return {"target": match.group(1)}
    return None


def _markdown_header(sample: CodeSample) -> Optional[Dict[str, str]]:
    match = MARKDOWN_HEADER_RE.match(sample.first_line)
    return {"target": match.group(1)} if match else None


def _language_path(sample: CodeSample) -> Optional[Dict[str, str]]:
    match = LANG_PATH_RE.search(sample.language)
    return {"target": match.group(1)} if match else None


def _complete_module(sample: CodeSample) -> Optional[Dict[str, str]]:
    has_imports = bool(IMPORTS_AT_TOP_RE.match(sample.trimmed))
    has_exports = bool(EXPORTS_RE.search(sample.trimmed))
    has_class_or_function = bool(CLASS_OR_FUNCTION_RE.search(sample.trimmed))
    if has_imports and (has_exports or has_class_or_function) and sample.line_count > 20:
        return {}
    return None


def _config_signature(sample: CodeSample) -> Optional[Dict[str, str]]:
    if any(pattern.match(sample.trimmed) for pattern in CONFIG_PATTERNS):
        return {}
    return None


# --- edit 阶段 ---

def _import_only(sample: CodeSample) -> Optional[Dict[str, str]]:
    if len(sample.lines) > 3:
        return None
    non_blank = [l.strip() for l in sample.lines if l.strip()]
    if non_blank and all(SINGLE_IMPORT_RE.match(l) for l in non_blank):
        return {"anchor": "imports"}
    return None


def _top_level_declaration(sample: CodeSample) -> Optional[Dict[str, str]]:
    match = SINGLE_FUNCTION_RE.match(sample.trimmed)
    if match and len(sample.lines) < 30:
        return {"anchor": match.group(3)}
    return None


def _python_function(sample: CodeSample) -> Optional[Dict[str, str]]:
    match = PYTHON_FUNCTION_RE.match(sample.trimmed)
    if match and len(sample.lines) < 30:
        return {"anchor": match.group(2)}
    return None


def _method_shape(sample: CodeSample) -> Optional[Dict[str, str]]:
    match = METHOD_RE.search(sample.trimmed)
    if match and len(sample.lines) < 40 and "class " not in sample.trimmed.lower():
        return {"anchor": match.group(3)}
    return None


def _short_snippet(sample: CodeSample) -> Optional[Dict[str, str]]:
    if len(sample.lines) < 20 and not looks_like_complete_file(sample.trimmed):
        return {}
    return None


COMMAND_STAGE = Stage(
    intent=Intent.COMMAND,
    threshold=0.8,
    rules=[Rule("shell_prompt", _regex_on_first_line(SHELL_PROMPT_RE), 0.95)]
    + [Rule(name, _regex_on_first_line(pattern), conf) for name, pattern, conf in COMMAND_PATTERNS]
    + [Rule("single_line", _single_line_without_code_markers, 0.4)],
)

CREATE_STAGE = Stage(
    intent=Intent.CREATE,
    threshold=0.7,
    rules=[
        Rule("path_comment", _path_comment, 0.95),
        Rule("markdown_header", _markdown_header, 0.9),
        Rule("language_path", _language_path, 0.9),
        Rule("complete_module", _complete_module, 0.7),
        Rule("config_file", _config_signature, 0.85),
    ],
)

EDIT_STAGE = Stage(
    intent=Intent.EDIT,
    threshold=0.5,
    rules=[
        Rule("import_only", _import_only, 0.85),
        Rule("top_level_declaration", _top_level_declaration, 0.7),
        Rule("python_function", _python_function, 0.7),
        Rule("method_shape", _method_shape, 0.6),
        Rule("short_snippet", _short_snippet, 0.5),
    ],
)

STAGES: List[Stage] = [COMMAND_STAGE, CREATE_STAGE, EDIT_STAGE]


def first_acceptable(stages: List[Stage], sample: CodeSample) -> Optional[DetectedIntent]:
    """按顺序评估各阶段，返回第一个超过阈值的结果"""
    for stage in stages:
        detected = stage.evaluate(sample)
        if stage.accepts(detected):
            return detected
    return None


class IntentClassifier:
    """
    在应用前对代码块进行分类。纯计算，无 I/O（detect_project_type 除外）。
    """

    def __init__(self, workspace_root: Optional[str] = None, stages: Optional[List[Stage]] = None):
        self.workspace_root = workspace_root
        self.stages = stages if stages is not None else STAGES

    def detect(self, code: str, language: str = "", active_file: Optional[str] = None) -> DetectedIntent:
        sample = CodeSample.of(code, language)
        detected = first_acceptable(self.stages, sample)
        if detected is not None:
            return detected

        # 有活动文件且代码较短时，默认视为编辑
        if active_file and sample.line_count < 50:
            return DetectedIntent(intent=Intent.EDIT, confidence=0.4)
        return DetectedIntent(intent=Intent.CREATE, confidence=0.3)

    def detect_project_type(self) -> str:
        """根据工作区根目录的标记文件推测项目类型（仅作参考）"""
        if not self.workspace_root:
            return "unknown"
        return detect_project_type(Path(self.workspace_root))
