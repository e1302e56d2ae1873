"""
SmartApply 配置
从 .smartapply/config.yaml 的 `apply:` 段加载；文件缺失时使用默认值。
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_DIR = Path(".smartapply")
CONFIG_FILE = CONFIG_DIR / "config.yaml"


class ConfigError(ValueError):
    """配置文件内容非法"""


class PreviewMode(Enum):
    ALWAYS = "always"
    EDITS_ONLY = "edits_only"
    NEVER = "never"


class CreateFileLocation(Enum):
    WORKSPACE_ROOT = "workspace_root"
    CURRENT_FOLDER = "current_folder"
    ASK = "ask"


# 兼容编辑器设置中的驼峰写法
_KEY_ALIASES = {
    "previewMode": "preview_mode",
    "autoDetectIntent": "auto_detect_intent",
    "createFileLocation": "create_file_location",
    "showFallbackWarnings": "show_fallback_warnings",
}


def _parse_enum(enum_cls, value: Any, key: str):
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if member.value == str(value).strip():
            return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ConfigError(f"Invalid value for '{key}': {value!r} (expected one of: {allowed})")


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"Invalid value for '{key}': {value!r} (expected true/false)")


@dataclass
class SmartApplyConfig:
    preview_mode: PreviewMode = PreviewMode.EDITS_ONLY
    auto_detect_intent: bool = True
    create_file_location: CreateFileLocation = CreateFileLocation.ASK
    show_fallback_warnings: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'SmartApplyConfig':
        """从字典创建配置，未知键忽略，非法取值抛出 ConfigError"""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("apply configuration must be a mapping")

        normalized = {_KEY_ALIASES.get(k, k): v for k, v in data.items()}
        config = cls()
        if "preview_mode" in normalized:
            config.preview_mode = _parse_enum(PreviewMode, normalized["preview_mode"], "preview_mode")
        if "auto_detect_intent" in normalized:
            config.auto_detect_intent = _parse_bool(normalized["auto_detect_intent"], "auto_detect_intent")
        if "create_file_location" in normalized:
            config.create_file_location = _parse_enum(
                CreateFileLocation, normalized["create_file_location"], "create_file_location"
            )
        if "show_fallback_warnings" in normalized:
            config.show_fallback_warnings = _parse_bool(
                normalized["show_fallback_warnings"], "show_fallback_warnings"
            )
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "preview_mode": self.preview_mode.value,
            "auto_detect_intent": self.auto_detect_intent,
            "create_file_location": self.create_file_location.value,
            "show_fallback_warnings": self.show_fallback_warnings,
        }


def load_config(path: Optional[Path] = None) -> SmartApplyConfig:
    """
    加载配置文件。

    Raises:
        ConfigError: YAML 语法错误或取值非法
    """
    config_file = Path(path) if path else CONFIG_FILE
    if not config_file.exists():
        return SmartApplyConfig()

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_file} must contain a YAML mapping")
    return SmartApplyConfig.from_dict(data.get("apply"))
