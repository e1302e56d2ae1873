# smartapply/cli
"""
SmartApply CLI 主入口（通过 ApplyOrchestrator 和本地适配器驱动）
"""
import click
import json
import yaml
from pathlib import Path
from typing import List, Optional

import jinja2
from rich.markup import escape

from smartapply import __version__
from smartapply.core.anchor import AnchorResolver
from smartapply.core.config import CONFIG_FILE, ConfigError, PreviewMode, SmartApplyConfig, load_config
from smartapply.core.detector import detect_project_type
from smartapply.core.intent import IntentClassifier
from smartapply.core.models import ApplyAction, ApplyPayload, Intent, NoticeLevel, Position
from smartapply.hosts import build_local_orchestrator
from smartapply.hosts.local import LocalDocumentStore, LocalSymbolIndex, read_document
from smartapply.init import init_project, validate_config_content
from smartapply.utils.console import (
    info, success, warning, error,
    heading, show_welcome, confirm, print_table, set_quiet
)

# ------------------------------
# CLI 主入口
# ------------------------------

@click.group(invoke_without_command=True)
@click.version_option(__version__, message="SmartApply CLI v%(version)s")
@click.option("--quiet", "-q", is_flag=True, help="Suppress console output")
@click.pass_context
def cli(ctx, quiet):
    """🧩 SmartApply - Apply chat code blocks to your workspace"""
    set_quiet(quiet)
    if ctx.invoked_subcommand is None:
        show_welcome()
        click.echo(ctx.get_help())

# ------------------------------
# 辅助函数
# ------------------------------

def _config_path(root: str) -> Path:
    return Path(root) / CONFIG_FILE


def _load_config_or_abort(root: str) -> SmartApplyConfig:
    """加载配置；配置非法时中止命令"""
    try:
        return load_config(_config_path(root))
    except ConfigError as e:
        error(str(e))
        raise click.Abort()


def _cursor(line: int, column: int) -> Position:
    """命令行中的行列从 1 开始"""
    return Position(max(line - 1, 0), max(column - 1, 0))


def _print_notices(notices) -> None:
    for notice in notices:
        if notice.level == NoticeLevel.WARNING:
            warning(escape(notice.message))
        else:
            info(escape(notice.message))


def _load_batch(batch_file: str) -> List[ApplyPayload]:
    """
    读取批处理 YAML：代码块列表，或带 blocks 键的映射。
    """
    try:
        with open(batch_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or []
    except (OSError, yaml.YAMLError) as e:
        error(f"Failed to read batch file: {e}")
        raise click.Abort()

    if isinstance(data, dict):
        data = data.get("blocks") or []
    if not isinstance(data, list) or not all(
        isinstance(item, dict) and isinstance(item.get("code"), str) for item in data
    ):
        error("Batch file must be a list of mappings with a string 'code' key.")
        raise click.Abort()
    return [ApplyPayload.from_dict(item) for item in data]

# ------------------------------
# 命令 1: init
# ------------------------------

@cli.command()
@click.option("--root", default=".", type=click.Path(exists=True, file_okay=False), help="Project root")
def init(root):
    """🔧 Initialize .smartapply/config.yaml"""
    show_welcome()
    heading("Project Initialization")
    config_file = _config_path(root)

    if config_file.exists():
        if not confirm(f"{config_file} already exists. Overwrite?", default=False):
            info("Cancelled.")
            return
    try:
        config_content = init_project(Path(root))
        validate_config_content(config_content)
    except (jinja2.TemplateError, ConfigError, FileNotFoundError) as e:
        error(f"Initialization failed: {e}")
        raise click.Abort()

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(config_content, encoding="utf-8")
    success(f"Generated: {config_file}")

# ------------------------------
# 命令 2: config
# ------------------------------

@cli.command(name="config")
@click.option("--root", default=".", type=click.Path(exists=True, file_okay=False), help="Project root")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def show_config(root, as_json):
    """⚙️  Show and validate the effective configuration"""
    config = _load_config_or_abort(root)
    if as_json:
        click.echo(json.dumps(config.to_dict(), indent=2))
        return

    heading("Effective Configuration")
    config_file = _config_path(root)
    if config_file.exists():
        success(f"{config_file} is valid.")
    else:
        info(f"{config_file} not found, using defaults.")
    print_table(
        [(key, value) for key, value in config.to_dict().items()],
        headers=["Key", "Value"],
        title="⚙️  apply"
    )

# ------------------------------
# 命令 3: detect
# ------------------------------

@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--language", "-l", default="", help="Language tag of the code block (e.g. python or ts:src/app.ts)")
@click.option("--active", default=None, help="Path of the active document")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def detect(file, language, active, as_json):
    """🔍 Classify a code block as create / edit / command"""
    code = read_document(file)
    if code is None:
        error(f"Failed to read {file}")
        raise click.Abort()

    detected = IntentClassifier().detect(code, language, active)

    data = {
        "intent": detected.intent.value,
        "confidence": detected.confidence,
        "target": detected.target,
        "anchor": detected.anchor,
    }
    if as_json:
        click.echo(json.dumps(data))
        return
    print_table([(k, "-" if v is None else v) for k, v in data.items()],
                headers=["Field", "Value"], title="🔍 Detected Intent")

# ------------------------------
# 命令 4: resolve
# ------------------------------

@cli.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.argument("anchor")
@click.option("--line", default=1, type=int, help="Cursor line (1-based)")
@click.option("--column", default=1, type=int, help="Cursor column (1-based)")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def resolve(document, anchor, line, column, as_json):
    """📍 Resolve an anchor to a location in DOCUMENT"""
    document_path = Path(document).resolve()
    store = LocalDocumentStore(str(document_path.parent))
    resolver = AnchorResolver(store, LocalSymbolIndex(store))
    location = resolver.resolve_anchor(str(document_path), anchor, _cursor(line, column))

    data = {
        "method": location.method.value,
        "line": location.position.line + 1,
        "column": location.position.character + 1,
        "symbol": location.symbol_name,
    }
    if location.range is not None:
        data["end_line"] = location.range.end.line + 1
        data["end_column"] = location.range.end.character + 1

    if as_json:
        click.echo(json.dumps(data))
        return
    print_table([(k, "-" if v is None else v) for k, v in data.items()],
                headers=["Field", "Value"], title=f"📍 {escape(anchor)}")

# ------------------------------
# 命令 5: project-type
# ------------------------------

@cli.command(name="project-type")
@click.argument("root", default=".", type=click.Path(exists=True, file_okay=False))
def project_type(root):
    """📦 Detect the project type from marker files"""
    click.echo(detect_project_type(Path(root)))

# ------------------------------
# 命令 6: apply (主要入口)
# ------------------------------

def _review_pending(orchestrator) -> None:
    """逐个询问是否接受已展示预览的变更"""
    for change_id in orchestrator.pending_store.pending_ids():
        if confirm("Apply these changes?", default=False):
            orchestrator.accept_change(change_id)
        else:
            orchestrator.reject_change(change_id)


@cli.command()
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--batch", "batch_file", type=click.Path(exists=True, dir_okay=False), help="YAML file with code blocks")
@click.option("--language", "-l", default="", help="Language tag of the code block")
@click.option("--intent", type=click.Choice([i.value for i in Intent]), help="Intent hint")
@click.option("--target", "-t", default=None, help="Target file path hint")
@click.option("--anchor", "-a", default=None, help="Symbol or context name hint")
@click.option("--active", default=None, help="Path of the active document")
@click.option("--line", default=1, type=int, help="Cursor line (1-based)")
@click.option("--column", default=1, type=int, help="Cursor column (1-based)")
@click.option("--preview-mode", type=click.Choice([m.value for m in PreviewMode]), help="Override preview mode")
@click.option("--root", default=".", type=click.Path(exists=True, file_okay=False), help="Workspace root")
@click.pass_context
def apply(ctx, files, batch_file, language, intent, target, anchor, active, line, column, preview_mode, root):
    """🚀 Apply code blocks: create files, edit the active document or stage commands"""
    config = _load_config_or_abort(root)
    if preview_mode:
        config.preview_mode = PreviewMode(preview_mode)

    payloads: List[ApplyPayload] = []
    for file in files:
        code = read_document(file)
        if code is None:
            error(f"Failed to read {file}")
            raise click.Abort()
        payloads.append(ApplyPayload(
            code=code, language=language, intent=Intent.parse(intent), target=target, anchor=anchor
        ))
    if batch_file:
        payloads.extend(_load_batch(batch_file))
    if not payloads:
        error("No code blocks given. Pass FILES or --batch.")
        raise click.Abort()

    active_ref: Optional[str] = str(Path(active).resolve()) if active else None
    orchestrator = build_local_orchestrator(
        str(Path(root).resolve()), active_file=active_ref, cursor=_cursor(line, column), config=config
    )
    try:
        result = orchestrator.apply(payloads if len(payloads) > 1 else payloads[0])
        _print_notices(result.notices)

        if result.success:
            if result.action != ApplyAction.PREVIEW_SHOWN:
                success(escape(result.message or result.action.value))
            _review_pending(orchestrator)
        elif result.action == ApplyAction.CANCELLED:
            warning("Cancelled.")
        else:
            error(escape(result.message or "Failed to apply code"))
            # 批处理中止前已展示的预览仍需逐个确认
            _review_pending(orchestrator)
            ctx.exit(1)
    finally:
        orchestrator.dispose()


if __name__ == "__main__":
    cli()
