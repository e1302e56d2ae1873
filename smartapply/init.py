"""
项目初始化模块 (CLI 层交互与渲染)
此模块负责通过 CLI 交互收集配置并渲染 config.yaml 的内容。
文件的实际创建操作由 CLI 层 (smartapply/cli.py) 执行。
"""

from pathlib import Path
import jinja2
import click

from .core.config import CONFIG_FILE, CreateFileLocation, PreviewMode, load_config
from .core.detector import detect_project_type

# ------------------------------
# 常量定义
# ------------------------------

TEMPLATE_DIR = Path(__file__).parent / "templates"
CONFIG_TEMPLATE = "config.yaml.j2"


def load_template(name: str = CONFIG_TEMPLATE) -> str:
    """加载内置模板"""
    template_path = TEMPLATE_DIR / name
    if not template_path.exists():
        raise FileNotFoundError(f"未找到模板: {template_path}")
    return template_path.read_text(encoding="utf-8")


def render_config(**values) -> str:
    """渲染 config.yaml"""
    template_str = load_template()
    env = jinja2.Environment(loader=jinja2.DictLoader({"t": template_str}), keep_trailing_newline=True)
    return env.get_template("t").render(**values)


def init_project(root: Path = Path(".")) -> str:
    """
    交互式初始化，返回渲染好的 config 内容字符串。
    文件创建操作由调用者 (cli.py) 负责。
    """
    project_name = root.resolve().name
    project_type = detect_project_type(root)

    preview_mode = click.prompt(
        "预览模式",
        type=click.Choice([m.value for m in PreviewMode]),
        default=PreviewMode.EDITS_ONLY.value
    )
    create_file_location = click.prompt(
        "新文件创建位置",
        type=click.Choice([m.value for m in CreateFileLocation]),
        default=CreateFileLocation.ASK.value
    )
    auto_detect_intent = click.confirm("自动检测代码块意图？", default=True)
    show_fallback_warnings = click.confirm("锚点未找到时显示警告？", default=True)

    try:
        return render_config(
            project_name=project_name,
            project_type=project_type,
            preview_mode=preview_mode,
            create_file_location=create_file_location,
            auto_detect_intent=auto_detect_intent,
            show_fallback_warnings=show_fallback_warnings,
        )
    except jinja2.TemplateError as e:
        click.echo(f"❌ config 模板渲染失败: {e}")
        raise


def validate_config_content(content: str) -> bool:
    """
    验证渲染出的配置内容能被正确加载
    """
    import tempfile
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_file = Path(temp_dir) / CONFIG_FILE.name
        temp_file.write_text(content, encoding="utf-8")
        load_config(temp_file)
    return True
