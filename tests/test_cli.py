# tests/test_cli.py
import json
import unittest
import os
import shutil
import tempfile
from pathlib import Path

import yaml
from click.testing import CliRunner

from smartapply.cli import cli
from smartapply.core.config import CONFIG_FILE, PreviewMode, load_config

APP_SOURCE = "import os\n\ndef helper():\n    return 1\n"


class TestSmartApplyCLI(unittest.TestCase):

    def setUp(self):
        """每个测试在独立的临时目录中运行"""
        self.test_dir = tempfile.mkdtemp()
        self.original_cwd = Path.cwd()
        os.chdir(self.test_dir)
        self.runner = CliRunner()
        Path("app.py").write_text(APP_SOURCE, encoding="utf-8")

    def tearDown(self):
        os.chdir(self.original_cwd)
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def write(self, name, content):
        Path(name).parent.mkdir(parents=True, exist_ok=True)
        Path(name).write_text(content, encoding="utf-8")
        return name

    def write_config(self, apply_section):
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_FILE.write_text(yaml.dump({"apply": apply_section}), encoding="utf-8")

    # --- 基本 ---

    def test_version(self):
        result = self.runner.invoke(cli, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("SmartApply CLI v0.1.0", result.output)

    def test_help_without_command(self):
        result = self.runner.invoke(cli, [])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("apply", result.output)
        self.assertIn("detect", result.output)

    def test_project_type(self):
        self.write("go.mod", "module demo\n")
        result = self.runner.invoke(cli, ["project-type"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.output.strip(), "go")

    # --- init / config ---

    def test_init_writes_default_config(self):
        result = self.runner.invoke(cli, ["init"], input="\n\n\n\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Generated", result.output)
        self.assertTrue(CONFIG_FILE.exists())

        config = load_config(CONFIG_FILE)
        self.assertEqual(config.preview_mode, PreviewMode.EDITS_ONLY)
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8"))
        self.assertEqual(data["project"]["type"], "unknown")

    def test_init_with_custom_answers(self):
        result = self.runner.invoke(cli, ["init"], input="never\nworkspace_root\nn\nn\n")
        self.assertEqual(result.exit_code, 0, result.output)
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8"))
        self.assertEqual(data["apply"], {
            "preview_mode": "never",
            "auto_detect_intent": False,
            "create_file_location": "workspace_root",
            "show_fallback_warnings": False,
        })

    def test_init_keeps_existing_config_when_declined(self):
        self.write_config({"preview_mode": "always"})
        before = CONFIG_FILE.read_text(encoding="utf-8")
        result = self.runner.invoke(cli, ["init"], input="n\n")
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Cancelled", result.output)
        self.assertEqual(CONFIG_FILE.read_text(encoding="utf-8"), before)

    def test_config_json(self):
        self.write_config({"preview_mode": "always"})
        result = self.runner.invoke(cli, ["config", "--json"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(json.loads(result.output)["preview_mode"], "always")

    def test_config_table_reports_defaults(self):
        result = self.runner.invoke(cli, ["config"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("using defaults", result.output)
        self.assertIn("edits_only", result.output)

    def test_invalid_config_aborts(self):
        self.write_config({"preview_mode": "sometimes"})
        result = self.runner.invoke(cli, ["config"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Invalid value", result.output)

    # --- detect / resolve ---

    def test_detect_json(self):
        self.write("snippet.txt", "$ npm install left-pad")
        result = self.runner.invoke(cli, ["detect", "snippet.txt", "--json"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(json.loads(result.output), {
            "intent": "command", "confidence": 0.95, "target": None, "anchor": None,
        })

    def test_detect_table(self):
        self.write("snippet.txt", "// src/app.ts\nexport const x = 1;")
        result = self.runner.invoke(cli, ["detect", "snippet.txt"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("create", result.output)
        self.assertIn("src/app.ts", result.output)

    def test_detect_with_active_file(self):
        self.write("snippet.txt", "x += 1")
        result = self.runner.invoke(cli, ["detect", "snippet.txt", "--active", "app.py", "--json"])
        self.assertEqual(json.loads(result.output)["intent"], "edit")

    def test_resolve_json(self):
        result = self.runner.invoke(cli, ["resolve", "app.py", "helper", "--json"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(json.loads(result.output), {
            "method": "exact_symbol", "line": 3, "column": 1, "symbol": "helper",
            "end_line": 4, "end_column": 13,
        })

    def test_resolve_falls_back_to_cursor(self):
        result = self.runner.invoke(cli, ["resolve", "app.py", "nothingLikeThis", "--line", "2", "--json"])
        data = json.loads(result.output)
        self.assertEqual(data["method"], "cursor_fallback")
        self.assertEqual(data["line"], 2)

    # --- apply ---

    def test_apply_command_is_only_staged(self):
        self.write("cmd.txt", "$ npm install left-pad")
        result = self.runner.invoke(cli, ["apply", "cmd.txt"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("npm install left-pad", result.output)
        self.assertIn("Command sent to terminal", result.output)

    def test_apply_create_asks_for_location(self):
        self.write("snippet.txt", "// src/util.ts\nexport const u = 1;\n")
        result = self.runner.invoke(cli, ["apply", "snippet.txt"], input="1\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Created src/util.ts", result.output)
        self.assertEqual(Path("src/util.ts").read_text(encoding="utf-8"), "export const u = 1;\n")

    def test_apply_create_cancelled(self):
        self.write("snippet.txt", "// src/util.ts\nexport const u = 1;\n")
        result = self.runner.invoke(cli, ["apply", "snippet.txt"], input="\n")
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Cancelled", result.output)
        self.assertFalse(Path("src/util.ts").exists())

    def test_apply_edit_preview_accepted(self):
        self.write("patch.txt", "def helper():\n    return 42")
        result = self.runner.invoke(cli, ["apply", "patch.txt", "--active", "app.py"], input="y\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Changes applied successfully", result.output)
        self.assertEqual(Path("app.py").read_text(encoding="utf-8"),
                         "import os\n\ndef helper():\n    return 42\n")

    def test_apply_edit_preview_rejected(self):
        self.write("patch.txt", "def helper():\n    return 42")
        result = self.runner.invoke(cli, ["apply", "patch.txt", "--active", "app.py"], input="n\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Changes rejected", result.output)
        self.assertEqual(Path("app.py").read_text(encoding="utf-8"), APP_SOURCE)

    def test_apply_edit_without_preview(self):
        self.write("patch.txt", "import sys")
        result = self.runner.invoke(
            cli, ["apply", "patch.txt", "--active", "app.py", "--preview-mode", "never"]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Code applied", result.output)
        self.assertTrue(Path("app.py").read_text(encoding="utf-8").startswith("import os\nimport sys"))

    def test_apply_reports_fallback_warning(self):
        self.write("patch.txt", "import sys")
        result = self.runner.invoke(
            cli, ["apply", "patch.txt", "--active", "app.py", "--anchor", "nowhereToBeFound",
                  "--intent", "edit", "--preview-mode", "never", "--line", "2"]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('Could not find "nowhereToBeFound"', result.output)

    def test_apply_batch(self):
        self.write_config({"create_file_location": "workspace_root"})
        self.write("batch.yaml", yaml.dump([
            {"code": "$ git status"},
            {"code": "# pkg/mod.py\nVALUE = 1\n", "language": "python"},
        ]))
        result = self.runner.invoke(cli, ["apply", "--batch", "batch.yaml"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Applied 2 files", result.output)
        self.assertEqual(Path("pkg/mod.py").read_text(encoding="utf-8"), "VALUE = 1\n")

    def test_apply_batch_with_blocks_key(self):
        self.write("batch.yaml", yaml.dump({"blocks": [{"code": "$ git status"}]}))
        result = self.runner.invoke(cli, ["apply", "--batch", "batch.yaml"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Command sent to terminal", result.output)

    def test_invalid_batch_aborts(self):
        self.write("batch.yaml", yaml.dump([{"language": "python"}]))
        result = self.runner.invoke(cli, ["apply", "--batch", "batch.yaml"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("'code' key", result.output)

    def test_batch_with_non_string_code_aborts(self):
        self.write("batch.yaml", yaml.dump([{"code": 123}]))
        result = self.runner.invoke(cli, ["apply", "--batch", "batch.yaml"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("string 'code' key", result.output)
        self.assertNotIsInstance(result.exception, AttributeError)

    def test_failed_batch_still_reviews_earlier_previews(self):
        self.write_config({"create_file_location": "workspace_root"})
        self.write("batch.yaml", yaml.dump([
            {"code": "import sys"},
            {"code": "x = 1", "target": "../evil.py", "intent": "create"},
        ]))
        result = self.runner.invoke(
            cli, ["apply", "--batch", "batch.yaml", "--active", "app.py"], input="y\n"
        )
        self.assertEqual(result.exit_code, 1, result.output)
        self.assertIn("Refusing to create ../evil.py", result.output)
        self.assertIn("Changes applied successfully", result.output)
        self.assertTrue(Path("app.py").read_text(encoding="utf-8").startswith("import os\nimport sys"))
        self.assertFalse(Path("..", "evil.py").exists())

    def test_apply_without_input_aborts(self):
        result = self.runner.invoke(cli, ["apply"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("No code blocks given", result.output)

    def test_apply_failure_exits_nonzero(self):
        self.write("patch.txt", "x = 1")
        result = self.runner.invoke(
            cli, ["apply", "patch.txt", "--active", "missing.py", "--preview-mode", "never"]
        )
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Failed to apply code", result.output)


if __name__ == '__main__':
    unittest.main()
