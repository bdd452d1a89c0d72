"""协议合规性测试

验证四个编辑工具的响应是否严格遵循《通用工具响应协议》。

运行方式：
    python -m pytest tests/test_protocol_compliance.py -v
    python -m unittest tests.test_protocol_compliance -v
"""

import json
import unittest

from edit_tools.registry import build_edit_tools
from edit_engine.config import EditEngineConfig
from tests.utils.protocol_validator import ProtocolValidator
from tests.utils.test_helpers import create_temp_project, parse_response

TOOL_TYPES = {
    "SearchReplace": "search_replace",
    "ApplyPatch": "apply_patch",
    "EditLines": "edit_lines",
    "Write": "write",
}


def _sample_calls():
    """每个工具一组 success / partial / error 调用"""
    return {
        "SearchReplace": [
            {"path": "src/utils.py", "diff": "------- SEARCH\ndef helper(\n=======\ndef add_prefix(\n+++++++ REPLACE\n"},
            {"path": "src/utils.py", "diff": "------- SEARCH\ndef validate(\n=======\ndef v(\n+++++++ REPLACE\n",
             "preview": True},
            {"path": "src/utils.py", "diff": "------- SEARCH\nnot present\n=======\nx\n+++++++ REPLACE\n"},
        ],
        "ApplyPatch": [
            {"path": "README.md", "patch": "@@ -1 +1 @@\n-# 测试项目\n+# Test Project\n"},
            {"path": "README.md", "patch": "@@ -1 +1 @@\n-# Test Project\n+# T\n", "dry_run": True},
            {"path": "README.md", "patch": "@@ -1 +1 @@\n-missing\n+x\n"},
        ],
        "EditLines": [
            {"path": "src/main.py", "start_line": 1, "new_lines": "#!/usr/bin/env python"},
            {"path": "src/main.py", "start_line": 2, "mode": "delete", "preview": True},
            {"path": "src/main.py", "start_line": 500, "new_lines": "x"},
        ],
        "Write": [
            {"path": "notes/todo.txt", "content": "buy milk\n"},
            {"path": "notes/todo.txt", "content": "nothing\n", "dry_run": True},
            {"path": "../escape.txt", "content": "x"},
        ],
    }


class TestProtocolCompliance(unittest.TestCase):
    """协议合规性测试套件"""

    def _validate_and_assert(self, tool_name: str, response_str: str, tool_type: str = None):
        """验证响应并断言通过"""
        result = ProtocolValidator.validate(response_str, tool_type=tool_type)

        if not result.passed:
            error_msg = f"\n{'=' * 60}\n"
            error_msg += f"{tool_name} 协议验证失败\n"
            error_msg += f"{'=' * 60}\n"
            error_msg += str(result)
            error_msg += f"\n\n响应内容:\n{response_str[:1000]}\n"
            self.fail(error_msg)

        return parse_response(response_str)

    def test_all_tools_all_statuses(self):
        """综合: 每个工具的 success / partial / error 响应均合规"""
        with create_temp_project() as project:
            tools = build_edit_tools(project.root, config=EditEngineConfig())
            calls = _sample_calls()

            for tool in tools:
                statuses = []
                for params in calls[tool.name]:
                    parsed = self._validate_and_assert(tool.name, tool.run(params), TOOL_TYPES[tool.name])
                    statuses.append(parsed["status"])
                self.assertEqual(statuses, ["success", "partial", "error"], f"{tool.name}: {statuses}")

    def test_params_input_echoed(self):
        with create_temp_project() as project:
            for tool in build_edit_tools(project.root, config=EditEngineConfig()):
                params = {"path": "missing.txt"}
                parsed = parse_response(tool.run(params))
                self.assertEqual(parsed["context"]["params_input"], params)
                self.assertEqual(parsed["context"]["cwd"], ".")
                self.assertIsInstance(parsed["stats"]["time_ms"], int)

    def test_working_dir_reported_as_cwd(self):
        with create_temp_project() as project:
            tools = build_edit_tools(project.root, working_dir=project.path("src"), config=EditEngineConfig())
            parsed = parse_response(tools[0].run({"path": "src/missing.py", "diff": "x"}))
            self.assertEqual(parsed["context"]["cwd"], "src")

    def test_unexpected_exception_becomes_internal_error(self):
        with create_temp_project() as project:
            tool = build_edit_tools(project.root, config=EditEngineConfig())[0]

            def boom(*args, **kwargs):
                raise RuntimeError("boom")

            tool.execute = boom
            parsed = self._validate_and_assert(tool.name, tool.run({"path": "src/main.py"}))
            self.assertEqual(parsed["status"], "error")
            self.assertEqual(parsed["error"]["code"], "INTERNAL_ERROR")


class TestValidatorItself(unittest.TestCase):
    """验证器自身测试"""

    BASE = {
        "text": "Edited 'a.txt' (1/1 blocks).",
        "stats": {"time_ms": 3},
        "context": {"cwd": ".", "params_input": {}},
    }

    def _response(self, **fields):
        payload = dict(self.BASE)
        payload.update(fields)
        return json.dumps(payload)

    def test_valid_success_response(self):
        result = ProtocolValidator.validate(self._response(status="success", data={"applied": True}))
        self.assertTrue(result.passed, f"应该通过: {result}")

    def test_invalid_extra_top_level_field(self):
        result = ProtocolValidator.validate(self._response(status="success", data={}, custom_field=1))
        self.assertFalse(result.passed)
        self.assertTrue(any("V012" in e for e in result.errors))

    def test_invalid_error_code(self):
        result = ProtocolValidator.validate(self._response(
            status="error", data={}, error={"code": "EXECUTION_ERROR", "message": "x"},
        ))
        self.assertTrue(any("S003" in e for e in result.errors))

    def test_invalid_truncated_but_not_partial(self):
        result = ProtocolValidator.validate(self._response(status="success", data={"diff_truncated": True}))
        self.assertTrue(any("S005" in e for e in result.errors))

    def test_invalid_fallback_but_not_partial(self):
        result = ProtocolValidator.validate(self._response(status="success", data={"fallback_used": True}))
        self.assertTrue(any("S007" in e for e in result.errors))

    def test_invalid_preview_marked_applied(self):
        result = ProtocolValidator.validate(self._response(status="partial", data={"preview": True, "applied": True}))
        self.assertTrue(any("S008" in e for e in result.errors))

    def test_missing_tool_fields(self):
        result = ProtocolValidator.validate(self._response(status="success", data={"applied": True}), "apply_patch")
        self.assertTrue(any("D002" in e for e in result.errors))


if __name__ == "__main__":
    unittest.main(verbosity=2)
