"""SearchReplaceTool 单元测试

遵循《通用工具响应协议》，测试 SearchReplace 工具的各项功能。

运行方式：
    python -m pytest tests/test_search_replace_tool.py -v
"""

import unittest
from unittest import mock

from edit_engine import operations
from edit_engine.config import EditEngineConfig
from edit_tools.builtin.search_replace import SearchReplaceTool
from tests.utils.protocol_validator import ProtocolValidator
from tests.utils.test_helpers import create_temp_project, parse_response


def sr_block(search, replace):
    return f"------- SEARCH\n{search}\n=======\n{replace}\n+++++++ REPLACE\n"


class TestSearchReplaceTool(unittest.TestCase):
    """SearchReplaceTool 单元测试套件

    覆盖场景：
    1. Success：单块 / 多块替换
    2. Partial：preview、空白容错匹配、diff 截断
    3. Error：NO_MATCH、PARSE_ERROR、NOT_FOUND、CONFLICT、ACCESS_DENIED
    """

    def _validate_and_assert(self, response_str: str, expected_status: str = None) -> dict:
        result = ProtocolValidator.validate(response_str, tool_type="search_replace")
        if not result.passed:
            self.fail("协议验证失败:\n" + str(result))
        parsed = parse_response(response_str)
        if expected_status:
            self.assertEqual(parsed["status"], expected_status,
                             f"期望 status='{expected_status}'，实际 '{parsed['status']}'")
        return parsed

    # ========================================================================
    # Success 场景
    # ========================================================================

    def test_success_single_block(self):
        """Success: 单块替换"""
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            response = tool.run({
                "path": "src/main.py",
                "diff": sr_block('        return f"Hello, {self.name}!"', '        return f"Hi, {self.name}!"'),
            })
            parsed = self._validate_and_assert(response, "success")

            self.assertTrue(parsed["data"]["applied"])
            self.assertEqual(parsed["data"]["blocks_applied"], 1)
            self.assertEqual(parsed["data"]["matches"][0]["tier"], "exact")
            self.assertIn('+        return f"Hi, {self.name}!"', parsed["data"]["diff_preview"])
            self.assertEqual(parsed["context"]["path_resolved"], "src/main.py")
            self.assertIn('return f"Hi, {self.name}!"', project.read_text("src/main.py"))

    def test_success_multiple_blocks_in_order(self):
        """Success: 多块按文件顺序应用"""
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            diff = sr_block("def helper(", "def add_prefix(") + sr_block("def validate(", "def is_valid(")
            parsed = self._validate_and_assert(tool.run({"path": "src/utils.py", "diff": diff}), "success")

            self.assertEqual(parsed["data"]["blocks_applied"], 2)
            content = project.read_text("src/utils.py")
            self.assertIn("def add_prefix(", content)
            self.assertIn("def is_valid(", content)
            self.assertEqual(parsed["stats"]["lines_added"], 2)

    # ========================================================================
    # Partial 场景
    # ========================================================================

    def test_partial_preview(self):
        """Partial: preview 不写入"""
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            before = project.read_bytes("src/utils.py")
            response = tool.run({
                "path": "src/utils.py",
                "diff": sr_block("def helper(", "def add_prefix("),
                "preview": True,
            })
            parsed = self._validate_and_assert(response, "partial")
            self.assertFalse(parsed["data"]["applied"])
            self.assertTrue(parsed["data"]["preview"])
            self.assertIn("[Preview]", parsed["text"])
            self.assertEqual(project.read_bytes("src/utils.py"), before)

    def test_partial_whitespace_fallback(self):
        """Partial: 缩进不一致时的容错匹配"""
        with create_temp_project({"f.py": "def f():\n\treturn 1\n"}) as project:
            tool = SearchReplaceTool(project_root=project.root)
            response = tool.run({"path": "f.py", "diff": sr_block("def f():\n    return 1", "def f():\n    return 2")})
            parsed = self._validate_and_assert(response, "partial")
            self.assertTrue(parsed["data"]["applied"])
            self.assertTrue(parsed["data"]["fallback_used"])
            self.assertEqual(parsed["data"]["matches"][0]["tier"], "line_trimmed")
            self.assertIn("ignoring surrounding whitespace", parsed["text"])
            self.assertEqual(project.read_text("f.py"), "def f():\n    return 2\n")

    def test_partial_diff_truncated(self):
        """Partial: diff 超过行数上限"""
        original = "".join(f"old{i}\n" for i in range(50))
        replacement = "".join(f"new{i}\n" for i in range(50))
        with create_temp_project({"big.txt": original}) as project:
            tool = SearchReplaceTool(project_root=project.root, config=EditEngineConfig(max_diff_lines=10))
            response = tool.run({"path": "big.txt", "diff": sr_block(original.rstrip("\n"), replacement.rstrip("\n"))})
            parsed = self._validate_and_assert(response, "partial")
            self.assertTrue(parsed["data"]["diff_truncated"])
            self.assertTrue(parsed["data"]["applied"])
            self.assertEqual(project.read_text("big.txt"), replacement)

    # ========================================================================
    # Error 场景
    # ========================================================================

    def test_error_no_match(self):
        """Error: SEARCH 文本不存在，文件不变"""
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            before = project.read_bytes("src/utils.py")
            diff = sr_block("def helper(", "def add_prefix(") + sr_block("def missing(", "x")
            parsed = self._validate_and_assert(tool.run({"path": "src/utils.py", "diff": diff}), "error")
            self.assertEqual(parsed["error"]["code"], "NO_MATCH")
            self.assertEqual(parsed["error"]["details"]["block_index"], 1)
            self.assertEqual(project.read_bytes("src/utils.py"), before)

    def test_error_parse(self):
        """Error: 块格式错误"""
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            parsed = self._validate_and_assert(
                tool.run({"path": "src/utils.py", "diff": "------- SEARCH\nfoo\n"}), "error"
            )
            self.assertEqual(parsed["error"]["code"], "PARSE_ERROR")

    def test_error_not_found(self):
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            parsed = self._validate_and_assert(tool.run({"path": "nope.py", "diff": sr_block("a", "b")}), "error")
            self.assertEqual(parsed["error"]["code"], "NOT_FOUND")

    def test_error_missing_diff(self):
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            parsed = self._validate_and_assert(tool.run({"path": "src/utils.py", "diff": ""}), "error")
            self.assertEqual(parsed["error"]["code"], "INVALID_PARAM")

    def test_error_path_traversal(self):
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            parsed = self._validate_and_assert(tool.run({"path": "../outside.py", "diff": sr_block("a", "b")}), "error")
            self.assertEqual(parsed["error"]["code"], "ACCESS_DENIED")

    # ========================================================================
    # 乐观锁
    # ========================================================================

    def test_conflict_before_read(self):
        """Error: 文件在 Read 之后被修改"""
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            lock = project.stat_for_lock("src/utils.py")
            project.create_file("src/utils.py", project.read_text("src/utils.py") + "# changed\n")

            response = tool.run({"path": "src/utils.py", "diff": sr_block("def helper(", "def h("), **lock})
            parsed = self._validate_and_assert(response, "error")
            self.assertEqual(parsed["error"]["code"], "CONFLICT")
            self.assertIn("before read", parsed["error"]["message"])
            self.assertNotIn("def h(", project.read_text("src/utils.py"))

    def test_conflict_detected_again_before_write(self):
        """Error: 读取之后、写入之前文件被修改"""
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            lock = project.stat_for_lock("src/utils.py")
            real_read = operations.read_source

            def read_then_modify(path, *args):
                source = real_read(path, *args)
                with open(path, "a", encoding="utf-8") as f:
                    f.write("# concurrent edit\n")
                return source

            with mock.patch.object(operations, "read_source", side_effect=read_then_modify):
                response = tool.run({"path": "src/utils.py", "diff": sr_block("def helper(", "def h("), **lock})

            parsed = self._validate_and_assert(response, "error")
            self.assertEqual(parsed["error"]["code"], "CONFLICT")
            self.assertIn("before write", parsed["error"]["message"])
            content = project.read_text("src/utils.py")
            self.assertNotIn("def h(", content)
            self.assertTrue(content.endswith("# concurrent edit\n"))

    def test_lock_matching_file_succeeds(self):
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            lock = project.stat_for_lock("src/utils.py")
            response = tool.run({"path": "src/utils.py", "diff": sr_block("def helper(", "def h("), **lock})
            self._validate_and_assert(response, "success")

    def test_lock_requires_both_fields(self):
        with create_temp_project() as project:
            tool = SearchReplaceTool(project_root=project.root)
            response = tool.run({"path": "src/utils.py", "diff": sr_block("a", "b"), "expected_mtime_ms": 1})
            parsed = self._validate_and_assert(response, "error")
            self.assertEqual(parsed["error"]["code"], "INVALID_PARAM")


if __name__ == "__main__":
    unittest.main()
