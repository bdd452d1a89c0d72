"""EditLinesTool 单元测试

运行方式：
    python -m pytest tests/test_edit_lines_tool.py -v
"""

import unittest

from edit_tools.builtin.edit_lines import EditLinesTool
from tests.utils.protocol_validator import ProtocolValidator
from tests.utils.test_helpers import create_temp_project, parse_response

TEN_LINES = "".join(f"line{i}\n" for i in range(1, 11))


class TestEditLinesTool(unittest.TestCase):
    """EditLinesTool 单元测试套件"""

    def _validate_and_assert(self, response_str: str, expected_status: str = None) -> dict:
        result = ProtocolValidator.validate(response_str, tool_type="edit_lines")
        if not result.passed:
            self.fail("协议验证失败:\n" + str(result))
        parsed = parse_response(response_str)
        if expected_status:
            self.assertEqual(parsed["status"], expected_status)
        return parsed

    def test_success_replace(self):
        with create_temp_project({"f.txt": TEN_LINES}) as project:
            tool = EditLinesTool(project_root=project.root)
            response = tool.run({"path": "f.txt", "start_line": 3, "end_line": 3, "new_lines": "new3a\nnew3b"})
            parsed = self._validate_and_assert(response, "success")

            self.assertEqual(parsed["data"]["mode"], "replace")
            self.assertEqual(parsed["data"]["lines_affected"], 1)
            self.assertEqual(parsed["data"]["line_count_after"], 11)
            self.assertIn("File now has 11 lines", parsed["text"])
            self.assertEqual(project.read_text("f.txt").splitlines()[2:4], ["new3a", "new3b"])

    def test_success_insert(self):
        with create_temp_project({"f.txt": "a\nb\n"}) as project:
            tool = EditLinesTool(project_root=project.root)
            response = tool.run({"path": "f.txt", "start_line": 2, "new_lines": "x", "mode": "insert"})
            parsed = self._validate_and_assert(response, "success")
            self.assertIsNone(parsed["data"]["end_line"])
            self.assertIn("before line 2", parsed["text"])
            self.assertEqual(project.read_text("f.txt"), "a\nx\nb\n")

    def test_success_delete(self):
        with create_temp_project({"f.txt": TEN_LINES}) as project:
            tool = EditLinesTool(project_root=project.root)
            response = tool.run({"path": "f.txt", "start_line": 1, "end_line": 9, "mode": "delete"})
            self._validate_and_assert(response, "success")
            self.assertEqual(project.read_text("f.txt"), "line10\n")

    def test_partial_preview_shows_excerpt(self):
        with create_temp_project({"f.txt": TEN_LINES}) as project:
            tool = EditLinesTool(project_root=project.root)
            response = tool.run({"path": "f.txt", "start_line": 5, "new_lines": "FIVE", "preview": True})
            parsed = self._validate_and_assert(response, "partial")
            self.assertFalse(parsed["data"]["applied"])
            self.assertIn("BEFORE:", parsed["text"])
            self.assertIn("+   5: FIVE", parsed["data"]["excerpt"])
            self.assertEqual(project.read_text("f.txt"), TEN_LINES)

    def test_error_range(self):
        with create_temp_project({"f.txt": TEN_LINES}) as project:
            tool = EditLinesTool(project_root=project.root)
            parsed = self._validate_and_assert(
                tool.run({"path": "f.txt", "start_line": 9, "end_line": 12, "new_lines": "x"}), "error"
            )
            self.assertEqual(parsed["error"]["code"], "RANGE_ERROR")
            self.assertEqual(parsed["error"]["details"]["line_count"], 10)
            self.assertEqual(project.read_text("f.txt"), TEN_LINES)

    def test_error_non_integer_line(self):
        with create_temp_project({"f.txt": TEN_LINES}) as project:
            tool = EditLinesTool(project_root=project.root)
            parsed = self._validate_and_assert(tool.run({"path": "f.txt", "start_line": "3"}), "error")
            self.assertEqual(parsed["error"]["code"], "INVALID_PARAM")

    def test_error_unknown_mode(self):
        with create_temp_project({"f.txt": TEN_LINES}) as project:
            tool = EditLinesTool(project_root=project.root)
            parsed = self._validate_and_assert(
                tool.run({"path": "f.txt", "start_line": 1, "mode": "upsert"}), "error"
            )
            self.assertEqual(parsed["error"]["code"], "INVALID_PARAM")

    def test_error_conflict(self):
        with create_temp_project({"f.txt": TEN_LINES}) as project:
            tool = EditLinesTool(project_root=project.root)
            lock = project.stat_for_lock("f.txt")
            lock["expected_size_bytes"] += 1
            parsed = self._validate_and_assert(
                tool.run({"path": "f.txt", "start_line": 1, "new_lines": "x", **lock}), "error"
            )
            self.assertEqual(parsed["error"]["code"], "CONFLICT")
            self.assertEqual(project.read_text("f.txt"), TEN_LINES)


if __name__ == "__main__":
    unittest.main()
