"""源文件读取与原子写入单元测试

包含写入中途失败的故障注入：目标文件必须保持原字节，且不残留临时文件。
"""

import os
import stat
import unittest
from unittest import mock

from edit_engine.atomic_writer import atomic_write, read_source
from edit_engine.errors import EditIOError, EditValidationError
from tests.utils.test_helpers import create_temp_project


class TestReadSource(unittest.TestCase):

    def test_reads_text_and_size(self):
        with create_temp_project({}) as project:
            project.create_file("a.txt", "héllo\r\n")
            source = read_source(project.path("a.txt"))
            self.assertEqual(source.text, "héllo\r\n")
            self.assertEqual(source.size, len("héllo\r\n".encode("utf-8")))

    def test_undecodable_bytes_round_trip(self):
        with create_temp_project({}) as project:
            raw = b"ok \xff\xfe bytes\n"
            project.create_file("latin.txt", raw)
            source = read_source(project.path("latin.txt"))
            atomic_write(project.path("latin.txt"), source.text)
            self.assertEqual(project.read_bytes("latin.txt"), raw)

    def test_missing_file(self):
        with create_temp_project({}) as project:
            with self.assertRaises(EditValidationError) as ctx:
                read_source(project.path("nope.txt"))
            self.assertEqual(ctx.exception.code, "NOT_FOUND")

    def test_directory(self):
        with create_temp_project({"sub/": None}) as project:
            with self.assertRaises(EditValidationError) as ctx:
                read_source(project.path("sub"))
            self.assertEqual(ctx.exception.code, "IS_DIRECTORY")

    def test_binary_file(self):
        with create_temp_project({}) as project:
            project.create_file("bin.dat", b"\x00\x01\x02")
            with self.assertRaises(EditValidationError) as ctx:
                read_source(project.path("bin.dat"))
            self.assertEqual(ctx.exception.code, "BINARY_FILE")


class TestAtomicWrite(unittest.TestCase):

    def test_replaces_content(self):
        with create_temp_project({}) as project:
            project.create_file("f.txt", "old\n")
            written = atomic_write(project.path("f.txt"), "new content\n")
            self.assertEqual(written, len(b"new content\n"))
            self.assertEqual(project.read_text("f.txt"), "new content\n")
            self.assertEqual(project.leftover_temp_files(), [])

    def test_preserves_file_mode(self):
        with create_temp_project({}) as project:
            path = project.create_file("run.sh", "#!/bin/sh\n")
            os.chmod(path, 0o755)
            atomic_write(path, "#!/bin/sh\necho hi\n")
            self.assertEqual(stat.S_IMODE(path.stat().st_mode), 0o755)

    def test_create_dirs(self):
        with create_temp_project({}) as project:
            atomic_write(project.path("a", "b", "c.txt"), "x", create_dirs=True)
            self.assertEqual(project.read_text("a/b/c.txt"), "x")

    def test_missing_parent_without_create_dirs(self):
        with create_temp_project({}) as project:
            with self.assertRaises(EditIOError):
                atomic_write(project.path("missing", "c.txt"), "x")

    def test_failure_during_temp_write_leaves_target_intact(self):
        with create_temp_project({}) as project:
            original = b"original bytes\n" * 100
            project.create_file("f.txt", original)

            with mock.patch("edit_engine.atomic_writer.os.fsync", side_effect=OSError("disk full")):
                with self.assertRaises(EditIOError) as ctx:
                    atomic_write(project.path("f.txt"), "replacement\n")

            self.assertEqual(ctx.exception.code, "IO_ERROR")
            self.assertEqual(project.read_bytes("f.txt"), original)
            self.assertEqual(project.leftover_temp_files(), [])

    def test_failure_during_swap_leaves_target_intact(self):
        with create_temp_project({}) as project:
            project.create_file("f.txt", "keep\n")

            with mock.patch("edit_engine.atomic_writer.os.replace", side_effect=PermissionError("denied")):
                with self.assertRaises(EditIOError):
                    atomic_write(project.path("f.txt"), "replacement\n")

            self.assertEqual(project.read_text("f.txt"), "keep\n")
            self.assertEqual(project.leftover_temp_files(), [])

    def test_fdopen_failure_closes_descriptor(self):
        with create_temp_project({"f.txt": "keep\n"}) as project:
            with mock.patch("edit_engine.atomic_writer.os.fdopen", side_effect=OSError("boom")), \
                    mock.patch("edit_engine.atomic_writer.os.close", wraps=os.close) as close:
                with self.assertRaises(EditIOError):
                    atomic_write(project.path("f.txt"), "replacement\n")

            self.assertTrue(close.called)
            self.assertEqual(project.read_text("f.txt"), "keep\n")
            self.assertEqual(project.leftover_temp_files(), [])

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_writes_through_symlink(self):
        """符号链接保持不变，内容写入其指向的文件"""
        with create_temp_project({"real.txt": "old\n"}) as project:
            link = project.path("link.txt")
            os.symlink(project.path("real.txt"), link)

            atomic_write(link, "new\n")

            self.assertTrue(link.is_symlink())
            self.assertEqual(project.read_text("real.txt"), "new\n")
            self.assertEqual(project.leftover_temp_files(), [])


if __name__ == "__main__":
    unittest.main()
