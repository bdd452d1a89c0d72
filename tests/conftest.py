"""Pytest 配置和共享 fixtures"""

import pytest

from edit_engine.config import EditEngineConfig
from tests.utils.test_helpers import create_temp_project


@pytest.fixture
def temp_project():
    """
    提供临时测试项目 fixture

    Usage:
        def test_something(temp_project):
            tool = SearchReplaceTool(project_root=temp_project.root)
            ...
    """
    with create_temp_project() as project:
        yield project


@pytest.fixture
def edit_config():
    """默认阈值的引擎配置（不读取环境变量）"""
    return EditEngineConfig()


@pytest.fixture
def search_replace_tool(temp_project, edit_config):
    from edit_tools.builtin.search_replace import SearchReplaceTool
    return SearchReplaceTool(project_root=temp_project.root, config=edit_config)


@pytest.fixture
def apply_patch_tool(temp_project, edit_config):
    from edit_tools.builtin.apply_patch import ApplyPatchTool
    return ApplyPatchTool(project_root=temp_project.root, config=edit_config)


@pytest.fixture
def edit_lines_tool(temp_project, edit_config):
    from edit_tools.builtin.edit_lines import EditLinesTool
    return EditLinesTool(project_root=temp_project.root, config=edit_config)


@pytest.fixture
def write_tool(temp_project, edit_config):
    from edit_tools.builtin.write_file import WriteTool
    return WriteTool(project_root=temp_project.root, config=edit_config)
