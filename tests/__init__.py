"""编辑引擎与编辑工具测试

运行方式：
    # 运行所有测试
    python -m pytest tests/ -v

    # 仅运行协议合规性测试
    python -m pytest tests/test_protocol_compliance.py -v
"""
