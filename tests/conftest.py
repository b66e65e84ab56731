"""
Shared pytest fixtures for cellexpr tests.
"""

import pytest

from cellexpr import FunctionCall, walk
from cellexpr.config import CONFIG_KEY_TO_ENV


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """
    Isolate every test from the developer's environment.

    Removes CELLEXPR_* settings and points config discovery at an empty
    temporary directory, so the packaged grammar and defaults are used.
    """
    for env_var in CONFIG_KEY_TO_ENV.values():
        monkeypatch.delenv(env_var, raising=False)
    for env_var in ("CELLEXPR_LOG_DIR", "CELLEXPR_DEBUG_LOG", "CELLEXPR_LOG_LEVEL"):
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("CELLEXPR_CONFIG_DIR", str(tmp_path / "no-config"))
    yield


@pytest.fixture
def node_kinds():
    """
    Return a function listing a formula's node kinds in walker order.

    Calls are listed by their function name (operators included), every
    other node by its type tag.
    """
    def _kinds(expression, named_args=False):
        kinds = []

        def visit(node):
            if isinstance(node, FunctionCall):
                kinds.append(node.name)
            else:
                kinds.append(node.type.value)

        walk(expression, visit, named_args=named_args)
        return kinds

    return _kinds
