"""Test configuration ensuring the flat modules are importable and sharing JS engine fixtures."""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

import debug  # noqa: E402
from config import Config  # noqa: E402
from node_tools import parse  # noqa: E402
from output import generate  # noqa: E402


@pytest.fixture(scope="session")
def sandbox():
    from jseval import Sandbox

    return Sandbox()


@pytest.fixture(autouse=True)
def quiet_diagnostics():
    debug.set_verbose(False)
    debug.set_debug(False)
    yield
    debug.set_verbose(False)
    debug.set_debug(False)


@pytest.fixture
def plain_config():
    """Every pass enabled, output not beautified so that it can be compared exactly."""
    c = Config()
    c.miscellaneous.beautify = False
    return c


def normalize(code: str, is_module: bool = False) -> str:
    """Parse and print code so that expected outputs can be written in any layout."""
    return generate(parse(code, is_module))


def apply_pass(transform_class, code: str, *args, is_module: bool = False, **kwargs) -> str:
    ast = parse(code, is_module)
    transform_class(ast, *args, **kwargs).run()
    return generate(ast)
