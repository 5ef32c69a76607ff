import pytest

import config
from code_transformers import Cleanup
from node_tools import parse
from output import generate
from proxy_remover import ProxyRemover, is_proxy_function

from conftest import normalize


def inline(code, remove_proxy_functions=True, is_module=False):
    ast = parse(code, is_module)
    ProxyRemover(ast, remove_proxy_functions).run()
    Cleanup(ast).run()
    return generate(ast)


def test_simple_proxy_is_inlined_and_removed():
    assert inline("function _0xabc(a, b) { return a + b; } console.log(_0xabc(1, 2));") == "console.log(1 + 2);"


def test_proxy_is_kept_when_asked():
    code = "function _0xabc(a, b) { return a + b; } console.log(_0xabc(1, 2));"
    assert inline(code, remove_proxy_functions=False) == (
        "function _0xabc(a, b) {\n  return a + b;\n}\nconsole.log(1 + 2);"
    )


def test_cyclic_proxies_are_untouched():
    code = "function a(x) { return b(x); } function b(x) { return a(x); }"
    assert inline(code) == normalize(code)


def test_self_recursive_proxy_is_untouched():
    code = "function f(x) { return f(x); } g(f(1));"
    assert inline(code) == normalize(code)


def test_calls_into_a_cycle_are_not_inlined():
    code = "function a(x) { return b(x); } function b(x) { return a(x); } function c(x) { return a(x); } c(1);"
    assert inline(code) == normalize(code)


def test_nested_proxies_are_inlined():
    code = "function _0x1(a) { return _0x2(a) + 1; } function _0x2(b) { return b * 2; } f(_0x1(3));"
    assert inline(code) == "f(3 * 2 + 1);"


def test_arguments_keep_their_position():
    code = "function _0x1(a, b) { return b - a; } f(_0x1(x, y));"
    assert inline(code) == "f(y - x);"


def test_argument_expressions_are_parenthesized_as_needed():
    code = "function _0x1(a, b) { return a * b; } f(_0x1(x + 1, y));"
    assert inline(code) == "f((x + 1) * y);"


def test_missing_arguments_are_undefined():
    code = "var b = 5; function _0x1(a, b) { return a + b; } f(_0x1(1));"
    assert inline(code) == "var b = 5;\nf(1 + undefined);"


def test_repeated_parameter_is_duplicated():
    ast = parse("function _0x1(a) { return a + a; } f(_0x1(x));")
    ProxyRemover(ast).run()
    Cleanup(ast).run()
    assert len(ast.body) == 1
    call = ast.body[0].expression
    sum_expr = call.arguments[0]
    assert generate(sum_expr) == "x + x"
    assert sum_expr.left is not sum_expr.right


def test_side_effects_are_not_duplicated_nor_dropped():
    for code in (
        "function _0x1(a) { return a + a; } f(_0x1(g()));",
        "function _0x1(a, b) { return a; } f(_0x1(1, g()));",
        "function _0x1(a) { return a; } f(_0x1(1, g()));",
    ):
        assert inline(code) == normalize(code)


def test_call_proxies_and_member_proxies():
    code = (
        "function _0x1(f, a) { return f(a); }"
        "var _0x2 = function (o, k) { return o[k]; };"
        "_0x1(console.log, _0x2(obj, \"key\"));"
    )
    assert inline(code) == 'console.log(obj["key"]);'


def test_arrow_proxy():
    assert inline("const _0x1 = (a, b) => a === b; f(_0x1(1, 2));") == "f(1 === 2);"


def test_aliases_are_followed_and_removed():
    code = "function _0x1(a, b) { return a - b; } var _0x2 = _0x1; f(_0x2(5, 3));"
    assert inline(code) == "f(5 - 3);"


def test_escaping_proxy_is_inlined_but_kept():
    code = "function _0x1(a) { return a; } h(_0x1); f(_0x1(2));"
    assert inline(code) == "function _0x1(a) {\n  return a;\n}\nh(_0x1);\nf(2);"


def test_reassigned_proxy_is_not_inlined():
    code = "function _0x1(a) { return a; } _0x1 = g; f(_0x1(2));"
    assert inline(code) == normalize(code)


def test_spread_arguments_are_not_inlined():
    code = "function _0x1(a) { return a; } f(_0x1(...args));"
    assert inline(code) == normalize(code)


def test_shadowing_at_the_call_site_prevents_inlining():
    # g is an unused proxy and goes away, but _0x1 is never inlined into it
    code = "var k = 1; function _0x1(a) { return a + k; } function g(k) { return _0x1(2); }"
    assert inline(code) == "var k = 1;\nfunction _0x1(a) {\n  return a + k;\n}"


def test_shadowed_proxy_name_is_not_inlined():
    # inside g, _0x1 is the parameter, so inlining g passes the argument through
    code = "function _0x1(a) { return a; } function g(_0x1) { return _0x1(2); } g(_0x1(3));"
    assert inline(code) == "3(2);"


def test_exported_proxy_is_kept():
    code = "export function _0x1(a) { return a; } f(_0x1(2));"
    assert inline(code, is_module=True) == "export function _0x1(a) {\n  return a;\n}\nf(2);"


def test_inline_depth_is_bounded(monkeypatch):
    monkeypatch.setattr(config, "max_inline_depth", 1)
    code = (
        "function _0x1(a) { return _0x2(a); }"
        "function _0x2(a) { return _0x3(a); }"
        "function _0x3(a) { return _0x4(a); }"
        "function _0x4(a) { return a; }"
        "f(_0x1(1));"
    )
    out = inline(code)
    assert "function _0x4" in out
    assert out == generate(parse(out))


@pytest.mark.parametrize(
    "code, expected",
    [
        ("function f(a) { return a + 1; }", True),
        ("function f(a) { return a.b; }", False),
        ("function f(a) { return a[0]; }", True),
        ("function f(a) { a++; return a; }", False),
        ("function f(a) { return function () {}; }", False),
        ("function f() { return this.x; }", False),
        ("function f() { return arguments[0]; }", False),
        ("function f({a}) { return a; }", False),
        ("function* f(a) { return a; }", False),
        ("function f(a) { return a ? 1 : 2; }", False),
    ],
)
def test_proxy_shape(code, expected):
    assert is_proxy_function(parse(code).body[0]) == expected
