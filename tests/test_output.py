import esprima
import pytest

from node_tools import parse, make_literal
from output import generate, js_string, js_number


def roundtrip(code, is_module=False):
    return generate(parse(code, is_module))


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0"),
        (1.0, "1"),
        (0.1, "0.1"),
        (123456789.5, "123456789.5"),
        (1e21, "1e+21"),
        (1.5e-7, "1.5e-7"),
        (0.000001, "0.000001"),
        (2 ** 53, "9007199254740992"),
        (float("inf"), "Infinity"),
        (float("nan"), "NaN"),
    ],
)
def test_js_number(value, expected):
    assert js_number(value) == expected


def test_js_string_escapes():
    assert js_string('say "hi"\n') == '"say \\"hi\\"\\n"'
    assert js_string("\x01") == '"\\x01"'
    assert js_string("\u2028") == '"\\u2028"'
    assert js_string("caf\u00e9") == '"caf\u00e9"'


def test_hex_escaped_strings_print_decoded():
    assert roundtrip('var s = "\\x6c\\x6f\\x67";') == 'var s = "log";'


@pytest.mark.parametrize(
    "code",
    [
        "a = b + c * d;",
        "a = (b + c) * d;",
        "a = b - (c - d);",
        "a = (b, c);",
        "x = a ? b : c ? d : e;",
        "x = (a ? b : c) ? d : e;",
        "x = a ** b ** c;",
        "x = - -a;",
        "x = -(-a);",
        "x = !(a && b);",
        "new (f())();",
        "new a.b.C();",
        "(function () {})();",
        "({a: 1}).a;",
        "x = async (a) => ({a});",
        "x = typeof a === \"undefined\";",
        "x = (1).toString();",
        "a = b || c && d;",
        "a = (b || c) && d;",
    ],
)
def test_expressions_reparse_to_the_same_tree(code):
    printed = roundtrip(code)
    assert roundtrip(printed) == printed
    assert generate(parse(printed)) == generate(parse(code))


def test_statements_layout():
    code = "function f(a, b = 1, ...c) { if (a) { return b; } else return c; }"
    assert roundtrip(code) == (
        "function f(a, b = 1, ...c) {\n"
        "  if (a) {\n"
        "    return b;\n"
        "  } else\n"
        "    return c;\n"
        "}"
    )


def test_dangling_else_is_kept_with_its_if():
    tree = parse("if (a) { if (b) x(); } else y();")
    # strip the braces the way a transformation would
    outer = tree.body[0]
    outer.consequent = outer.consequent.body[0]
    printed = generate(tree)
    reparsed = parse(printed).body[0]
    assert reparsed.alternate is not None
    assert reparsed.consequent.type == "BlockStatement"


@pytest.mark.parametrize(
    "code",
    [
        "for (var i = 0, j = 1; i < j; i++) {}",
        "for (const k in o) f(k);",
        "for (let v of list) {}",
        "do x++; while (x < 3);",
        "while (true) break;",
        "lbl: for (;;) { continue lbl; }",
        "switch (x) { case 1: a(); break; default: b(); }",
        "try { a(); } catch (e) { b(); } finally { c(); }",
        "class A extends B { constructor() { super(); } static m() {} get p() { return 1; } }",
        "var {a, b: c = 1} = o;",
        "var [x, , y = 2] = arr;",
        "x = `a${b}c`;",
        "x = tag`t`;",
        "x = /ab+c/gi.test(s);",
        "function* g() { yield* h(); }",
        "async function f() { await g(); }",
        "x = {get a() { return 1; }, set a(v) {}, m() {}, [k]: 2};",
        "throw new Error(\"x\");",
        "debugger;",
        "with (o) f();",
    ],
)
def test_statements_reparse_to_the_same_output(code):
    printed = roundtrip(code)
    assert roundtrip(printed) == printed


@pytest.mark.parametrize(
    "code",
    [
        "import a, {b as c, d} from \"m\";",
        "import * as ns from \"m\";",
        "export {a as b, c};",
        "export * from \"m\";",
        "export default function () {}",
        "export const x = 1;",
        "export {y} from \"m\";",
    ],
)
def test_module_statements(code):
    printed = roundtrip(code, is_module=True)
    assert roundtrip(printed, is_module=True) == printed


def test_negative_literals_from_transformations():
    tree = parse("x = a - b;")
    tree.body[0].expression.right.right = make_literal(-3)
    assert generate(tree) == "x = a - -3;"


def test_unary_minus_over_negative_number():
    expr = esprima.nodes.UnaryExpression("-", make_literal(-3))
    assert generate(expr) == "- -3"


def test_directives_are_printed_as_strings():
    assert roundtrip('function f() { "use strict"; return 1; }') == 'function f() {\n  "use strict";\n  return 1;\n}'


def test_pretty_output_uses_jsbeautifier():
    pretty = generate(parse("function f(){return 1}"), pretty=True)
    assert pretty == "function f() {\n    return 1;\n}"
