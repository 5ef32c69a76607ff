import esprima
import pytest

from code_transformers import (
    CodeTransform,
    IdentifierSubstitution,
    DeadBranchRemover,
    PropertySimplifier,
    Cleanup,
)
from node_tools import parse, remove_node
from output import generate

from conftest import apply_pass, normalize


@pytest.mark.parametrize(
    "code, expected",
    [
        ("if (true) { a(); b(); } else { c(); }", "a();\nb();"),
        ("x(); if (false) { a(); } y();", "x();\ny();"),
        ("if (false) a(); else b();", "b();"),
        ("if (true) { let x = 1; f(x); }", "{\n  let x = 1;\n  f(x);\n}"),
        ("while (c) if (true) { a(); }", "while (c) {\n  a();\n}"),
        ("while (c) if (false) a();", "while (c);"),
        ("if (x) a(); else if (false) b();", "if (x)\n  a();"),
        ("if (true) { if (false) { a(); } else { b(); } }", "b();"),
        ("x = true ? 1 : 2;", "x = 1;"),
        ("x = false ? 1 : f(true ? 3 : 4);", "x = f(3);"),
    ],
)
def test_dead_branches(code, expected):
    assert apply_pass(DeadBranchRemover, code) == expected


def test_non_boolean_tests_are_kept():
    code = "if (1) a(); x = 0 ? 1 : 2;"
    assert apply_pass(DeadBranchRemover, code) == normalize(code)


@pytest.mark.parametrize(
    "code, expected",
    [
        ('a["b"]["c"] = d["e-f"];', 'a.b.c = d["e-f"];'),
        ('x = a["class"];', "x = a.class;"),
        ('x = a["$_ok"];', "x = a.$_ok;"),
        ('x = a["1x"] + a[""] + a[1];', 'x = a["1x"] + a[""] + a[1];'),
        ('f()["g"]()["h"];', "f().g().h;"),
    ],
)
def test_property_simplifier(code, expected):
    assert apply_pass(PropertySimplifier, code) == expected


def test_cleanup_removes_empty_declarations():
    ast = parse("var a = 1; f();")
    remove_node(ast, ast.body[0].declarations[0])
    Cleanup(ast).run()
    assert generate(ast) == "f();"


def test_cleanup_for_initializer():
    ast = parse("for (var i = 0; ;) {}")
    remove_node(ast, ast.body[0].init.declarations[0])
    Cleanup(ast).run()
    assert generate(ast) == "for (;;) {}"


def test_cleanup_single_statement_slot():
    ast = parse("if (x) var a = 1;")
    remove_node(ast, ast.body[0].consequent.declarations[0])
    Cleanup(ast).run()
    assert generate(ast) == "if (x);"


def test_cleanup_empty_export():
    ast = parse("export var a = 1; f();", is_module=True)
    remove_node(ast, ast.body[0].declaration.declarations[0])
    Cleanup(ast).run()
    assert generate(ast) == "f();"


def test_identifier_substitution():
    ast = parse("var x = a + o.a + {a: a}.a;")
    substitution = IdentifierSubstitution(ast, {"a": "b", "x": lambda: esprima.nodes.Identifier("y")})
    substitution.run()
    assert generate(ast) == "var y = b + o.a + {a: b}.a;"
    assert len(substitution.inserted) == 1


class CallCounter(CodeTransform):
    def __init__(self, ast):
        super().__init__(ast, "Call Counter")

    def before_node(self, node, parent):
        return node.type not in ("FunctionExpression", "FunctionDeclaration")

    def after_node(self, node, parent):
        if node.type == "CallExpression":
            self.changed()


def test_code_transform_walk_and_passes(capsys):
    import debug

    debug.set_verbose(True)
    ast = parse("f(g()); function h() { i(); }")
    counter = CallCounter(ast)
    assert counter.run() == 2
    assert counter.run() == 2
    err = capsys.readouterr().err
    assert "Applying code transform: Call Counter\n" in err
    assert "Applying code transform: Call Counter (pass 2)" in err
