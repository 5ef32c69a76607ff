import esprima
import pytest

from errors import ParseError, UnsupportedReplacementError
from node_tools import (
    parse,
    replace_in_parent,
    replace_node,
    remove_node,
    node_copy,
    node_equals,
    duplicate_expression,
    make_literal,
    is_variable_reference,
    get_binding_identifiers,
    iter_children,
    find_slot,
)
from output import generate


def test_replace_in_list_slot_splices_statements():
    ast = parse("a(); b(); c();")
    middle = ast.body[1]
    replacement = parse("x(); y();").body
    assert replace_in_parent(ast, middle, replacement)
    assert generate(ast) == "a();\nx();\ny();\nc();"


def test_replace_with_none_removes_from_list():
    ast = parse("a(); b(); c();")
    assert remove_node(ast, ast.body[0])
    assert generate(ast) == "b();\nc();"


def test_list_into_single_slot_is_rejected():
    ast = parse("if (x) a();")
    if_statement = ast.body[0]
    with pytest.raises(UnsupportedReplacementError):
        replace_in_parent(if_statement, if_statement.consequent, parse("b(); c();").body)


def test_replace_node_searches_the_whole_tree():
    ast = parse("function f() { return g(1); }")
    call = ast.body[0].body.body[0].argument
    assert replace_node(ast, call, make_literal(2))
    assert generate(ast) == "function f() {\n  return 2;\n}"


def test_replace_node_reports_missing_target():
    ast = parse("a();")
    other = parse("b();").body[0]
    assert not replace_node(ast, other, None)


def test_find_slot():
    ast = parse("if (x) a(); else b();")
    if_statement = ast.body[0]
    assert find_slot(if_statement, if_statement.alternate) == ("alternate", False)
    assert find_slot(ast, if_statement) == ("body", True)
    assert find_slot(ast, if_statement.test) is None


def test_node_copy_is_independent():
    ast = parse("f(a, [1, 2]);")
    copy = node_copy(ast)
    assert node_equals(ast, copy)
    copy.body[0].expression.arguments[0].name = "b"
    assert generate(ast) == "f(a, [1, 2]);"
    assert not node_equals(ast, copy)


def test_duplicate_expression_shares_nothing():
    expr = parse("x + y * 2;").body[0].expression
    dup = duplicate_expression(expr)
    assert dup is not expr
    assert generate(dup) == "x + y * 2"
    dup.left.name = "z"
    assert expr.left.name == "x"


def test_iter_children_skips_holes():
    array = parse("[1, , 2];").body[0].expression
    assert [c.value for c in iter_children(array)] == [1, 2]


@pytest.mark.parametrize(
    "value, expected",
    [
        (3, "3"),
        (3.0, "3"),
        (0.5, "0.5"),
        (-2, "-2"),
        (-0.0, "-0"),
        ("a\"b", "\"a\\\"b\""),
        (True, "true"),
        (None, "null"),
        ([1, "x", False], "[1, \"x\", false]"),
    ],
)
def test_make_literal(value, expected):
    assert generate(make_literal(value)) == expected


def test_make_literal_negative_number_is_unary_minus():
    node = make_literal(-7)
    assert node.type == "UnaryExpression"
    assert node.operator == "-"
    assert node.argument.value == 7


@pytest.mark.parametrize("value", [float("nan"), float("inf"), object(), [1, float("nan")]])
def test_make_literal_rejects_values_without_literal(value):
    assert make_literal(value) is None


def test_is_variable_reference():
    ast = parse("o.p; o[q]; ({k: v}); lbl: for (;;) { break lbl; }")
    member = ast.body[0].expression
    assert is_variable_reference(member.object, member)
    assert not is_variable_reference(member.property, member)
    computed = ast.body[1].expression
    assert is_variable_reference(computed.property, computed)
    prop = ast.body[2].expression.properties[0]
    assert not is_variable_reference(prop.key, prop)
    assert is_variable_reference(prop.value, prop)
    labeled = ast.body[3]
    assert not is_variable_reference(labeled.label, labeled)


def test_shorthand_property_value_is_a_reference():
    prop = parse("({a});").body[0].expression.properties[0]
    assert is_variable_reference(prop.value, prop)


def test_get_binding_identifiers():
    decl = parse("var [a, {b, c: d}, ...e] = x, f = 1;").body[0]
    names = [i.name for d in decl.declarations for i in get_binding_identifiers(d.id)]
    assert names == ["a", "b", "d", "e", "f"]


def test_parse_errors_are_wrapped():
    with pytest.raises(ParseError):
        parse("var = ;")


def test_parse_module():
    ast = parse("import a from 'm'; export default a;", is_module=True)
    assert ast.body[0].type == "ImportDeclaration"
    assert isinstance(ast, esprima.nodes.Node)
