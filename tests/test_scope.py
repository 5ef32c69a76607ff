import pytest

from errors import StructuralError
from node_tools import parse
from scope import Scope, ScopeType
from code_transformers import ScopedTransform


def make_scopes():
    ast = parse("")
    glob = Scope(ast, ScopeType.GLOBAL)
    fn = glob.add_child(parse("function f() {}").body[0], ScopeType.FUNCTION)
    block = fn.add_child(parse("{}").body[0], ScopeType.BLOCK)
    return glob, fn, block


def test_var_is_hoisted_to_the_function_scope():
    glob, fn, block = make_scopes()
    assert block.add("x", "binding", "var") is fn
    assert fn.get_own("x") == "binding"
    assert block.get_own("x") is None
    assert block.get("x") == "binding"


def test_let_stays_in_the_block():
    glob, fn, block = make_scopes()
    assert block.add("x", "inner", "let") is block
    assert fn.get("x") is None


def test_global_kind_goes_to_the_global_scope():
    glob, fn, block = make_scopes()
    assert block.add("g", "binding", "global") is glob
    assert block.get("g") == "binding"


def test_unkeyed_declaration_behaves_like_var():
    glob, fn, block = make_scopes()
    assert block.add("x", "binding") is fn


def test_block_scoped_redeclaration_is_an_error():
    glob, fn, block = make_scopes()
    block.add("x", "first", "let")
    with pytest.raises(StructuralError):
        block.add("x", "second", "let")
    with pytest.raises(StructuralError):
        block.add("x", "second", "function")


def test_same_binding_may_be_registered_twice():
    glob, fn, block = make_scopes()
    binding = object()
    block.add("x", binding, "const")
    block.add("x", binding, "const")
    assert block.get("x") is binding


def test_var_redeclaration_is_allowed():
    glob, fn, block = make_scopes()
    fn.add("x", "first", "var")
    fn.add("x", "second", "var")
    assert fn.get("x") == "second"


def test_shadowing_and_removal():
    glob, fn, block = make_scopes()
    glob.add("x", "outer", "var")
    block.add("x", "inner", "let")
    assert block.get("x") == "inner"
    assert block.lookup_scope("x") is block
    block.remove("x")
    assert block.get("x") == "outer"


def test_add_if_absent_keeps_existing_binding():
    glob, fn, block = make_scopes()
    fn.add("x", "first", "var")
    fn.add_if_absent("x", "second", "var")
    assert fn.get("x") == "first"


def test_children_are_keyed_by_node():
    glob, fn, block = make_scopes()
    assert glob.get_child(fn.node) is fn
    assert fn.get_child(block.node) is block
    assert list(glob.iter_children()) == [fn]
    assert block.global_scope() is glob


class ScopeRecorder(ScopedTransform):
    def __init__(self, ast):
        super().__init__(ast, None)
        self.seen = {}

    def before_node(self, node, parent):
        if node.type == "Identifier" and node.name.startswith("use_"):
            self.seen[node.name] = self.scope
        return True


def test_scoped_transform_respects_hoisting_and_blocks():
    ast = parse(
        "var a = 1;"
        "function f(p) { use_f; { let b; var c; use_block; } }"
        "try {} catch (e) { use_catch; }"
        "for (let i = 0; i < 1; i++) { use_loop; }"
    )
    recorder = ScopeRecorder(ast)
    recorder.walk()
    glob = recorder.global_scope
    fn_scope = recorder.seen["use_f"]
    block_scope = recorder.seen["use_block"]

    assert glob.get_own("a") is not None
    assert glob.get_own("f") is not None
    assert fn_scope.type == ScopeType.FUNCTION
    assert fn_scope.get_own("p") is not None
    assert fn_scope.get_own("c") is not None
    assert block_scope.type == ScopeType.BLOCK
    assert block_scope.get_own("b") is not None
    assert block_scope.get("p") is fn_scope.get_own("p")

    assert recorder.seen["use_catch"].get("e") is not None
    assert glob.get("e") is None
    assert recorder.seen["use_loop"].get("i") is not None
    assert glob.get("i") is None


def test_second_walk_reuses_scopes():
    ast = parse("function f() { use_x; }")
    recorder = ScopeRecorder(ast)
    recorder.walk()
    first = recorder.seen["use_x"]
    recorder.walk()
    assert recorder.seen["use_x"] is first
