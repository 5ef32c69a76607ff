"""
Constant folding of unary and binary expressions.

Operands are extracted from literal nodes, and operators are applied inside the JS engine so that coercions
and comparisons follow the language exactly ("5" - 1 is 4, "5" + 1 is "51", 1 << 33 is 2...).
"""
import math
import esprima
from code_transformers import CodeTransform
from node_tools import is_literal, is_number_literal, is_negative_number, make_literal, replace_in_parent
from jseval import Sandbox, JSUndefined, JSObjectValue, UNARY_OPERATORS, BINARY_OPERATORS
from errors import EvaluationError
from debug import verbose
import config


class Unresolvable(Exception):
    pass


def get_operand_value(node : esprima.nodes.Node):
    """
    Returns the value of a resolvable operand

    :raises Unresolvable: if the node is not a literal-like expression
    """
    if is_literal(node):
        return node.value
    if is_negative_number(node):
        return -float(node.argument.value)
    if node.type == "Identifier" and node.name == "undefined":
        return JSUndefined
    if node.type == "ArrayExpression" and len(node.elements) == 0:
        return []
    if node.type == "ObjectExpression" and len(node.properties) == 0:
        return JSObjectValue("object", "{}")
    raise Unresolvable()


def is_foldable_result(value) -> bool:
    if value is None or type(value) in (str, bool):
        return True
    if type(value) in (int, float):
        return not math.isnan(value) and not math.isinf(value)
    return False


class ExpressionSimplifier(CodeTransform):
    def __init__(self, ast, sandbox : Sandbox = None):
        super().__init__(ast, "Expression Simplifier")
        self.sandbox = sandbox

    def get_sandbox(self) -> Sandbox:
        if self.sandbox is None:
            self.sandbox = Sandbox()
        return self.sandbox

    def simplify_unary(self, expr):
        if expr.operator not in UNARY_OPERATORS:
            return None
        if expr.operator == "-" and is_number_literal(expr.argument):
            return None
        try:
            arg = get_operand_value(expr.argument)
        except Unresolvable:
            return None
        return self.evaluate(lambda sandbox: sandbox.unary_operation(expr.operator, arg))

    def simplify_binary(self, expr):
        if expr.operator not in BINARY_OPERATORS:
            return None
        if expr.operator == "-" and is_negative_number(expr.right):
            expr.operator = "+"
            expr.right = expr.right.argument
            self.changed()
        try:
            left = get_operand_value(expr.left)
            right = get_operand_value(expr.right)
        except Unresolvable:
            return None
        return self.evaluate(lambda sandbox: sandbox.binary_operation(expr.operator, left, right))

    def evaluate(self, operation):
        try:
            value = operation(self.get_sandbox())
        except EvaluationError as e:
            verbose("Could not evaluate expression:", e)
            return None
        if not is_foldable_result(value):
            return None
        return make_literal(value)

    def after_node(self, node, parent):
        if parent is None:
            return
        if node.type == "UnaryExpression":
            replacement = self.simplify_unary(node)
        elif node.type == "BinaryExpression":
            replacement = self.simplify_binary(node)
        else:
            return
        if replacement is not None:
            replace_in_parent(parent, node, replacement)
            self.changed()

    def run(self) -> int:
        """
        Simplifies until a fixed point is reached

        :rtype int:
        :return: The total number of simplifications
        """
        total = 0
        for i in range(config.max_fixpoint_iter):
            n = super().run()
            total += n
            if n == 0:
                break
        self.count = total
        return total
