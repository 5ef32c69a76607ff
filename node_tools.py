"""
Helpers to inspect, copy and mutate esprima program trees.

Every node kind declares its child slots in VISITOR_KEYS, in source order. A slot is either
single-valued (holds one node or None) or a list slot (holds an ordered list of nodes, some
of which may be None, e.g. array holes). Mutation always goes through replace_node/remove_node,
which look the target node up by identity among the slots of its parent.
"""
import math
import esprima
from esprima.error_handler import Error as EsprimaError
from errors import ParseError, UnsupportedReplacementError
from typing import List, Optional, Union

# (slot name, is list slot)
VISITOR_KEYS = {
    "Program": [("body", True)],
    "ExpressionStatement": [("expression", False)],
    "BlockStatement": [("body", True)],
    "EmptyStatement": [],
    "DebuggerStatement": [],
    "WithStatement": [("object", False), ("body", False)],
    "ReturnStatement": [("argument", False)],
    "LabeledStatement": [("label", False), ("body", False)],
    "BreakStatement": [("label", False)],
    "ContinueStatement": [("label", False)],
    "IfStatement": [("test", False), ("consequent", False), ("alternate", False)],
    "SwitchStatement": [("discriminant", False), ("cases", True)],
    "SwitchCase": [("test", False), ("consequent", True)],
    "ThrowStatement": [("argument", False)],
    "TryStatement": [("block", False), ("handler", False), ("finalizer", False)],
    "CatchClause": [("param", False), ("body", False)],
    "WhileStatement": [("test", False), ("body", False)],
    "DoWhileStatement": [("body", False), ("test", False)],
    "ForStatement": [("init", False), ("test", False), ("update", False), ("body", False)],
    "ForInStatement": [("left", False), ("right", False), ("body", False)],
    "ForOfStatement": [("left", False), ("right", False), ("body", False)],
    "FunctionDeclaration": [("id", False), ("params", True), ("body", False)],
    "FunctionExpression": [("id", False), ("params", True), ("body", False)],
    "ArrowFunctionExpression": [("id", False), ("params", True), ("body", False)],
    "VariableDeclaration": [("declarations", True)],
    "VariableDeclarator": [("id", False), ("init", False)],
    "ClassDeclaration": [("id", False), ("superClass", False), ("body", False)],
    "ClassExpression": [("id", False), ("superClass", False), ("body", False)],
    "ClassBody": [("body", True)],
    "MethodDefinition": [("key", False), ("value", False)],
    "Identifier": [],
    "Literal": [],
    "ThisExpression": [],
    "Super": [],
    "Import": [],
    "TemplateElement": [],
    "ArrayExpression": [("elements", True)],
    "ArrayPattern": [("elements", True)],
    "ObjectExpression": [("properties", True)],
    "ObjectPattern": [("properties", True)],
    "Property": [("key", False), ("value", False)],
    "AssignmentExpression": [("left", False), ("right", False)],
    "AssignmentPattern": [("left", False), ("right", False)],
    "BinaryExpression": [("left", False), ("right", False)],
    "LogicalExpression": [("left", False), ("right", False)],
    "UnaryExpression": [("argument", False)],
    "UpdateExpression": [("argument", False)],
    "AwaitExpression": [("argument", False)],
    "YieldExpression": [("argument", False)],
    "SpreadElement": [("argument", False)],
    "RestElement": [("argument", False)],
    "ConditionalExpression": [("test", False), ("consequent", False), ("alternate", False)],
    "CallExpression": [("callee", False), ("arguments", True)],
    "NewExpression": [("callee", False), ("arguments", True)],
    "MemberExpression": [("object", False), ("property", False)],
    "SequenceExpression": [("expressions", True)],
    "TemplateLiteral": [("quasis", True), ("expressions", True)],
    "TaggedTemplateExpression": [("tag", False), ("quasi", False)],
    "MetaProperty": [("meta", False), ("property", False)],
    "ImportDeclaration": [("specifiers", True), ("source", False)],
    "ImportSpecifier": [("local", False), ("imported", False)],
    "ImportDefaultSpecifier": [("local", False)],
    "ImportNamespaceSpecifier": [("local", False)],
    "ExportNamedDeclaration": [("declaration", False), ("specifiers", True), ("source", False)],
    "ExportDefaultDeclaration": [("declaration", False)],
    "ExportAllDeclaration": [("source", False)],
    "ExportSpecifier": [("local", False), ("exported", False)],
}

FUNCTION_TYPES = ("FunctionDeclaration", "FunctionExpression", "ArrowFunctionExpression")


def is_node(value) -> bool:
    return isinstance(value, esprima.nodes.Node)


def get_slots(node : esprima.nodes.Node):
    """
    Returns the declared child slots of a node as (name, is_list) pairs.

    :param esprima.nodes.Node node: The node
    :raises UnsupportedReplacementError: if the node kind is unknown
    """
    try:
        return VISITOR_KEYS[node.type]
    except KeyError:
        raise UnsupportedReplacementError("Unknown node type: " + str(node.type))


def iter_children(node : esprima.nodes.Node):
    """
    Yields the non-empty children of a node, in source order.
    """
    for name, is_list in get_slots(node):
        value = getattr(node, name)
        if is_list:
            if value is None:
                continue
            for child in value:
                if child is not None:
                    yield child
        elif value is not None and is_node(value):
            yield value


def find_slot(parent : esprima.nodes.Node, target : esprima.nodes.Node):
    """
    Returns the (slot name, is_list) pair of parent holding target, or None
    """
    for name, is_list in get_slots(parent):
        value = getattr(parent, name)
        if is_list:
            if value is not None and any(v is target for v in value):
                return (name, True)
        elif value is target:
            return (name, False)
    return None


def replace_in_parent(parent : esprima.nodes.Node, target : esprima.nodes.Node, replacement) -> bool:
    """
    Replaces target in the slots of parent. replacement may be a node, a list of nodes
    (spliced into list slots) or None (removal).

    :rtype bool:
    :return: True if target was found among the slots of parent
    """
    found = False
    for name, is_list in get_slots(parent):
        value = getattr(parent, name)
        if is_list:
            if value is None:
                continue
            i = 0
            while i < len(value):
                if value[i] is target:
                    found = True
                    if replacement is None:
                        del value[i]
                        continue
                    elif isinstance(replacement, list):
                        value[i:i + 1] = replacement
                        i += len(replacement)
                        continue
                    else:
                        value[i] = replacement
                i += 1
        elif value is target:
            found = True
            if isinstance(replacement, list):
                raise UnsupportedReplacementError("Cannot store a list of nodes in the single-value slot '" + name + "' of " + parent.type)
            setattr(parent, name, replacement)
    return found


def replace_node(root : esprima.nodes.Node, target : esprima.nodes.Node, replacement : Union[esprima.nodes.Node, List[esprima.nodes.Node], None]) -> bool:
    """
    Finds target (by identity) anywhere under root and substitutes it in its parent.

    :param esprima.nodes.Node root: The subtree to search
    :param esprima.nodes.Node target: The node to replace
    :param replacement: A node, a list of nodes (list slots only) or None to remove target
    :rtype bool:
    :return: True if the node was found and replaced
    """
    stack = [root]
    while len(stack) > 0:
        parent = stack.pop()
        if replace_in_parent(parent, target, replacement):
            return True
        children = list(iter_children(parent))
        children.reverse()
        stack.extend(children)
    return False


def remove_node(root : esprima.nodes.Node, target : esprima.nodes.Node) -> bool:
    return replace_node(root, target, None)


def node_copy(node):
    """
    Structural deep copy of a node (or list of nodes). Non-node values are shared,
    except lists which are copied.
    """
    if is_node(node):
        nc = node.__class__.__new__(node.__class__)
        for k in node.__dict__.keys():
            nc.__dict__[k] = node_copy(node.__dict__[k])
        return nc
    elif isinstance(node, list):
        return [node_copy(e) for e in node]
    else:
        return node


def node_equals(n1, n2) -> bool:
    if type(n1) is not type(n2):
        return False
    if is_node(n1):
        for k in n1.__dict__.keys():
            if k in ("range", "loc", "raw"):
                continue
            if not node_equals(n1.__dict__[k], n2.__dict__.get(k)):
                return False
        return True
    elif isinstance(n1, list):
        if len(n1) != len(n2):
            return False
        for i in range(len(n1)):
            if not node_equals(n1[i], n2[i]):
                return False
        return True
    else:
        return n1 == n2


def parse(source : str, is_module : bool = False) -> esprima.nodes.Node:
    """
    Parses JS source text into an esprima program tree.

    :raises ParseError: if esprima rejects the source
    """
    try:
        if is_module:
            return esprima.parseModule(source, {"range": True})
        return esprima.parseScript(source, {"range": True})
    except EsprimaError as e:
        raise ParseError(str(e)) from e


def parse_expression(source : str) -> esprima.nodes.Node:
    program = parse("(" + source + ")")
    if len(program.body) != 1 or program.body[0].type != "ExpressionStatement":
        raise ParseError("Not a single expression: " + source)
    return program.body[0].expression


def duplicate_expression(expr : esprima.nodes.Node) -> esprima.nodes.Node:
    """
    Returns a fresh copy of an expression by printing it and parsing the result back,
    so that the copy shares nothing with the original.
    """
    from output import generate
    return parse_expression(generate(expr))


def is_number(value) -> bool:
    return type(value) in (int, float)


def is_literal(node) -> bool:
    return node is not None and node.type == "Literal" and node.regex is None


def is_string_literal(node) -> bool:
    return is_literal(node) and type(node.value) is str


def is_number_literal(node) -> bool:
    return is_literal(node) and is_number(node.value)


def is_boolean_literal(node) -> bool:
    return is_literal(node) and type(node.value) is bool


def is_negative_number(node) -> bool:
    """
    True for a unary minus applied directly to a numeric literal (the way negative numbers are written)
    """
    return node is not None and node.type == "UnaryExpression" and node.operator == "-" and is_number_literal(node.argument)


def literal_raw(value) -> str:
    from output import js_string, js_number
    if value is None:
        return "null"
    if type(value) is bool:
        return "true" if value else "false"
    if type(value) is str:
        return js_string(value)
    return js_number(value)


def make_literal(value) -> Optional[esprima.nodes.Node]:
    """
    Converts a string, number, boolean, None (null) or list of those to an equivalent
    expression node. Negative numbers become a unary minus over a literal.

    :rtype esprima.nodes.Node:
    :return: The node, or None if the value has no literal representation
    """
    if isinstance(value, list):
        elements = []
        for e in value:
            n = make_literal(e)
            if n is None:
                return None
            elements.append(n)
        return esprima.nodes.ArrayExpression(elements)
    if value is None or type(value) in (str, bool):
        return esprima.nodes.Literal(value, literal_raw(value))
    if is_number(value):
        if math.isnan(value) or math.isinf(value):
            return None
        # computed before the int() conversion, which drops the sign of -0.0
        negative = value < 0 or math.copysign(1.0, value) < 0
        if type(value) is float and value.is_integer() and abs(value) < 2 ** 53:
            value = int(value)
        if negative:
            return esprima.nodes.UnaryExpression("-", make_literal(abs(value)))
        return esprima.nodes.Literal(value, literal_raw(value))
    return None


def is_variable_reference(node : esprima.nodes.Node, parent : esprima.nodes.Node) -> bool:
    """
    Tells whether an Identifier node denotes a variable (as opposed to a property name,
    a label or a specifier name).
    """
    if node.type != "Identifier" or parent is None:
        return node.type == "Identifier"
    if parent.type == "MemberExpression" and parent.property is node and not parent.computed:
        return False
    if parent.type in ("Property", "MethodDefinition") and parent.key is node and not parent.computed and parent.value is not node:
        return False
    if parent.type in ("LabeledStatement", "BreakStatement", "ContinueStatement"):
        return False
    if parent.type == "MetaProperty":
        return False
    if parent.type == "ExportSpecifier" and parent.exported is node and parent.local is not node:
        return False
    if parent.type == "ImportSpecifier" and parent.imported is node and parent.local is not node:
        return False
    return True


def get_binding_identifiers(pattern) -> List[esprima.nodes.Node]:
    """
    Returns the Identifier nodes bound by a declaration target (identifier or destructuring pattern)
    """
    result = []
    stack = [pattern]
    while len(stack) > 0:
        p = stack.pop()
        if p is None:
            continue
        if p.type == "Identifier":
            result.append(p)
        elif p.type == "ArrayPattern":
            stack.extend(reversed(p.elements))
        elif p.type == "ObjectPattern":
            stack.extend(reversed(p.properties))
        elif p.type == "Property":
            stack.append(p.value)
        elif p.type == "AssignmentPattern":
            stack.append(p.left)
        elif p.type == "RestElement":
            stack.append(p.argument)
    return result


def is_function_body(node : esprima.nodes.Node, parent : esprima.nodes.Node) -> bool:
    return parent is not None and parent.type in FUNCTION_TYPES and parent.body is node


def is_write_target(node : esprima.nodes.Node, parent : esprima.nodes.Node) -> bool:
    """
    Tells whether node is assigned, updated or deleted by its parent
    """
    if parent.type == "AssignmentExpression" and parent.left is node:
        return True
    if parent.type == "UpdateExpression":
        return True
    if parent.type == "UnaryExpression" and parent.operator == "delete":
        return True
    if parent.type in ("ForInStatement", "ForOfStatement") and parent.left is node:
        return True
    return False
