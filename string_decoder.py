"""
Recovers strings hidden behind a few well known encodings.

Reversed strings:
    "dlroW olleH".split("").reverse().join("")   ->   "Hello World"

Character codes:
    String.fromCharCode(72, 101, 108, 108, 111)   ->   "Hello"

XOR encoding (one top-level decoding function, called with dot-separated codes):
    function _0x6f26a(_4, _5) { _5 = 9; var _, _2, _3 = ""; _2 = _4.split("."); for (_ = 0; _ < _2.length - 1; _++) { _3 += String.fromCharCode(_2[_] ^ _5); } return _3; }
    _0x6f26a("65.108.101.101.102.41.94.102.123.101.109.")   ->   "Hello World"
"""
import re
from code_transformers import CodeTransform
from node_tools import is_string_literal, is_number_literal, make_literal, replace_in_parent, remove_node
from debug import verbose, debug

XOR_CALL_ARGUMENT = re.compile(r'^(\d{1,3}\.)+$')


def member_name(member) -> str:
    """
    Returns the property name of obj.name or obj["name"], None for other member expressions
    """
    if member is None or member.type != "MemberExpression":
        return None
    if not member.computed and member.property.type == "Identifier":
        return member.property.name
    if member.computed and is_string_literal(member.property):
        return member.property.value
    return None


def is_method_call(node, name, nargs) -> bool:
    return node.type == "CallExpression" and len(node.arguments) == nargs and member_name(node.callee) == name


def is_empty_string(node) -> bool:
    return is_string_literal(node) and node.value == ""


def get_reversed_string(node):
    """
    Matches "...".split("").reverse().join("") and returns the literal string, or None
    """
    if not is_method_call(node, "join", 1) or not is_empty_string(node.arguments[0]):
        return None
    reverse = node.callee.object
    if not is_method_call(reverse, "reverse", 0):
        return None
    split = reverse.callee.object
    if not is_method_call(split, "split", 1) or not is_empty_string(split.arguments[0]):
        return None
    if not is_string_literal(split.callee.object):
        return None
    return split.callee.object.value


def get_char_codes(node):
    """
    Matches String.fromCharCode(n1, n2...) with numeric literal arguments and returns the codes, or None
    """
    if node.type != "CallExpression" or len(node.arguments) == 0 or member_name(node.callee) != "fromCharCode":
        return None
    obj = node.callee.object
    if obj.type != "Identifier" or obj.name != "String":
        return None
    if not all(is_number_literal(a) for a in node.arguments):
        return None
    return [a.value for a in node.arguments]


def reverse_code_units(s : str) -> str:
    # JS strings are sequences of UTF-16 code units
    data = s.encode("utf-16-le", "surrogatepass")
    units = [data[i:i + 2] for i in range(0, len(data), 2)]
    units.reverse()
    return b"".join(units).decode("utf-16-le", "surrogatepass")


def from_char_codes(codes) -> str:
    # String.fromCharCode applies ToUint16 to each code
    return "".join(chr(int(c) & 0xffff) for c in codes)


def is_xor_decoding_function(node) -> bool:
    if node.type != "FunctionDeclaration" or node.id is None or len(node.params) != 2:
        return False
    if any(p.type != "Identifier" for p in node.params):
        return False
    body = node.body.body
    if len(body) != 5:
        return False
    first = body[0]
    if first.type != "ExpressionStatement" or first.expression.type != "AssignmentExpression" or \
            first.expression.left.type != "Identifier" or not is_number_literal(first.expression.right):
        return False
    if body[1].type != "VariableDeclaration" or len(body[1].declarations) != 3:
        return False
    if body[2].type != "ExpressionStatement":
        return False
    loop = body[3]
    if loop.type != "ForStatement" or loop.init is None or loop.init.type != "AssignmentExpression":
        return False
    if loop.test is None or loop.test.type != "BinaryExpression" or loop.update is None or \
            loop.update.type != "UpdateExpression" or loop.body.type != "BlockStatement":
        return False
    return body[4].type == "ReturnStatement" and body[4].argument is not None and body[4].argument.type == "Identifier"


class StringDecoder(CodeTransform):
    def __init__(self, ast):
        super().__init__(ast, "String Decoder")
        self.xor_function = None
        self.xor_key = None

    def find_xor_function(self) -> None:
        for statement in list(self.ast.body):
            if is_xor_decoding_function(statement):
                self.xor_function = statement.id.name
                self.xor_key = int(statement.body.body[0].expression.right.value)
                debug("Found XOR decoding function", self.xor_function, "with key", self.xor_key)
                remove_node(self.ast, statement)
                break

    def decode_xor(self, s : str) -> str:
        return "".join(chr(int(c) ^ self.xor_key) for c in s.split(".")[:-1])

    def decode(self, node):
        reversed_string = get_reversed_string(node)
        if reversed_string is not None:
            return reverse_code_units(reversed_string)
        codes = get_char_codes(node)
        if codes is not None:
            return from_char_codes(codes)
        if self.xor_function is not None and node.type == "CallExpression" and node.callee.type == "Identifier" \
                and node.callee.name == self.xor_function and len(node.arguments) == 1 and \
                is_string_literal(node.arguments[0]) and XOR_CALL_ARGUMENT.match(node.arguments[0].value) is not None:
            return self.decode_xor(node.arguments[0].value)
        return None

    def before_node(self, node, parent):
        if parent is None or node.type != "CallExpression":
            return True
        decoded = self.decode(node)
        if decoded is None:
            return True
        replace_in_parent(parent, node, make_literal(decoded))
        self.changed()
        return False

    def after_node(self, node, parent):
        # the string may have been decoded from its children
        if parent is None or node.type != "CallExpression":
            return
        reversed_string = get_reversed_string(node)
        if reversed_string is not None:
            replace_in_parent(parent, node, make_literal(reverse_code_units(reversed_string)))
            self.changed()

    def run(self) -> int:
        verbose("Applying code transform: " + self.name)
        self.count = 0
        self.find_xor_function()
        self.do_node(self.ast, None)
        return self.count
