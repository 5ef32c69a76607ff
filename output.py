"""
JavaScript code generator for esprima program trees.

Output streams text through Output.out() the same way for every node kind; parentheses are
inserted from operator precedence, so trees built or rewritten by the transformations print
back as valid JS. Pretty output is delegated to jsbeautifier.
"""
import math
import re
import jsbeautifier
import esprima

PREC_SEQUENCE = 0
PREC_YIELD = 1
PREC_ASSIGNMENT = 2
PREC_CONDITIONAL = 3
PREC_UNARY = 15
PREC_UPDATE = 16
PREC_MEMBER = 19
PREC_PRIMARY = 20

BINARY_PRECEDENCE = {
    "||": 4, "&&": 5, "|": 6, "^": 7, "&": 8,
    "==": 9, "!=": 9, "===": 9, "!==": 9,
    "<": 10, ">": 10, "<=": 10, ">=": 10, "in": 10, "instanceof": 10,
    "<<": 11, ">>": 11, ">>>": 11,
    "+": 12, "-": 12,
    "*": 13, "/": 13, "%": 13,
    "**": 14,
}

ESCAPES = {
    '"': '\\"', '\\': '\\\\', '\n': '\\n', '\r': '\\r', '\t': '\\t',
    '\b': '\\b', '\f': '\\f', '\v': '\\v', '\u2028': '\\u2028', '\u2029': '\\u2029',
}


def js_string(s : str) -> str:
    """
    Quotes a string as a double-quoted JS string literal.
    """
    result = ['"']
    for c in s:
        if c in ESCAPES:
            result.append(ESCAPES[c])
        elif ord(c) < 0x20 or ord(c) == 0x7f:
            result.append("\\x%02x" % ord(c))
        elif 0xd800 <= ord(c) <= 0xdfff:
            result.append("\\u%04x" % ord(c))
        else:
            result.append(c)
    result.append('"')
    return "".join(result)


def js_number(value) -> str:
    """
    Formats a number the way JS Number.prototype.toString() does.
    """
    if type(value) is int:
        if abs(value) < 10 ** 21:
            return str(value)
        value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    m = re.match(r'^(\d+)(?:\.(\d+))?(?:e([+-]\d+))?$', repr(abs(value)))
    int_part = m.group(1)
    frac_part = m.group(2) or ""
    exp = int(m.group(3) or 0)

    all_digits = int_part + frac_part
    stripped = all_digits.lstrip("0")
    # n is the position of the decimal point relative to the first significant digit
    n = len(int_part) + exp - (len(all_digits) - len(stripped))
    digits = stripped.rstrip("0")
    k = len(digits)

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * (-n) + digits
    e = n - 1
    exp_str = ("+" if e >= 0 else "-") + str(abs(e))
    if k == 1:
        return sign + digits + "e" + exp_str
    return sign + digits[0] + "." + digits[1:] + "e" + exp_str


def expression_precedence(expr : esprima.nodes.Node) -> int:
    t = expr.type
    if t == "SequenceExpression":
        return PREC_SEQUENCE
    if t == "YieldExpression":
        return PREC_YIELD
    if t in ("AssignmentExpression", "ArrowFunctionExpression"):
        return PREC_ASSIGNMENT
    if t == "ConditionalExpression":
        return PREC_CONDITIONAL
    if t in ("BinaryExpression", "LogicalExpression"):
        return BINARY_PRECEDENCE.get(expr.operator, PREC_ASSIGNMENT)
    if t in ("UnaryExpression", "AwaitExpression"):
        return PREC_UNARY
    if t == "UpdateExpression":
        return PREC_UPDATE
    if t in ("CallExpression", "NewExpression", "MemberExpression", "TaggedTemplateExpression"):
        return PREC_MEMBER
    return PREC_PRIMARY


def leftmost(expr : esprima.nodes.Node) -> esprima.nodes.Node:
    """
    Returns the node whose first token starts the printed expression.
    """
    while True:
        t = expr.type
        if t in ("BinaryExpression", "LogicalExpression", "AssignmentExpression"):
            nxt = expr.left
        elif t in ("CallExpression",):
            nxt = expr.callee
        elif t == "MemberExpression":
            nxt = expr.object
        elif t == "TaggedTemplateExpression":
            nxt = expr.tag
        elif t == "ConditionalExpression":
            nxt = expr.test
        elif t == "SequenceExpression":
            nxt = expr.expressions[0]
        elif t == "UpdateExpression" and not expr.prefix:
            nxt = expr.argument
        else:
            return expr
        if nxt is None:
            return expr
        expr = nxt


def contains_call(expr : esprima.nodes.Node) -> bool:
    while expr is not None:
        if expr.type == "CallExpression":
            return True
        if expr.type == "MemberExpression":
            expr = expr.object
        elif expr.type == "TaggedTemplateExpression":
            expr = expr.tag
        else:
            return False
    return False


def template_raw(quasi) -> str:
    value = quasi.value
    if isinstance(value, dict):
        return value["raw"]
    return value.raw


class Output(object):
    def __init__(self, ast):
        self.INDENT = 2
        self.indent = 0
        self.ast = ast
        self.chunks = []

    def out(self, *args):
        self.chunks.extend(args)

    def newline(self):
        self.out("\n" + " " * self.indent)

    def dump(self) -> str:
        self.chunks = []
        if self.ast.type == "Program":
            self.do_statement_list(self.ast.body, top_level=True)
        elif is_expression(self.ast):
            self.do_expr(self.ast)
        else:
            self.do_statement(self.ast)
        return "".join(self.chunks)

    def do_statement_list(self, statements, top_level=False):
        first = True
        for st in statements:
            if not first or not top_level:
                self.newline()
            first = False
            self.do_statement(st)

    def do_block(self, block):
        if len(block.body) == 0:
            self.out("{}")
            return
        self.out("{")
        self.indent += self.INDENT
        self.do_statement_list(block.body)
        self.indent -= self.INDENT
        self.newline()
        self.out("}")

    def do_body(self, statement):
        """
        Body of a compound statement (if, loops, with, labels)
        """
        if statement.type == "BlockStatement":
            self.out(" ")
            self.do_block(statement)
        elif statement.type == "EmptyStatement":
            self.out(";")
        else:
            self.indent += self.INDENT
            self.newline()
            self.do_statement(statement)
            self.indent -= self.INDENT

    def do_literal(self, literal):
        if literal.regex is not None:
            self.out(literal.raw)
        elif literal.value is None:
            self.out("null")
        elif type(literal.value) is bool:
            self.out("true" if literal.value else "false")
        elif type(literal.value) is str:
            self.out(js_string(literal.value))
        elif type(literal.value) in (int, float):
            self.out(js_number(literal.value))
        elif literal.raw is not None:
            self.out(literal.raw)
        else:
            raise ValueError("Literal type not handled: " + str(type(literal.value)))

    def do_params(self, params):
        self.out("(")
        first = True
        for p in params:
            if not first:
                self.out(", ")
            first = False
            self.do_expr(p, PREC_ASSIGNMENT)
        self.out(")")

    def do_function(self, fn, keyword=True):
        if fn.isAsync:
            self.out("async ")
        if keyword:
            self.out("function")
            if fn.generator:
                self.out("*")
            if fn.id is not None:
                self.out(" " + fn.id.name)
        elif fn.generator:
            self.out("*")
        self.do_params(fn.params)
        self.out(" ")
        self.do_block(fn.body)

    def do_property_key(self, key, computed):
        if computed:
            self.out("[")
            self.do_expr(key, PREC_ASSIGNMENT)
            self.out("]")
        elif key.type == "Identifier":
            self.out(key.name)
        else:
            self.do_expr(key)

    def do_property(self, prop):
        if prop.type != "Property":
            self.do_expr(prop, PREC_ASSIGNMENT)
            return
        if prop.kind in ("get", "set"):
            self.out(prop.kind + " ")
            self.do_property_key(prop.key, prop.computed)
            self.do_function(prop.value, keyword=False)
        elif prop.method:
            if prop.value.isAsync:
                self.out("async ")
            if prop.value.generator:
                self.out("*")
            self.do_property_key(prop.key, prop.computed)
            self.do_params(prop.value.params)
            self.out(" ")
            self.do_block(prop.value.body)
        elif prop.shorthand and prop.key.type == "Identifier" and prop.value.type == "Identifier" and prop.key.name == prop.value.name:
            self.out(prop.value.name)
        elif prop.shorthand and prop.value.type == "AssignmentPattern" and prop.value.left.type == "Identifier" and prop.key.type == "Identifier" and prop.key.name == prop.value.left.name:
            self.do_expr(prop.value, PREC_ASSIGNMENT)
        else:
            self.do_property_key(prop.key, prop.computed)
            self.out(": ")
            self.do_expr(prop.value, PREC_ASSIGNMENT)

    def do_class(self, cls):
        self.out("class")
        if cls.id is not None:
            self.out(" " + cls.id.name)
        if cls.superClass is not None:
            self.out(" extends ")
            self.do_expr(cls.superClass, PREC_MEMBER)
        self.out(" ")
        if len(cls.body.body) == 0:
            self.out("{}")
            return
        self.out("{")
        self.indent += self.INDENT
        for method in cls.body.body:
            self.newline()
            if method.static:
                self.out("static ")
            if method.kind in ("get", "set"):
                self.out(method.kind + " ")
            elif method.value.isAsync:
                self.out("async ")
            if method.value.generator:
                self.out("*")
            self.do_property_key(method.key, method.computed)
            self.do_params(method.value.params)
            self.out(" ")
            self.do_block(method.value.body)
        self.indent -= self.INDENT
        self.newline()
        self.out("}")

    def do_arguments(self, arguments):
        self.out("(")
        first = True
        for argument in arguments:
            if not first:
                self.out(", ")
            first = False
            self.do_expr(argument, PREC_ASSIGNMENT)
        self.out(")")

    def do_template(self, template):
        self.out("`")
        for i in range(len(template.quasis)):
            self.out(template_raw(template.quasis[i]))
            if i < len(template.expressions):
                self.out("${")
                self.do_expr(template.expressions[i])
                self.out("}")
        self.out("`")

    def do_expr(self, expr, prec=PREC_SEQUENCE):
        if expression_precedence(expr) < prec:
            self.out("(")
            self.do_expr(expr)
            self.out(")")
            return

        t = expr.type
        if t == "Literal":
            self.do_literal(expr)

        elif t == "Identifier":
            self.out(expr.name)

        elif t == "ThisExpression":
            self.out("this")

        elif t == "Super":
            self.out("super")

        elif t == "Import":
            self.out("import")

        elif t == "MetaProperty":
            self.out(expr.meta.name + "." + expr.property.name)

        elif t in ("ArrayExpression", "ArrayPattern"):
            self.out("[")
            first = True
            for elem in expr.elements:
                if not first:
                    self.out(", ")
                first = False
                if elem is not None:
                    self.do_expr(elem, PREC_ASSIGNMENT)
            if len(expr.elements) > 0 and expr.elements[-1] is None:
                self.out(",")
            self.out("]")

        elif t in ("ObjectExpression", "ObjectPattern"):
            if len(expr.properties) == 0:
                self.out("{}")
                return
            self.out("{")
            first = True
            for prop in expr.properties:
                if not first:
                    self.out(", ")
                first = False
                self.do_property(prop)
            self.out("}")

        elif t == "FunctionExpression":
            self.do_function(expr)

        elif t == "ArrowFunctionExpression":
            if expr.isAsync:
                self.out("async ")
            self.do_params(expr.params)
            self.out(" => ")
            if expr.body.type == "BlockStatement":
                self.do_block(expr.body)
            elif leftmost(expr.body).type == "ObjectExpression":
                self.out("(")
                self.do_expr(expr.body)
                self.out(")")
            else:
                self.do_expr(expr.body, PREC_ASSIGNMENT)

        elif t == "ClassExpression":
            self.do_class(expr)

        elif t == "TemplateLiteral":
            self.do_template(expr)

        elif t == "TaggedTemplateExpression":
            self.do_expr(expr.tag, PREC_MEMBER)
            self.do_template(expr.quasi)

        elif t == "SequenceExpression":
            first = True
            for e in expr.expressions:
                if not first:
                    self.out(", ")
                first = False
                self.do_expr(e, PREC_YIELD)

        elif t == "YieldExpression":
            self.out("yield")
            if expr.delegate:
                self.out("*")
            if expr.argument is not None:
                self.out(" ")
                self.do_expr(expr.argument, PREC_YIELD)

        elif t in ("AssignmentExpression", "AssignmentPattern"):
            self.do_expr(expr.left, PREC_CONDITIONAL + 1)
            self.out(" " + (expr.operator or "=") + " ")
            self.do_expr(expr.right, PREC_ASSIGNMENT)

        elif t == "ConditionalExpression":
            self.do_expr(expr.test, PREC_CONDITIONAL + 1)
            self.out(" ? ")
            self.do_expr(expr.consequent, PREC_ASSIGNMENT)
            self.out(" : ")
            self.do_expr(expr.alternate, PREC_ASSIGNMENT)

        elif t in ("BinaryExpression", "LogicalExpression"):
            p = BINARY_PRECEDENCE[expr.operator]
            if expr.operator == "**":
                if expr.left.type in ("UnaryExpression", "AwaitExpression"):
                    self.out("(")
                    self.do_expr(expr.left)
                    self.out(")")
                else:
                    self.do_expr(expr.left, p + 1)
                self.out(" ** ")
                self.do_expr(expr.right, p)
            else:
                self.do_expr(expr.left, p)
                self.out(" " + expr.operator + " ")
                self.do_expr(expr.right, p + 1)

        elif t == "UnaryExpression":
            self.out(expr.operator)
            arg = expr.argument
            if expr.operator.isalpha():
                self.out(" ")
            elif arg.type in ("UnaryExpression", "UpdateExpression") and arg.operator[0] == expr.operator and (arg.type == "UnaryExpression" or arg.prefix):
                self.out(" ")
            self.do_expr(arg, PREC_UNARY)

        elif t == "AwaitExpression":
            self.out("await ")
            self.do_expr(expr.argument, PREC_UNARY)

        elif t == "UpdateExpression":
            if expr.prefix:
                self.out(expr.operator)
                self.do_expr(expr.argument, PREC_UPDATE)
            else:
                self.do_expr(expr.argument, PREC_UPDATE + 1)
                self.out(expr.operator)

        elif t == "SpreadElement" or t == "RestElement":
            self.out("...")
            self.do_expr(expr.argument, PREC_ASSIGNMENT)

        elif t == "CallExpression":
            self.do_expr(expr.callee, PREC_MEMBER)
            self.do_arguments(expr.arguments)

        elif t == "NewExpression":
            self.out("new ")
            if contains_call(expr.callee):
                self.out("(")
                self.do_expr(expr.callee)
                self.out(")")
            else:
                self.do_expr(expr.callee, PREC_MEMBER)
            self.do_arguments(expr.arguments)

        elif t == "MemberExpression":
            obj = expr.object
            if obj.type == "Literal" and type(obj.value) in (int, float) and obj.regex is None:
                self.out("(")
                self.do_expr(obj)
                self.out(")")
            else:
                self.do_expr(obj, PREC_MEMBER)
            if expr.computed:
                self.out("[")
                self.do_expr(expr.property)
                self.out("]")
            else:
                self.out("." + expr.property.name)

        else:
            raise ValueError("Expression type not handled: " + str(t))

    def do_variable_declaration(self, decl):
        self.out(decl.kind + " ")
        first = True
        for d in decl.declarations:
            if not first:
                self.out(", ")
            first = False
            self.do_expr(d.id, PREC_ASSIGNMENT)
            if d.init is not None:
                self.out(" = ")
                self.do_expr(d.init, PREC_ASSIGNMENT)

    def do_for_left(self, left):
        if left is None:
            return
        if left.type == "VariableDeclaration":
            self.do_variable_declaration(left)
        else:
            self.do_expr(left)

    def do_statement(self, statement):
        t = statement.type
        if t == "ExpressionStatement":
            expr = statement.expression
            if statement.directive is not None:
                self.do_expr(expr)
            elif leftmost(expr).type in ("FunctionExpression", "ClassExpression", "ObjectExpression", "ObjectPattern"):
                self.out("(")
                self.do_expr(expr)
                self.out(")")
            else:
                self.do_expr(expr)
            self.out(";")

        elif t == "VariableDeclaration":
            self.do_variable_declaration(statement)
            self.out(";")

        elif t == "FunctionDeclaration":
            self.do_function(statement)

        elif t == "ClassDeclaration":
            self.do_class(statement)

        elif t == "BlockStatement":
            self.do_block(statement)

        elif t == "EmptyStatement":
            self.out(";")

        elif t == "DebuggerStatement":
            self.out("debugger;")

        elif t == "ReturnStatement":
            self.out("return")
            if statement.argument is not None:
                self.out(" ")
                self.do_expr(statement.argument)
            self.out(";")

        elif t == "ThrowStatement":
            self.out("throw ")
            self.do_expr(statement.argument)
            self.out(";")

        elif t in ("BreakStatement", "ContinueStatement"):
            self.out("break" if t == "BreakStatement" else "continue")
            if statement.label is not None:
                self.out(" " + statement.label.name)
            self.out(";")

        elif t == "IfStatement":
            self.out("if (")
            self.do_expr(statement.test)
            self.out(")")
            consequent = statement.consequent
            if statement.alternate is not None and consequent.type == "IfStatement" and consequent.alternate is None:
                # avoid the dangling else binding to the inner if
                consequent = esprima.nodes.BlockStatement([consequent])
            self.do_body(consequent)
            if statement.alternate is not None:
                if consequent.type == "BlockStatement":
                    self.out(" ")
                else:
                    self.newline()
                self.out("else")
                if statement.alternate.type == "IfStatement":
                    self.out(" ")
                    self.do_statement(statement.alternate)
                else:
                    self.do_body(statement.alternate)

        elif t == "WhileStatement":
            self.out("while (")
            self.do_expr(statement.test)
            self.out(")")
            self.do_body(statement.body)

        elif t == "DoWhileStatement":
            self.out("do")
            self.do_body(statement.body)
            if statement.body.type == "BlockStatement":
                self.out(" ")
            else:
                self.newline()
            self.out("while (")
            self.do_expr(statement.test)
            self.out(");")

        elif t == "ForStatement":
            self.out("for (")
            self.do_for_left(statement.init)
            self.out(";")
            if statement.test is not None:
                self.out(" ")
                self.do_expr(statement.test)
            self.out(";")
            if statement.update is not None:
                self.out(" ")
                self.do_expr(statement.update)
            self.out(")")
            self.do_body(statement.body)

        elif t in ("ForInStatement", "ForOfStatement"):
            self.out("for (")
            self.do_for_left(statement.left)
            self.out(" in " if t == "ForInStatement" else " of ")
            self.do_expr(statement.right, PREC_ASSIGNMENT)
            self.out(")")
            self.do_body(statement.body)

        elif t == "LabeledStatement":
            self.out(statement.label.name + ":")
            self.do_body(statement.body)

        elif t == "WithStatement":
            self.out("with (")
            self.do_expr(statement.object)
            self.out(")")
            self.do_body(statement.body)

        elif t == "SwitchStatement":
            self.out("switch (")
            self.do_expr(statement.discriminant)
            self.out(") {")
            self.indent += self.INDENT
            for case in statement.cases:
                self.newline()
                if case.test is None:
                    self.out("default:")
                else:
                    self.out("case ")
                    self.do_expr(case.test)
                    self.out(":")
                self.indent += self.INDENT
                self.do_statement_list(case.consequent)
                self.indent -= self.INDENT
            self.indent -= self.INDENT
            self.newline()
            self.out("}")

        elif t == "TryStatement":
            self.out("try ")
            self.do_block(statement.block)
            if statement.handler is not None:
                self.out(" catch ")
                if statement.handler.param is not None:
                    self.out("(")
                    self.do_expr(statement.handler.param)
                    self.out(") ")
                self.do_block(statement.handler.body)
            if statement.finalizer is not None:
                self.out(" finally ")
                self.do_block(statement.finalizer)

        elif t == "ImportDeclaration":
            self.out("import ")
            default = [s for s in statement.specifiers if s.type == "ImportDefaultSpecifier"]
            namespace = [s for s in statement.specifiers if s.type == "ImportNamespaceSpecifier"]
            named = [s for s in statement.specifiers if s.type == "ImportSpecifier"]
            parts = []
            for s in default:
                parts.append(s.local.name)
            for s in namespace:
                parts.append("* as " + s.local.name)
            if len(named) > 0:
                parts.append("{" + ", ".join(self.specifier(s.imported, s.local) for s in named) + "}")
            if len(parts) > 0:
                self.out(", ".join(parts) + " from ")
            self.do_literal(statement.source)
            self.out(";")

        elif t == "ExportNamedDeclaration":
            self.out("export ")
            if statement.declaration is not None:
                self.do_statement(statement.declaration)
            else:
                self.out("{" + ", ".join(self.specifier(s.local, s.exported) for s in statement.specifiers) + "}")
                if statement.source is not None:
                    self.out(" from ")
                    self.do_literal(statement.source)
                self.out(";")

        elif t == "ExportDefaultDeclaration":
            self.out("export default ")
            decl = statement.declaration
            if decl.type in ("FunctionDeclaration", "ClassDeclaration"):
                self.do_statement(decl)
            else:
                self.do_expr(decl, PREC_ASSIGNMENT)
                self.out(";")

        elif t == "ExportAllDeclaration":
            self.out("export * from ")
            self.do_literal(statement.source)
            self.out(";")

        else:
            raise ValueError("Statement type not handled: " + str(t))

    def specifier(self, inner, outer):
        if inner.name == outer.name:
            return inner.name
        return inner.name + " as " + outer.name


STATEMENT_TYPES = set([
    "ExpressionStatement", "VariableDeclaration", "FunctionDeclaration", "ClassDeclaration", "BlockStatement",
    "EmptyStatement", "DebuggerStatement", "ReturnStatement", "ThrowStatement", "BreakStatement",
    "ContinueStatement", "IfStatement", "WhileStatement", "DoWhileStatement", "ForStatement", "ForInStatement",
    "ForOfStatement", "LabeledStatement", "WithStatement", "SwitchStatement", "TryStatement",
    "ImportDeclaration", "ExportNamedDeclaration", "ExportDefaultDeclaration", "ExportAllDeclaration",
])


def is_expression(node) -> bool:
    return node.type not in STATEMENT_TYPES and node.type != "Program"


def beautify(code : str) -> str:
    options = jsbeautifier.default_options()
    options.indent_size = 4
    options.end_with_newline = False
    return jsbeautifier.beautify(code, options)


def generate(node : esprima.nodes.Node, pretty : bool = False) -> str:
    """
    Prints a program, statement or expression node as JS source.

    :param esprima.nodes.Node node: The node to print
    :param bool pretty: Run the result through jsbeautifier
    :rtype str:
    """
    code = Output(node).dump()
    if pretty:
        return beautify(code)
    return code
