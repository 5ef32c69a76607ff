"""
Pre-executes the functions marked with a "#execute" directive and replaces their calls with the result.

    function decode(s) { "#execute"; return s.split("").reverse().join(""); }
    console.log(decode("olleh"));   ->   console.log("hello");

A function expression is named with "#execute[name=X]", or takes the name of the variable it initialises.
"""
import re
import uuid
import esprima
from code_transformers import ScopedTransform, IdentifierSubstitution
from node_tools import replace_in_parent, make_literal, node_copy, is_variable_reference, FUNCTION_TYPES
from output import generate
from jseval import Sandbox
from errors import EvaluationError
from debug import verbose, debug

DIRECTIVE_NAME = re.compile(r'#execute\[name=(.*)\]')


def get_execute_directive(fn):
    """
    Returns the "#execute" directive statement heading the body of fn, or None
    """
    if fn.body is None or fn.body.type != "BlockStatement":
        return None
    for st in fn.body.body:
        if st.type != "ExpressionStatement" or st.directive is None:
            break
        if st.directive.startswith("#execute"):
            return st
    return None


class ExecutedFunction(object):
    def __init__(self, node, declaration, holder, name : str):
        """
        :param esprima.nodes.Node node: The function node
        :param esprima.nodes.Node declaration: The node removed once every call is replaced
        :param esprima.nodes.Node holder: The parent of declaration
        :param str name: The name the function is called by
        """
        self.node = node
        self.declaration = declaration
        self.holder = holder
        self.name = name
        self.id = uuid.uuid4().hex
        self.failed_replacement = False
        self.errored = False

        self.retained = False
        """The function is referenced other than by a call (e.g. passed as a value), so it is kept"""

    @property
    def synthetic_name(self) -> str:
        return "EXECUTED_FUNCTION_" + self.id

    def build_declaration(self) -> esprima.nodes.Node:
        """
        Builds a standalone declaration of the function under its synthetic name, without the directive, in
        which references to the function itself use the synthetic name.
        """
        fn = self.node
        if fn.type == "ArrowFunctionExpression" and fn.body.type != "BlockStatement":
            statements = [esprima.nodes.ReturnStatement(node_copy(fn.body))]
        else:
            statements = [node_copy(st) for st in fn.body.body if not (st.type == "ExpressionStatement" and
                          st.directive is not None and st.directive.startswith("#execute"))]
        body = esprima.nodes.BlockStatement(statements)
        decl = esprima.nodes.FunctionDeclaration(esprima.nodes.Identifier(self.synthetic_name),
                                                 node_copy(fn.params), body, False)
        if self.name is not None:
            IdentifierSubstitution(decl, {self.name: self.synthetic_name}).run()
        return decl

    def register(self, sandbox : Sandbox) -> None:
        try:
            sandbox.register_function(generate(self.build_declaration()))
        except EvaluationError as e:
            verbose("Could not evaluate function", self.name, ":", e)
            self.errored = True

    def get_call(self, sandbox : Sandbox, args):
        """
        Evaluates a call of the function with the given argument expressions

        :rtype esprima.nodes.Node:
        :return: The literal node holding the result, or None
        """
        if self.errored:
            return None
        code = self.synthetic_name + "(" + ", ".join(generate(a) for a in args) + ")"
        try:
            value = sandbox.evaluate(code)
        except EvaluationError as e:
            verbose("Call of", self.name, "failed:", e)
            return None
        return make_literal(value)


class FunctionExecutor(ScopedTransform):
    FIND = 1
    ALIAS = 2
    REPLACE = 3

    def __init__(self, ast, sandbox : Sandbox = None):
        super().__init__(ast, "Function Executor")
        self.sandbox = sandbox
        self.functions = []
        self.stage = None

    def get_sandbox(self) -> Sandbox:
        if self.sandbox is None:
            self.sandbox = Sandbox()
        return self.sandbox

    def lookup(self, name):
        binding = self.scope.get(name)
        if isinstance(binding, ExecutedFunction):
            return binding
        return None

    def find(self, node, parent):
        if node.type == "FunctionDeclaration":
            self.add_function(node, node, parent, node.id.name if node.id is not None else None, "function")
        elif node.type == "VariableDeclarator" and node.init is not None and node.init.type in FUNCTION_TYPES:
            name = node.id.name if node.id.type == "Identifier" else None
            self.add_function(node.init, node, parent, name, parent.kind)
        elif node.type in FUNCTION_TYPES and not (parent is not None and parent.type == "VariableDeclarator"
                                                   and parent.init is node):
            self.add_function(node, None, None, None, "function")

    def add_function(self, fn, declaration, holder, default_name, kind):
        directive = get_execute_directive(fn)
        if directive is None:
            return
        name = default_name
        if fn.type != "FunctionDeclaration":
            m = DIRECTIVE_NAME.match(directive.directive)
            if m is not None:
                name = m.group(1)
        if name is None:
            debug("Ignoring unnamed executed function")
            return
        executed = ExecutedFunction(fn, declaration, holder, name)
        executed.register(self.get_sandbox())
        self.functions.append(executed)
        self.scope.add(name, executed, kind)
        debug("Found executed function", name)

    def find_alias(self, node, parent):
        if node.type != "VariableDeclarator" or node.id.type != "Identifier" or node.init is None or \
                node.init.type != "Identifier":
            return
        executed = self.lookup(node.init.name)
        if executed is None or executed.name == node.id.name:
            return
        scope = self.scope.declaration_scope(parent.kind)
        if scope.get_own(node.id.name) is node.id:
            scope.remove(node.id.name)
        self.scope.add(node.id.name, executed, parent.kind)
        replace_in_parent(parent, node, None)
        debug("Found alias", node.id.name, "of executed function", executed.name)

    def before_node(self, node, parent):
        if self.stage == FunctionExecutor.FIND:
            self.find(node, parent)
        elif self.stage == FunctionExecutor.ALIAS:
            self.find_alias(node, parent)
        elif self.stage == FunctionExecutor.REPLACE:
            if node.type in FUNCTION_TYPES and self.is_executed(node):
                # calls inside an executed function go away with it
                return False
            if node.type == "Identifier":
                self.mark_escaping(node, parent)
        return True

    def mark_escaping(self, node, parent):
        if not is_variable_reference(node, parent):
            return
        if parent is not None and parent.type == "CallExpression" and parent.callee is node:
            return
        if parent is not None and parent.type == "VariableDeclarator" and parent.id is node:
            return
        executed = self.lookup(node.name)
        if executed is not None:
            debug("Executed function", executed.name, "escapes, keeping it")
            executed.retained = True

    def is_executed(self, fn) -> bool:
        return any(executed.node is fn for executed in self.functions)

    def after_node(self, node, parent):
        if self.stage != FunctionExecutor.REPLACE or parent is None:
            return
        if node.type != "CallExpression" or node.callee.type != "Identifier":
            return
        executed = self.lookup(node.callee.name)
        if executed is None:
            return
        replacement = executed.get_call(self.get_sandbox(), node.arguments)
        if replacement is None:
            executed.failed_replacement = True
            return
        replace_in_parent(parent, node, replacement)
        self.changed()

    def remove_functions(self) -> None:
        for executed in self.functions:
            if executed.failed_replacement or executed.errored or executed.retained or executed.declaration is None:
                continue
            if executed.holder is None or executed.holder.type.startswith("Export"):
                continue
            replace_in_parent(executed.holder, executed.declaration, None)

    def run(self) -> int:
        verbose("Applying code transform: " + self.name)
        self.count = 0
        self.stage = FunctionExecutor.FIND
        self.walk()
        if len(self.functions) == 0:
            return 0
        for stage in (FunctionExecutor.ALIAS, FunctionExecutor.REPLACE):
            self.stage = stage
            self.walk()
        self.remove_functions()
        verbose("  " + str(self.count) + " calls of executed functions replaced")
        return self.count
