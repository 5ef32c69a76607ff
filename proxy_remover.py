"""
Inlines proxy functions, i.e. functions whose whole body returns one simple expression:

    function _0x1a(a, b) { return a + b; }
    console.log(_0x1a(1, 2));   ->   console.log(1 + 2);

Proxies that call each other in a cycle are never inlined nor removed.
"""
import esprima
from code_transformers import ScopedTransform, IdentifierSubstitution
from node_tools import iter_children, replace_in_parent, duplicate_expression, is_variable_reference, \
    is_write_target, FUNCTION_TYPES
from graph import Graph
from scope import Scope
from debug import verbose, debug
import config

PROXY_EXPRESSION_TYPES = ("CallExpression", "BinaryExpression", "LogicalExpression", "UnaryExpression",
                          "MemberExpression", "Identifier", "Literal")

FORBIDDEN_TYPES = ("FunctionExpression", "ArrowFunctionExpression", "FunctionDeclaration", "ClassExpression",
                   "BlockStatement", "ThisExpression", "Super", "MetaProperty", "YieldExpression", "AwaitExpression")


def get_return_expression(fn : esprima.nodes.Node):
    """
    Returns the expression returned by a function whose body is a single return statement, or None
    """
    if fn.type == "ArrowFunctionExpression" and fn.body.type != "BlockStatement":
        return fn.body
    body = fn.body.body
    if len(body) != 1 or body[0].type != "ReturnStatement":
        return None
    return body[0].argument


def is_inlinable_expression(expr) -> bool:
    if expr.type in FORBIDDEN_TYPES:
        return False
    if expr.type == "Identifier" and expr.name == "arguments":
        return False
    for child in iter_children(expr):
        if not is_inlinable_expression(child):
            return False
    return True


def is_proxy_function(fn) -> bool:
    if fn is None or fn.type not in FUNCTION_TYPES or fn.generator or fn.isAsync:
        return False
    if any(p.type != "Identifier" for p in fn.params):
        return False
    if len(set(p.name for p in fn.params)) != len(fn.params):
        return False
    expr = get_return_expression(fn)
    if expr is None or expr.type not in PROXY_EXPRESSION_TYPES:
        return False
    if expr.type == "MemberExpression" and not expr.computed:
        return False
    return is_inlinable_expression(expr)


def is_duplicable(arg) -> bool:
    """
    True for the arguments that may be evaluated any number of times
    """
    if arg.type in ("Literal", "Identifier"):
        return True
    if arg.type == "UnaryExpression" and arg.operator in ("-", "+", "!", "~"):
        return is_duplicable(arg.argument)
    return False


class ArgumentFactory(object):
    """
    Supplies a call argument to the substitution: the argument node itself the first time, copies afterwards
    """
    def __init__(self, arg):
        self.arg = arg
        self.uses = 0

    def __call__(self):
        self.uses += 1
        if self.uses == 1:
            return self.arg
        return duplicate_expression(self.arg)


class ProxyFunction(object):
    def __init__(self, id : int, node, declaration, holder, scope : Scope, name : str):
        """
        :param int id: Key of this proxy in the call graph
        :param esprima.nodes.Node node: The function node
        :param esprima.nodes.Node declaration: The node to remove (the function declaration, or the variable declarator)
        :param esprima.nodes.Node holder: The parent of declaration
        :param Scope scope: The scope the function was found in
        :param str name: The function name
        """
        self.id = id
        self.node = node
        self.declaration = declaration
        self.holder = holder
        self.scope = scope
        self.name = name
        self.params = [p.name for p in node.params]
        self.aliases = []
        self.cyclic = False
        self.retained = False
        self.reassigned = False
        self.exported = False

    @property
    def expression(self):
        return get_return_expression(self.node)

    def function_scope(self) -> Scope:
        return self.scope.get_child(self.node)

    def __repr__(self):
        return "ProxyFunction(" + self.name + ", " + str(self.params) + ")"


class ProxyRemover(ScopedTransform):
    DISCOVER = 1
    ALIAS = 2
    INLINE = 3

    def __init__(self, ast, remove_proxy_functions : bool = True):
        super().__init__(ast, "Proxy Remover")
        self.remove_proxy_functions = remove_proxy_functions
        self.proxies = []
        self.graph = Graph()
        self.stage = None
        self.exported_declarations = set()

    def lookup(self, name, scope=None):
        binding = (scope or self.scope).get(name)
        if isinstance(binding, ProxyFunction):
            return binding
        return None

    def add_proxy(self, fn, declaration, holder, name, kind):
        proxy = ProxyFunction(len(self.proxies), fn, declaration, holder, self.scope, name)
        proxy.exported = id(holder) in self.exported_declarations or holder.type.startswith("Export")
        self.proxies.append(proxy)
        self.graph.add_node(proxy.id)
        self.scope.add(name, proxy, kind)
        debug("Found proxy function", proxy)

    def discover(self, node, parent):
        if node.type == "ExportNamedDeclaration" and node.declaration is not None:
            self.exported_declarations.add(id(node.declaration))
        elif node.type == "FunctionDeclaration" and node.id is not None and is_proxy_function(node):
            self.add_proxy(node, node, parent, node.id.name, "function")
        elif node.type == "VariableDeclarator" and node.id.type == "Identifier" and is_proxy_function(node.init):
            self.add_proxy(node.init, node, parent, node.id.name, parent.kind)

    def find_alias(self, node, parent):
        if node.type != "VariableDeclarator" or node.id.type != "Identifier" or node.init is None or \
                node.init.type != "Identifier":
            return
        proxy = self.lookup(node.init.name)
        if proxy is None or node.id.name == proxy.name:
            return
        scope = self.scope.declaration_scope(parent.kind)
        if scope.get_own(node.id.name) is node.id:
            scope.remove(node.id.name)
        self.scope.add(node.id.name, proxy, parent.kind)
        proxy.aliases.append((node, parent))
        if id(parent) in self.exported_declarations:
            proxy.exported = True
        debug("Found alias", node.id.name, "of", proxy.name)

    def is_declaring_identifier(self, node, parent, proxy) -> bool:
        if parent is proxy.node or parent is proxy.declaration:
            return True
        for declarator, holder in proxy.aliases:
            if parent is declarator:
                return True
        return False

    def before_node(self, node, parent):
        if self.stage == ProxyRemover.DISCOVER:
            self.discover(node, parent)
        elif self.stage == ProxyRemover.ALIAS:
            self.find_alias(node, parent)
            if node.type == "Identifier" and parent is not None and is_variable_reference(node, parent) and \
                    is_write_target(node, parent):
                proxy = self.lookup(node.name)
                if proxy is not None:
                    debug("Proxy function", proxy.name, "is reassigned")
                    proxy.reassigned = True
        elif self.stage == ProxyRemover.INLINE and node.type == "Identifier" and is_variable_reference(node, parent):
            proxy = self.lookup(node.name)
            if proxy is not None and not (parent.type == "CallExpression" and parent.callee is node) and \
                    not self.is_declaring_identifier(node, parent, proxy):
                # the function escapes (passed around, reassigned...)
                proxy.retained = True
        return True

    def after_node(self, node, parent):
        if self.stage != ProxyRemover.INLINE or parent is None:
            return
        if node.type != "CallExpression" or node.callee.type != "Identifier":
            return
        proxy = self.lookup(node.callee.name)
        if proxy is None or proxy.cyclic or proxy.reassigned:
            return
        replacement = self.get_replacement(proxy, node.arguments, 0)
        if replacement is None:
            proxy.retained = True
            return
        replace_in_parent(parent, node, replacement)
        self.changed()

    def get_replacement(self, proxy : ProxyFunction, args, depth : int):
        """
        Builds the expression that replaces a call of proxy: a fresh copy of its returned expression, with the
        parameters substituted by the arguments and the nested proxy calls inlined.

        :rtype esprima.nodes.Node:
        :return: The replacement, or None if the call cannot be inlined
        """
        if depth > config.max_inline_depth:
            debug("Maximum inline depth reached in", proxy.name)
            return None
        if any(a is None or a.type == "SpreadElement" for a in args):
            return None

        if self.captures_names(proxy):
            debug("Names used by", proxy.name, "are shadowed at the call site")
            return None

        expression = duplicate_expression(proxy.expression)

        substitutions = {}
        factories = []
        for i in range(len(proxy.params)):
            if i < len(args):
                factory = ArgumentFactory(args[i])
                factories.append(factory)
                substitutions[proxy.params[i]] = factory
            else:
                substitutions[proxy.params[i]] = lambda: esprima.nodes.Identifier("undefined")
        # extra arguments are dropped
        factories.extend(ArgumentFactory(a) for a in args[len(proxy.params):])

        if expression.type == "Identifier" and expression.name in substitutions:
            expression = substitutions[expression.name]()
            opaque = set([id(expression)])
        else:
            subst = IdentifierSubstitution(expression, substitutions)
            subst.do_node(expression, None)
            opaque = set(id(n) for n in subst.inserted)

        for factory in factories:
            if factory.uses != 1 and not is_duplicable(factory.arg):
                debug("Argument of", proxy.name, "would not be evaluated exactly once")
                return None

        return self.inline_nested(proxy, expression, None, opaque, depth)

    def captures_names(self, proxy : ProxyFunction) -> bool:
        """
        Tells whether a free name of the proxy expression resolves to another binding at the call site
        """
        scope = proxy.function_scope()
        stack = [(proxy.expression, None)]
        while len(stack) > 0:
            n, parent = stack.pop()
            if n.type == "Identifier" and is_variable_reference(n, parent) and n.name not in proxy.params:
                if self.scope.get(n.name) is not scope.get(n.name):
                    return True
            stack.extend((child, n) for child in iter_children(n))
        return False

    def inline_nested(self, proxy, expr, parent, opaque, depth):
        if id(expr) in opaque:
            return expr
        for child in list(iter_children(expr)):
            self.inline_nested(proxy, child, expr, opaque, depth)
        if expr.type != "CallExpression" or expr.callee.type != "Identifier" or expr.callee.name in proxy.params:
            return expr
        target = self.lookup(expr.callee.name, proxy.function_scope())
        if target is None or target.cyclic or target.reassigned:
            return expr
        replacement = self.get_replacement(target, expr.arguments, depth + 1)
        if replacement is None:
            target.retained = True
            return expr
        if parent is not None:
            replace_in_parent(parent, expr, replacement)
        return replacement

    def build_call_graph(self) -> None:
        for proxy in self.proxies:
            scope = proxy.function_scope()
            stack = [proxy.expression]
            while len(stack) > 0:
                n = stack.pop()
                if n.type == "CallExpression" and n.callee.type == "Identifier" and n.callee.name not in proxy.params:
                    target = self.lookup(n.callee.name, scope)
                    if target is not None:
                        self.graph.add_edge(proxy.id, target.id)
                stack.extend(iter_children(n))
        self.graph.mark_cycles()
        for proxy in self.proxies:
            proxy.cyclic = self.graph.is_cyclic(proxy.id)
            if proxy.cyclic:
                debug("Cyclic proxy function", proxy.name)

    def remove_proxies(self) -> None:
        for proxy in self.proxies:
            if proxy.cyclic or proxy.retained or proxy.exported or proxy.reassigned:
                continue
            if replace_in_parent(proxy.holder, proxy.declaration, None):
                self.changed()
            for declarator, holder in proxy.aliases:
                replace_in_parent(holder, declarator, None)

    def run(self) -> int:
        verbose("Applying code transform: " + self.name)
        self.count = 0
        for stage in (ProxyRemover.DISCOVER, ProxyRemover.ALIAS):
            self.stage = stage
            self.walk()
        if len(self.proxies) == 0:
            return 0
        self.build_call_graph()
        self.stage = ProxyRemover.INLINE
        self.walk()
        verbose("  " + str(self.count) + " proxy calls inlined")
        if self.remove_proxy_functions:
            self.remove_proxies()
        return self.count
