"""
Lexical scopes shared by all the transformations.

A Scope maps names to bindings. Bindings are opaque to this module: each transformation stores its own
objects (literal arrays, proxy functions, variables...). Declarations are hoisted according to their kind.
"""
import esprima
from errors import StructuralError
from typing import Dict, Optional


class ScopeType(object):
    GLOBAL = "global"
    FUNCTION = "function"
    BLOCK = "block"


BLOCK_SCOPED_KINDS = ("let", "const")
"""Declaration kinds that may not be redeclared in the same scope"""


class Scope(object):
    def __init__(self, node : esprima.nodes.Node, scope_type : str, parent : 'Scope' = None):
        """
        Class constructor

        :param esprima.nodes.Node node: The node that created this scope
        :param str scope_type: One of the ScopeType constants
        :param Scope parent: The enclosing scope, None for the global scope
        """
        self.node : esprima.nodes.Node = node
        self.type : str = scope_type
        self.parent : Optional[Scope] = parent

        self.children : Dict[int, Scope] = {}
        """Child scopes, keyed by the id() of the node that created them"""

        self.bindings : Dict[str, object] = {}
        self.kinds : Dict[str, str] = {}

    def __repr__(self):
        return "Scope(" + self.type + ", " + str(self.node.type) + ", " + str(list(self.bindings.keys())) + ")"

    def add_child(self, node : esprima.nodes.Node, scope_type : str) -> 'Scope':
        child = Scope(node, scope_type, self)
        self.children[id(node)] = child
        return child

    def get_child(self, node : esprima.nodes.Node) -> Optional['Scope']:
        return self.children.get(id(node))

    def iter_children(self):
        return iter(list(self.children.values()))

    def find_scope(self, types) -> Optional['Scope']:
        """
        Returns the closest scope (starting with this one) whose type is in types
        """
        scope = self
        while scope is not None and scope.type not in types:
            scope = scope.parent
        return scope

    def global_scope(self) -> 'Scope':
        scope = self
        while scope.parent is not None:
            scope = scope.parent
        return scope

    def declaration_scope(self, kind : Optional[str]) -> 'Scope':
        """
        Returns the scope a declaration of the given kind belongs to.

        :param str kind: var, let, const, function, param, global, or None (unkeyed)
        :rtype Scope:
        """
        if kind == "global":
            return self.global_scope()
        if kind is None or kind == "var":
            scope = self.find_scope((ScopeType.FUNCTION, ScopeType.GLOBAL))
            if scope is None:
                raise StructuralError("No function or global scope above " + repr(self))
            return scope
        return self

    def add(self, name : str, binding, kind : Optional[str] = None) -> 'Scope':
        """
        Registers a binding, hoisting it according to its declaration kind.

        :param str name: The declared name
        :param binding: The pass-specific binding
        :param str kind: The declaration kind
        :rtype Scope:
        :return: The scope the binding was registered in
        :raises StructuralError: if a block-scoped declaration conflicts with another binding
        """
        scope = self.declaration_scope(kind)
        existing = scope.bindings.get(name)
        if existing is not None and existing is not binding:
            if kind in BLOCK_SCOPED_KINDS or scope.kinds.get(name) in BLOCK_SCOPED_KINDS:
                raise StructuralError("Identifier '" + name + "' has already been declared")
        scope.bindings[name] = binding
        if existing is None or kind in BLOCK_SCOPED_KINDS:
            scope.kinds[name] = kind
        return scope

    def add_if_absent(self, name : str, binding, kind : Optional[str] = None) -> 'Scope':
        """
        Same as add(), but keeps any binding already registered under that name
        """
        scope = self.declaration_scope(kind)
        if name not in scope.bindings:
            scope.bindings[name] = binding
            scope.kinds[name] = kind
        return scope

    def get_own(self, name : str):
        return self.bindings.get(name)

    def get(self, name : str):
        """
        Looks a name up in this scope and its ancestors

        :return: The binding, or None if the name is not declared
        """
        scope = self.lookup_scope(name)
        if scope is None:
            return None
        return scope.bindings[name]

    def lookup_scope(self, name : str) -> Optional['Scope']:
        scope = self
        while scope is not None:
            if name in scope.bindings:
                return scope
            scope = scope.parent
        return None

    def remove(self, name : str) -> None:
        self.bindings.pop(name, None)
        self.kinds.pop(name, None)
