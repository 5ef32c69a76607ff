import re
import esprima
from node_tools import iter_children, find_slot, replace_in_parent, is_boolean_literal, is_string_literal, \
    is_variable_reference, get_binding_identifiers, is_function_body, FUNCTION_TYPES
from scope import Scope, ScopeType
from debug import verbose

IDENTIFIER_NAME = re.compile(r'^(?:[^\W\d]|\$)(?:\w|\$)*$')

LEXICAL_DECLARATIONS = ("ClassDeclaration", "FunctionDeclaration")


class CodeTransform(object):
    """
    Helper class for any AST transformation. The methods before_node and after_node are meant to be overloaded by
    subclasses.
    """
    def __init__(self, ast : esprima.nodes.Node = None, name : str = None):
        """
        Class constructor
        """

        self.ast : esprima.nodes.Node = ast
        """The AST on which this transformation operates"""

        self.name : str = name
        """The name of this transformation"""

        self.pass_num : int = 1
        """The number of times this pass has been performed"""

        self.count : int = 0
        """Number of changes made during the last run"""

    def before_node(self, node : esprima.nodes.Node, parent : esprima.nodes.Node) -> bool:
        """
        Called before a node. If the method returns false, the children of the node are not processed.

        :param esprima.nodes.Node node: The node
        :param esprima.nodes.Node parent: Its parent, None for the root
        :rtype bool:
        :return: True to process the children, False otherwise
        """
        return True

    def after_node(self, node : esprima.nodes.Node, parent : esprima.nodes.Node) -> None:
        """
        Called once every child of the node has been processed. The node may be replaced in its parent from here.
        """
        return None

    def enter_node(self, node, parent):
        return None

    def leave_node(self, node, parent):
        return None

    def do_node(self, node : esprima.nodes.Node, parent : esprima.nodes.Node = None) -> None:
        if not self.before_node(node, parent):
            return
        self.enter_node(node, parent)
        # snapshot: hooks may splice siblings
        for child in list(iter_children(node)):
            self.do_node(child, node)
        self.leave_node(node, parent)
        self.after_node(node, parent)

    def changed(self, n : int = 1) -> None:
        self.count += n

    def run(self) -> int:
        if self.name is not None:
            if self.pass_num > 1:
                verbose("Applying code transform: " + str(self.name) + " (pass " + str(self.pass_num) + ")")
            else:
                verbose("Applying code transform: " + str(self.name))
        self.count = 0
        self.do_node(self.ast, None)
        self.pass_num += 1
        return self.count


class ScopedTransform(CodeTransform):
    """
    A CodeTransform that keeps track of the current lexical scope.

    The first walk creates the scopes; later walks re-enter the scope that was created for each node. When
    register_declarations is set, every declared name is registered (as its declaring Identifier node) unless the
    transformation already registered its own binding for it, so that lookups respect shadowing.
    """
    def __init__(self, ast : esprima.nodes.Node, name : str = None, register_declarations : bool = True):
        super().__init__(ast, name)
        self.global_scope : Scope = Scope(ast, ScopeType.GLOBAL)
        self.scope : Scope = self.global_scope
        self.register_declarations : bool = register_declarations

    def scope_type(self, node, parent):
        """
        Returns the type of the scope created by node, or None if node does not create one
        """
        if parent is None and node is self.ast:
            return ScopeType.GLOBAL
        if node.type in FUNCTION_TYPES:
            return ScopeType.FUNCTION
        if node.type == "BlockStatement":
            if is_function_body(node, parent):
                return None
            return ScopeType.BLOCK
        if node.type in ("CatchClause", "ForStatement", "ForInStatement", "ForOfStatement", "SwitchStatement", "ClassBody"):
            return ScopeType.BLOCK
        return None

    def declare(self, ident, kind):
        """
        Registers a declared Identifier under its name

        :param esprima.nodes.Node ident: The declaring Identifier
        :param str kind: The declaration kind
        """
        self.scope.add_if_absent(ident.name, ident, kind)

    def declare_outer(self, node, parent):
        """
        Declarations that belong to the scope enclosing node
        """
        if node.type == "VariableDeclarator" and parent is not None and parent.type == "VariableDeclaration":
            for ident in get_binding_identifiers(node.id):
                self.declare(ident, parent.kind)
        elif node.type in LEXICAL_DECLARATIONS and node.id is not None:
            self.declare(node.id, "function" if node.type == "FunctionDeclaration" else "let")
        elif node.type in ("ImportSpecifier", "ImportDefaultSpecifier", "ImportNamespaceSpecifier"):
            self.declare(node.local, "const")

    def declare_inner(self, node):
        """
        Declarations that belong to the scope created by node
        """
        if node.type in FUNCTION_TYPES:
            for p in node.params:
                for ident in get_binding_identifiers(p):
                    self.declare(ident, "param")
            if node.type == "FunctionExpression" and node.id is not None:
                self.declare(node.id, "function")
        elif node.type == "CatchClause" and node.param is not None:
            for ident in get_binding_identifiers(node.param):
                self.declare(ident, "let")

    def enter_node(self, node, parent):
        if self.register_declarations:
            self.declare_outer(node, parent)
        st = self.scope_type(node, parent)
        if st is None:
            return
        if st == ScopeType.GLOBAL:
            self.scope = self.global_scope
        else:
            child = self.scope.get_child(node)
            if child is None:
                child = self.scope.add_child(node, st)
            self.scope = child
        if self.register_declarations:
            self.declare_inner(node)

    def leave_node(self, node, parent):
        if self.scope.node is node and self.scope.parent is not None:
            self.scope = self.scope.parent

    def walk(self) -> None:
        self.scope = self.global_scope
        self.do_node(self.ast, None)


class IdentifierSubstitution(CodeTransform):
    """
    Replaces the variable references named in a {name: replacement} dictionary. A replacement is either a
    string (the identifier is renamed) or a node factory called for every occurrence.
    """
    def __init__(self, ast, substitutions):
        super().__init__(ast)
        self.substitutions = substitutions
        self.inserted = []

    def before_node(self, node, parent):
        if node.type == "Identifier" and node.name in self.substitutions and is_variable_reference(node, parent):
            subst = self.substitutions[node.name]
            if isinstance(subst, str):
                node.name = subst
            else:
                replacement = subst()
                replace_in_parent(parent, node, replacement)
                self.inserted.append(replacement)
            self.changed()
            return False
        return True


def contains_lexical_declaration(statements) -> bool:
    for st in statements:
        if st.type == "VariableDeclaration" and st.kind in ("let", "const"):
            return True
        if st.type in LEXICAL_DECLARATIONS:
            return True
    return False


class DeadBranchRemover(CodeTransform):
    """
    Replaces if statements and conditional expressions whose test is a boolean literal with the branch that
    is taken.
    """
    def __init__(self, ast):
        super().__init__(ast, "Dead Branch Remover")

    def after_node(self, node, parent):
        if parent is None:
            return
        if node.type == "ConditionalExpression" and is_boolean_literal(node.test):
            replace_in_parent(parent, node, node.consequent if node.test.value else node.alternate)
            self.changed()
        elif node.type == "IfStatement" and is_boolean_literal(node.test):
            chosen = node.consequent if node.test.value else node.alternate
            slot = find_slot(parent, node)
            if slot is None:
                return
            name, is_list = slot
            if chosen is None:
                if is_list or name == "alternate":
                    replace_in_parent(parent, node, None)
                else:
                    replace_in_parent(parent, node, esprima.nodes.EmptyStatement())
            elif chosen.type == "BlockStatement" and is_list and not contains_lexical_declaration(chosen.body):
                replace_in_parent(parent, node, list(chosen.body))
            else:
                replace_in_parent(parent, node, chosen)
            self.changed()


class PropertySimplifier(CodeTransform):
    """
    Rewrites obj["name"] into obj.name when name is a valid identifier name
    """
    def __init__(self, ast):
        super().__init__(ast, "Property Simplifier")

    def after_node(self, node, parent):
        if node.type == "MemberExpression" and node.computed and is_string_literal(node.property) and \
                IDENTIFIER_NAME.match(node.property.value) is not None:
            node.property = esprima.nodes.Identifier(node.property.value)
            node.computed = False
            self.changed()


class Cleanup(CodeTransform):
    """
    Removes the variable declarations left without any declarator by the other transformations
    """
    def __init__(self, ast):
        super().__init__(ast, "Cleanup")

    def after_node(self, node, parent):
        if parent is None:
            return
        if node.type == "VariableDeclaration" and len(node.declarations) == 0:
            slot = find_slot(parent, node)
            if slot is None:
                return
            name, is_list = slot
            if is_list or (parent.type == "ForStatement" and name == "init"):
                replace_in_parent(parent, node, None)
                self.changed()
            elif parent.type == "ExportNamedDeclaration":
                pass
            else:
                replace_in_parent(parent, node, esprima.nodes.EmptyStatement())
                self.changed()
        elif node.type == "ExportNamedDeclaration" and node.declaration is not None and \
                node.declaration.type == "VariableDeclaration" and len(node.declaration.declarations) == 0:
            replace_in_parent(parent, node, None)
            self.changed()
