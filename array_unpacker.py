"""
Replaces indexed reads into constant literal arrays with the element they read.

    var _0x1 = [10, 20, 30]; console.log(_0x1[1]);   ->   console.log(20);
"""
import esprima
from code_transformers import ScopedTransform
from node_tools import is_literal, is_number_literal, node_copy, replace_in_parent, is_variable_reference, \
    is_write_target
from debug import verbose, debug
import config


class Array(object):
    def __init__(self, declaration : esprima.nodes.Node, parent : esprima.nodes.Node, name : str):
        """
        :param esprima.nodes.Node declaration: The VariableDeclarator
        :param esprima.nodes.Node parent: The VariableDeclaration holding it
        :param str name: The array name
        """
        self.declaration = declaration
        self.parent = parent
        self.name = name
        self.replace_count : int = 0

        self.unsafe : bool = False
        """The array may be modified or reach code we cannot see, so it is never unpacked"""

        self.references : int = 0

    @property
    def elements(self):
        return self.declaration.init.elements

    def __repr__(self):
        return "Array(" + self.name + ", " + str(len(self.elements)) + " elements)"


def is_constant_expression(node) -> bool:
    if node is None:
        return False
    if is_literal(node):
        return True
    if node.type == "UnaryExpression":
        return is_constant_expression(node.argument)
    if node.type == "BinaryExpression":
        return is_constant_expression(node.left) and is_constant_expression(node.right)
    return False


def is_literal_array_declarator(node) -> bool:
    return node.type == "VariableDeclarator" and node.id.type == "Identifier" and node.init is not None and \
        node.init.type == "ArrayExpression" and all(is_constant_expression(e) for e in node.init.elements)


class ArrayUnpacker(ScopedTransform):
    FIND = 1
    CHECK = 2
    UNPACK = 3
    COUNT = 4

    def __init__(self, ast, remove_arrays : bool = True):
        super().__init__(ast, "Array Unpacker")
        self.remove_arrays = remove_arrays
        self.arrays = {}
        """Known arrays, keyed by the id() of their declarator"""
        self.found = False
        self.stage = None
        self.parents = []

    def lookup(self, name):
        binding = self.scope.get(name)
        if isinstance(binding, Array):
            return binding
        return None

    def before_node(self, node, parent):
        if self.stage == ArrayUnpacker.FIND:
            if is_literal_array_declarator(node) and parent is not None and parent.type == "VariableDeclaration" \
                    and id(node) not in self.arrays:
                array = Array(node, parent, node.id.name)
                self.arrays[id(node)] = array
                scope = self.scope.declaration_scope(parent.kind)
                if scope.get_own(array.name) is node.id:
                    # the name was only known as a plain declaration so far
                    scope.remove(array.name)
                if scope.get_own(array.name) is None:
                    self.scope.add(array.name, array, parent.kind)
                    debug("Found array", array.name)
                else:
                    array.unsafe = True
                self.found = True

        elif self.stage in (ArrayUnpacker.CHECK, ArrayUnpacker.COUNT) and node.type == "Identifier" and \
                is_variable_reference(node, parent):
            array = self.lookup(node.name)
            if array is not None and node is not array.declaration.id:
                if self.stage == ArrayUnpacker.COUNT:
                    array.references += 1
                elif not self.is_safe_reference(node, parent):
                    debug("Array", array.name, "escapes, not unpacking it")
                    array.unsafe = True
        self.parents.append(parent)
        return True

    def is_safe_reference(self, node, parent) -> bool:
        # only reads of the form arr[...] or arr.prop are safe
        if parent.type != "MemberExpression" or parent.object is not node:
            return False
        grandparent = self.parents[-1]
        if grandparent is None:
            return True
        if is_write_target(parent, grandparent):
            return False
        if grandparent.type == "CallExpression" and grandparent.callee is parent:
            return False
        return True

    def after_node(self, node, parent):
        self.parents.pop()
        if self.stage != ArrayUnpacker.UNPACK or node.type != "MemberExpression" or not node.computed:
            return
        if node.object.type != "Identifier" or not is_number_literal(node.property):
            return
        array = self.lookup(node.object.name)
        if array is None or array.unsafe:
            return
        if parent is None or is_write_target(node, parent):
            return
        index = node.property.value
        if type(index) is float:
            if not index.is_integer():
                return
            index = int(index)
        if index < 0 or index >= len(array.elements) or array.elements[index] is None:
            return
        replace_in_parent(parent, node, node_copy(array.elements[index]))
        array.replace_count += 1
        self.changed()

    def walk_stage(self, stage):
        self.stage = stage
        self.parents = []
        self.walk()

    def find_arrays(self) -> bool:
        self.found = False
        self.walk_stage(ArrayUnpacker.FIND)
        return self.found

    def unpack_arrays(self) -> None:
        self.walk_stage(ArrayUnpacker.CHECK)
        self.walk_stage(ArrayUnpacker.UNPACK)

    def remove_unpacked_arrays(self) -> None:
        for array in self.arrays.values():
            array.references = 0
        self.walk_stage(ArrayUnpacker.COUNT)
        for array in self.arrays.values():
            if array.replace_count == 0 or array.unsafe or array.references > 0:
                continue
            if self.is_exported(array.parent):
                continue
            if replace_in_parent(array.parent, array.declaration, None):
                debug("Removed array", array.name)
                self.changed()

    def is_exported(self, declaration) -> bool:
        for st in self.ast.body:
            if st.type == "ExportNamedDeclaration" and st.declaration is declaration:
                return True
        return False

    def run(self) -> int:
        verbose("Applying code transform: " + self.name)
        self.count = 0
        for i in range(config.max_fixpoint_iter):
            if not self.find_arrays():
                break
            self.unpack_arrays()
        if self.remove_arrays:
            self.remove_unpacked_arrays()
        verbose("  " + str(sum(a.replace_count for a in self.arrays.values())) + " array reads replaced")
        return self.count
