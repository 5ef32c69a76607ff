"""
Gives pronounceable names to the variables whose name looks obfuscated.

    var _0x3f1a = 1; function _0x22(_0x5) { return _0x5 + _0x3f1a; }
        ->
    var kota = 1; function zumi(lexa) { return lexa + kota; }

Every binding is collected first (declarations, then references, so that hoisting is respected) and then
renamed in place. New names are taken from a shuffled pool of syllable pairs, scope by scope, outer scopes
first. A name is never handed out twice, nor when it is already used anywhere in the program.
"""
import re
import random
import esprima
from code_transformers import ScopedTransform
from node_tools import is_variable_reference
from errors import ExhaustionError
from debug import verbose, debug
import config
from typing import Dict, List

RESERVED_WORDS = [
    "if", "do", "in", "var", "let", "try", "for", "new", "case", "else", "enum", "eval", "null", "this", "true",
    "void", "with", "await", "break", "catch", "class", "const", "false", "super", "throw", "while", "yield",
    "delete", "export", "import", "public", "return", "static", "switch", "typeof", "default", "extends",
    "finally", "package", "private", "continue", "debugger", "function", "arguments", "interface", "protected",
    "implements", "instanceof", "undefined", "NaN", "Infinity",
]

FIRST_SYLLABLES = ['b', 'ch', 'd', 'f', 'g', 'l', 'k', 'm', 'n', 'p', 'r', 't', 'v', 'x', 'z']
SECOND_SYLLABLES = ['a', 'e', 'o', 'u', 'i', 'au', 'ou']


def generate_candidates(length : int, seed) -> List[str]:
    """
    Builds every name made of length syllables, in a shuffled but reproducible order
    """
    syllables = [a + b for a in FIRST_SYLLABLES for b in SECOND_SYLLABLES]
    names = [""]
    for i in range(length):
        names = [n + s for n in names for s in syllables]
    random.Random(seed).shuffle(names)
    return names


class NameContext(object):
    """
    The names in use and the candidate names still available during one renaming
    """
    def __init__(self, candidates : List[str] = None):
        self.used = set(RESERVED_WORDS)
        if candidates is None:
            candidates = generate_candidates(config.rename_length, config.rename_seed)
        self.candidates = candidates
        self.position = 0

    def reserve(self, name : str) -> None:
        self.used.add(name)

    def next_name(self) -> str:
        """
        :raises ExhaustionError: if every candidate is taken
        """
        while self.position < len(self.candidates):
            name = self.candidates[self.position]
            self.position += 1
            if name not in self.used:
                self.used.add(name)
                return name
        raise ExhaustionError("Ran out of variable names")


class Variable(object):
    def __init__(self, name : str, kind : str):
        self.name = name
        self.kind = kind

        self.identifiers : List[esprima.nodes.Node] = []
        """Every Identifier node (declarations and references) that denotes this variable"""

        self.exported = False

    def rename(self, new_name : str) -> None:
        for ident in self.identifiers:
            ident.name = new_name
        self.name = new_name

    def __repr__(self):
        return "Variable(" + self.name + ", " + str(self.kind) + ", " + str(len(self.identifiers)) + " occurrences)"


class VariableRenamer(ScopedTransform):
    DECLARE = 1
    REFERENCE = 2

    def __init__(self, ast, candidates : List[str] = None):
        """
        :param esprima.nodes.Node ast: The program
        :param list candidates: Replaces the default pool of names
        """
        super().__init__(ast, "Variable Renamer")
        self.pattern = re.compile(config.rename_pattern)
        self.context = NameContext(candidates)
        self.stage = None
        self.declared = set()
        self.exported_declarations = set()
        self.exporting = False
        self.name_mapping : Dict = None

    def declare(self, ident, kind):
        if self.stage != VariableRenamer.DECLARE:
            return
        variable = self.scope.declaration_scope(kind).get_own(ident.name)
        if variable is None:
            variable = Variable(ident.name, kind)
            self.scope.add(ident.name, variable, kind)
        variable.identifiers.append(ident)
        if self.exporting:
            variable.exported = True
        self.declared.add(id(ident))

    def declare_outer(self, node, parent):
        # exported declarations keep their name, it is part of the module interface
        self.exporting = id(node) in self.exported_declarations or id(parent) in self.exported_declarations
        super().declare_outer(node, parent)
        self.exporting = False

    def declare_inner(self, node):
        super().declare_inner(node)
        if node.type in ("FunctionDeclaration", "FunctionExpression"):
            self.declare(esprima.nodes.Identifier("arguments"), "param")

    def before_node(self, node, parent):
        if self.stage == VariableRenamer.DECLARE:
            if node.type == "ExportNamedDeclaration" and node.declaration is not None:
                self.exported_declarations.add(id(node.declaration))
            elif node.type == "ImportSpecifier" and node.imported is node.local:
                node.imported = esprima.nodes.Identifier(node.local.name)
            elif node.type == "ExportSpecifier" and node.exported is node.local:
                node.exported = esprima.nodes.Identifier(node.local.name)
            elif node.type == "Identifier" and self.pattern.match(node.name) is None:
                self.context.reserve(node.name)
        elif self.stage == VariableRenamer.REFERENCE:
            if node.type == "ExportNamedDeclaration" and node.source is not None:
                # re-exports name the bindings of another module
                return False
            if node.type == "Identifier":
                self.add_reference(node, parent)
        return True

    def add_reference(self, node, parent):
        if id(node) in self.declared or not is_variable_reference(node, parent):
            return
        variable = self.scope.get(node.name)
        if variable is None:
            # implicit global
            self.context.reserve(node.name)
            return
        variable.identifiers.append(node)

    def rename_scopes(self) -> Dict:
        """
        Renames the variables scope by scope, breadth first

        :rtype dict:
        :return: The name mapping of the global scope: {new name: old name, ..., "children": [child mappings]}
        """
        root = {}
        queue = [(self.global_scope, root)]
        while len(queue) > 0:
            scope, mapping = queue.pop(0)
            for name, variable in list(scope.bindings.items()):
                if variable.exported or self.pattern.match(name) is None:
                    continue
                new_name = self.context.next_name()
                debug("Renaming", name, "to", new_name)
                variable.rename(new_name)
                mapping[new_name] = name
                self.changed()
            children = []
            for child in scope.iter_children():
                child_mapping = {}
                children.append(child_mapping)
                queue.append((child, child_mapping))
            mapping["children"] = children
        return root

    def get_name_mapping(self) -> Dict:
        return self.name_mapping

    def run(self) -> int:
        verbose("Applying code transform: " + self.name)
        self.count = 0
        for stage in (VariableRenamer.DECLARE, VariableRenamer.REFERENCE):
            self.stage = stage
            self.walk()
        self.name_mapping = self.rename_scopes()
        verbose("  " + str(self.count) + " variables renamed")
        return self.count
