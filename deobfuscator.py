"""
The deobfuscation pipeline: parses the source, applies the enabled transformations in order and prints
the result back.
"""
import esprima
from node_tools import parse
from output import generate
from jseval import Sandbox
from code_transformers import DeadBranchRemover, PropertySimplifier, Cleanup
from function_executor import FunctionExecutor
from proxy_remover import ProxyRemover
from array_unpacker import ArrayUnpacker
from expression_simplifier import ExpressionSimplifier
from string_decoder import StringDecoder
from variable_renamer import VariableRenamer
from debug import set_verbose, verbose
from config import Config
from typing import Dict, List, Tuple


class DeobfuscationResult(object):
    def __init__(self, code : str, name_mapping : Dict = None, passes : List[Tuple[str, int]] = None):
        self.code : str = code

        self.name_mapping : Dict = name_mapping
        """Mapping of the renamed variables, None if the renamer did not run"""

        self.passes : List[Tuple[str, int]] = passes if passes is not None else []
        """(pass name, number of changes) for every pass that ran, in order"""

    def __repr__(self):
        return "DeobfuscationResult(" + str(len(self.code)) + " chars, " + str(len(self.passes)) + " passes)"


class Deobfuscator(object):
    def __init__(self, config : Config = None):
        self.config : Config = config if config is not None else Config()
        self.sandbox : Sandbox = None
        self.passes : List[Tuple[str, int]] = []

    def get_sandbox(self) -> Sandbox:
        if self.sandbox is None:
            self.sandbox = Sandbox()
        return self.sandbox

    def apply(self, transform) -> int:
        n = transform.run()
        self.passes.append((transform.name, n))
        return n

    def transform(self, ast : esprima.nodes.Node) -> Dict:
        """
        Applies the enabled transformations to a program tree, in place

        :rtype dict:
        :return: The name mapping of the variable renamer, or None
        """
        c = self.config
        name_mapping = None

        # Order matters: each transformation exposes patterns for the following ones
        executor = FunctionExecutor(ast, self.sandbox)
        self.apply(executor)
        # the engine is only started when an executed function is found
        self.sandbox = executor.sandbox

        if c.proxy_functions.replace_proxy_functions:
            self.apply(ProxyRemover(ast, c.proxy_functions.remove_proxy_functions))

        if c.expressions.simplify_expressions:
            self.apply(ExpressionSimplifier(ast, self.get_sandbox()))

        if c.arrays.unpack_arrays:
            self.apply(ArrayUnpacker(ast, c.arrays.remove_arrays))

        if c.expressions.simplify_expressions:
            self.apply(ExpressionSimplifier(ast, self.get_sandbox()))

        if c.expressions.remove_dead_branches:
            self.apply(DeadBranchRemover(ast))

        if c.expressions.undo_string_operations:
            self.apply(StringDecoder(ast))

        if c.miscellaneous.simplify_properties:
            self.apply(PropertySimplifier(ast))

        if c.miscellaneous.rename_hex_identifiers:
            renamer = VariableRenamer(ast)
            self.apply(renamer)
            name_mapping = renamer.get_name_mapping()

        self.apply(Cleanup(ast))
        return name_mapping

    def run(self, source : str) -> DeobfuscationResult:
        """
        :param str source: The obfuscated JS source
        :rtype DeobfuscationResult:
        :raises DeobfuscationError: on a fatal error, nothing is produced
        """
        set_verbose(self.config.verbose)
        self.passes = []
        ast = parse(source, self.config.is_module)
        name_mapping = self.transform(ast)
        code = generate(ast, pretty=self.config.miscellaneous.beautify)
        verbose("Done, " + str(sum(n for name, n in self.passes)) + " changes")
        return DeobfuscationResult(code, name_mapping, list(self.passes))


def deobfuscate(source : str, config : Config = None) -> str:
    return Deobfuscator(config).run(source).code
