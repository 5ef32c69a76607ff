"""
Exception hierarchy shared by every pass of the deobfuscator.

Fatal errors (StructuralError, ExhaustionError, UnsupportedReplacementError, ParseError)
abort the whole run. EvaluationError is raised by the sandbox and is always caught by
the pass that asked for the evaluation.
"""


class DeobfuscationError(Exception):
    """Base class for every error raised by the deobfuscator"""


class StructuralError(DeobfuscationError):
    """A tree mutation or scope lookup invariant does not hold"""


class UnsupportedReplacementError(StructuralError):
    """A list of nodes was about to be stored in a single-value slot"""


class EvaluationError(DeobfuscationError):
    """The sandboxed JS engine failed or returned something unusable"""


class ExhaustionError(DeobfuscationError):
    """The variable renamer ran out of candidate names"""


class ParseError(DeobfuscationError):
    """The input (or a regenerated snippet) could not be parsed"""
