"""
Bindings for an embedded V8 engine (mini-racer).

This is used by the function pre-executor and the expression simplifier when evaluating JS operators and
functions. Values cross the boundary as a JSON description built inside the engine, so that NaN, infinities,
negative zero, null and undefined are all kept apart.
"""
import json
import math
from py_mini_racer import MiniRacer
from py_mini_racer._exc import MiniRacerBaseException
from errors import EvaluationError
from debug import debug
from typing import List
import config


class JSUndefinedType(object):
    """
    The JS undefined value
    """
    def __repr__(self):
        return "undefined"

JSUndefined = JSUndefinedType()


class JSObjectValue(object):
    """
    Opaque JS value that has no literal representation (object, function, symbol...)

    When created on the Python side, source holds the JS expression that builds it (e.g. "{}").
    """
    def __init__(self, typeof : str, source : str = None):
        self.typeof = typeof
        self.source = source

    def __repr__(self):
        return "JSObjectValue(" + self.typeof + ")"

    def __eq__(self, other):
        return isinstance(other, JSObjectValue) and other.typeof == self.typeof and other.source == self.source

    def __hash__(self):
        return hash((self.typeof, self.source))


DESCRIBE_FUNCTION = """
function __describe(v) {
    function d(v, depth) {
        if (v === undefined) return {t: "undefined"};
        if (v === null) return {t: "null"};
        if (typeof v === "number") {
            if (v !== v) return {t: "number", v: "NaN"};
            if (v === Infinity) return {t: "number", v: "Infinity"};
            if (v === -Infinity) return {t: "number", v: "-Infinity"};
            if (v === 0 && 1 / v < 0) return {t: "number", v: "-0"};
            return {t: "number", v: v};
        }
        if (typeof v === "string") return {t: "string", v: v};
        if (typeof v === "boolean") return {t: "boolean", v: v};
        if (Array.isArray(v) && depth < 32) {
            var r = [];
            for (var i = 0; i < v.length; i++) {
                if (!(i in v)) return {t: "object", v: "object"};
                r.push(d(v[i], depth + 1));
            }
            return {t: "array", v: r};
        }
        return {t: "object", v: typeof v};
    }
    return JSON.stringify(d(v, 0));
}
"""

UNARY_OPERATORS = ["-", "+", "!", "~", "typeof", "void"]
BINARY_OPERATORS = ["==", "!=", "===", "!==", "<", "<=", ">", ">=", "<<", ">>", ">>>",
                    "+", "-", "*", "/", "%", "**", "|", "^", "&"]


def decode_value(desc):
    t = desc["t"]
    if t == "undefined":
        return JSUndefined
    if t == "null":
        return None
    if t == "number":
        v = desc["v"]
        if v == "NaN":
            return math.nan
        if v == "Infinity":
            return math.inf
        if v == "-Infinity":
            return -math.inf
        if v == "-0":
            return -0.0
        return float(v)
    if t in ("string", "boolean"):
        return desc["v"]
    if t == "array":
        return [decode_value(e) for e in desc["v"]]
    return JSObjectValue(desc["v"])


def encode_value(value) -> str:
    """
    Converts a Python value back to JS source text

    :param value: str, int, float, bool, None (null), JSUndefined, list or JSObjectValue
    :rtype str:
    """
    if value is None:
        return "null"
    if value is JSUndefined:
        return "undefined"
    if type(value) is bool:
        return "true" if value else "false"
    if type(value) is str:
        return json.dumps(value)
    if type(value) in (int, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "(-Infinity)"
        if value == 0 and math.copysign(1.0, value) < 0:
            return "(-0)"
        if value < 0:
            return "(" + repr(value) + ")"
        return repr(value)
    if isinstance(value, list):
        return "[" + ", ".join(encode_value(e) for e in value) + "]"
    if isinstance(value, JSObjectValue) and value.source is not None:
        return "(" + value.source + ")"
    raise EvaluationError("Cannot pass value to the JS engine: " + repr(value))


class Sandbox(object):
    """
    A V8 context in which obfuscated snippets are evaluated. Every call runs under a wall-clock budget.
    """
    def __init__(self, timeout : int = None):
        self.timeout : int = timeout if timeout is not None else config.sandbox_timeout
        """Budget of each evaluation, in milliseconds"""

        self.ctx = MiniRacer()
        self.eval_raw(DESCRIBE_FUNCTION)
        for i, op in enumerate(UNARY_OPERATORS):
            self.register_function("function unop_" + str(i) + "(a) { return " + op + " a; }")
        for i, op in enumerate(BINARY_OPERATORS):
            self.register_function("function binop_" + str(i) + "(a, b) { return a " + op + " b; }")

    def eval_raw(self, code : str):
        try:
            return self.ctx.eval(code, timeout=self.timeout)
        except MiniRacerBaseException as e:
            debug("Sandbox error:", e)
            raise EvaluationError(str(e)) from e

    def describe(self, code : str):
        res = self.eval_raw("__describe(" + code + ")")
        if type(res) is not str:
            raise EvaluationError("Unexpected value returned by the JS engine: " + repr(res))
        return decode_value(json.loads(res))

    def register_function(self, d : str) -> None:
        """
        Takes the definition (string) of a function and registers it into the engine global symbols

        :param str d: The function definition
        :raises EvaluationError: if the definition does not evaluate
        """
        self.eval_raw(d)

    def evaluate(self, code : str):
        """
        Evaluates a snippet (as with eval()) and returns the value of its last expression
        """
        return self.describe("(0, eval)(" + json.dumps(code) + ")")

    def call_function(self, name : str, args : List) -> object:
        """
        Call a registered JS function

        :param str name: The function name
        :param List args: The function arguments (Python values, see encode_value())
        :return: The function result
        :raises EvaluationError: if the call throws, times out, or an argument cannot be passed
        """
        return self.describe(name + "(" + ", ".join(encode_value(a) for a in args) + ")")

    def unary_operation(self, op : str, a):
        if op not in UNARY_OPERATORS:
            raise EvaluationError("Unsupported unary operator: " + op)
        return self.call_function("unop_" + str(UNARY_OPERATORS.index(op)), [a])

    def binary_operation(self, op : str, a, b):
        if op not in BINARY_OPERATORS:
            raise EvaluationError("Unsupported binary operator: " + op)
        return self.call_function("binop_" + str(BINARY_OPERATORS.index(op)), [a, b])
