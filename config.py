rename_pattern = r'^_0x[0-9a-fA-F]*' #Identifiers matching this are considered obfuscated
rename_length = 2 #Number of syllables in generated names
rename_seed = 42 #Seed used to shuffle the candidate names

sandbox_timeout = 2000 #Wall-clock budget (ms) for each sandboxed evaluation
max_inline_depth = 64 #Stop inlining nested proxy calls after that depth
max_fixpoint_iter = 1000 #Safety bound on fixed-point loops


class OptionGroup(object):
    """
    A group of boolean flags. Subclasses list their flags (with defaults) in ``fields``
    and the camelCase spelling used by JSON configuration files in ``aliases``.
    """
    fields = {}
    aliases = {}

    def __init__(self, **kwargs):
        for name, default in self.fields.items():
            setattr(self, name, kwargs.pop(name, default))
        if kwargs:
            raise TypeError("Unknown option(s) for " + type(self).__name__ + ": " + ", ".join(kwargs))

    @classmethod
    def from_dict(cls, d):
        kwargs = {}
        for key, value in d.items():
            kwargs[cls.aliases.get(key, key)] = bool(value)
        return cls(**kwargs)

    def to_dict(self):
        return {name: getattr(self, name) for name in self.fields}

    def __repr__(self):
        return type(self).__name__ + "(" + ", ".join(k + "=" + str(v) for k, v in self.to_dict().items()) + ")"


class ArraysConfig(OptionGroup):
    fields = {"unpack_arrays": True, "remove_arrays": True}
    aliases = {"unpackArrays": "unpack_arrays", "removeArrays": "remove_arrays"}


class ProxyFunctionsConfig(OptionGroup):
    fields = {"replace_proxy_functions": True, "remove_proxy_functions": True}
    aliases = {"replaceProxyFunctions": "replace_proxy_functions", "removeProxyFunctions": "remove_proxy_functions"}


class ExpressionsConfig(OptionGroup):
    fields = {"simplify_expressions": True, "remove_dead_branches": True, "undo_string_operations": True}
    aliases = {
        "simplifyExpressions": "simplify_expressions",
        "removeDeadBranches": "remove_dead_branches",
        "undoStringOperations": "undo_string_operations",
    }


class MiscellaneousConfig(OptionGroup):
    fields = {"beautify": True, "simplify_properties": True, "rename_hex_identifiers": True}
    aliases = {
        "simplifyProperties": "simplify_properties",
        "renameHexIdentifiers": "rename_hex_identifiers",
    }


class Config(object):
    """
    Deobfuscation settings. Every transformation can be toggled independently.
    """
    def __init__(self, verbose=False, is_module=False, arrays=None, proxy_functions=None, expressions=None, miscellaneous=None):
        self.verbose : bool = verbose
        """Print the name of each pass before it runs"""

        self.is_module : bool = is_module
        """Parse the input as an ES module instead of a script"""

        self.arrays : ArraysConfig = arrays if arrays is not None else ArraysConfig()
        self.proxy_functions : ProxyFunctionsConfig = proxy_functions if proxy_functions is not None else ProxyFunctionsConfig()
        self.expressions : ExpressionsConfig = expressions if expressions is not None else ExpressionsConfig()
        self.miscellaneous : MiscellaneousConfig = miscellaneous if miscellaneous is not None else MiscellaneousConfig()

    @classmethod
    def from_dict(cls, d):
        """
        Build a configuration from a (possibly partial) dictionary, using either the
        camelCase keys of the JSON configuration format or the attribute names.

        :param dict d: The configuration dictionary
        :rtype Config:
        """
        return cls(
            verbose=bool(d.get("verbose", False)),
            is_module=bool(d.get("isModule", d.get("is_module", False))),
            arrays=ArraysConfig.from_dict(d.get("arrays", {})),
            proxy_functions=ProxyFunctionsConfig.from_dict(d.get("proxyFunctions", d.get("proxy_functions", {}))),
            expressions=ExpressionsConfig.from_dict(d.get("expressions", {})),
            miscellaneous=MiscellaneousConfig.from_dict(d.get("miscellaneous", {})),
        )

    @classmethod
    def disabled(cls):
        """
        A configuration with every optional pass turned off (the function pre-executor
        and the final cleanup still run).
        """
        c = cls()
        for group in (c.arrays, c.proxy_functions, c.expressions, c.miscellaneous):
            for name in group.fields:
                setattr(group, name, False)
        return c

    def to_dict(self):
        return {
            "verbose": self.verbose,
            "is_module": self.is_module,
            "arrays": self.arrays.to_dict(),
            "proxy_functions": self.proxy_functions.to_dict(),
            "expressions": self.expressions.to_dict(),
            "miscellaneous": self.miscellaneous.to_dict(),
        }
