import pytest

from config import Config, ArraysConfig, MiscellaneousConfig


def test_defaults():
    c = Config()
    assert not c.verbose
    assert not c.is_module
    for group in c.to_dict().values():
        if isinstance(group, dict):
            assert all(group.values())


def test_from_dict_camel_case():
    c = Config.from_dict({
        "isModule": True,
        "arrays": {"unpackArrays": True, "removeArrays": False},
        "proxyFunctions": {"replaceProxyFunctions": False},
        "expressions": {"undoStringOperations": False},
        "miscellaneous": {"beautify": False, "renameHexIdentifiers": False},
    })
    assert c.is_module
    assert c.arrays.unpack_arrays and not c.arrays.remove_arrays
    assert not c.proxy_functions.replace_proxy_functions
    assert c.proxy_functions.remove_proxy_functions
    assert not c.expressions.undo_string_operations
    assert c.expressions.simplify_expressions
    assert not c.miscellaneous.beautify
    assert not c.miscellaneous.rename_hex_identifiers
    assert c.miscellaneous.simplify_properties


def test_from_dict_snake_case():
    c = Config.from_dict({"verbose": 1, "is_module": True, "proxy_functions": {"remove_proxy_functions": False}})
    assert c.verbose is True
    assert c.is_module
    assert not c.proxy_functions.remove_proxy_functions


def test_unknown_option():
    with pytest.raises(TypeError):
        ArraysConfig.from_dict({"unpackArray": True})
    with pytest.raises(TypeError):
        MiscellaneousConfig(pretty=True)


def test_to_dict_round_trip():
    c = Config.disabled()
    c.arrays.unpack_arrays = True
    d = c.to_dict()
    assert d["arrays"] == {"unpack_arrays": True, "remove_arrays": False}
    assert Config.from_dict(d).to_dict() == d


def test_debug_traces_are_switched_in_debug_module(capsys):
    import config
    import debug

    assert not hasattr(config, "debug")
    debug.set_debug(True)
    debug.debug("trace")
    assert capsys.readouterr().err == "trace\n"
