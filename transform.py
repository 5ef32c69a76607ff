#!/usr/bin/env python3
import sys
import os
import json
import argparse
import config
from config import Config
from deobfuscator import Deobfuscator
from errors import DeobfuscationError


def build_parser():
    parser = argparse.ArgumentParser(description="Deobfuscate a JavaScript file")
    parser.add_argument("--force", help="Overwrite the output file if it exists", action='store_true')
    parser.add_argument("--module", help="Parse the input as an ES module", action='store_true')
    parser.add_argument("--quiet", help="Do not print the settings nor the name of each pass", action='store_true')
    parser.add_argument("--no-unpack-arrays", help="Disable literal array unpacking", action='store_true')
    parser.add_argument("--keep-arrays", help="Do not remove the unpacked arrays", action='store_true')
    parser.add_argument("--no-proxy-functions", help="Disable proxy function inlining", action='store_true')
    parser.add_argument("--keep-proxies", help="Do not remove the inlined proxy functions", action='store_true')
    parser.add_argument("--no-simplify-expr", help="Disable constant expression folding", action='store_true')
    parser.add_argument("--no-dead-branches", help="Disable dead branch removal", action='store_true')
    parser.add_argument("--no-string-decoding", help="Disable string decoding", action='store_true')
    parser.add_argument("--no-simplify-properties", help="Disable obj[\"prop\"] to obj.prop rewriting", action='store_true')
    parser.add_argument("--no-rename-variables", help="Disable renaming of hexadecimal identifiers", action='store_true')
    parser.add_argument("--no-beautify", help="Do not beautify the output", action='store_true')
    parser.add_argument("--name-mapping", help="Write the variable renaming map (JSON) to that file")
    parser.add_argument("--sandbox-timeout", help="Time budget of each sandboxed evaluation (ms)", type=int)
    parser.add_argument("input", help="input file")
    parser.add_argument("output", help="output file")
    return parser


def make_config(args) -> Config:
    c = Config(verbose=not args.quiet, is_module=args.module)
    c.arrays.unpack_arrays = not args.no_unpack_arrays
    c.arrays.remove_arrays = not args.keep_arrays
    c.proxy_functions.replace_proxy_functions = not args.no_proxy_functions
    c.proxy_functions.remove_proxy_functions = not args.keep_proxies
    c.expressions.simplify_expressions = not args.no_simplify_expr
    c.expressions.remove_dead_branches = not args.no_dead_branches
    c.expressions.undo_string_operations = not args.no_string_decoding
    c.miscellaneous.simplify_properties = not args.no_simplify_properties
    c.miscellaneous.rename_hex_identifiers = not args.no_rename_variables
    c.miscellaneous.beautify = not args.no_beautify
    return c


def print_settings(c : Config) -> None:
    print("\n======== Transform Settings: ========")
    print("Unpack arrays:\t\t\t", c.arrays.unpack_arrays)
    print("Remove unpacked arrays:\t\t", c.arrays.remove_arrays)
    print("Inline proxy functions:\t\t", c.proxy_functions.replace_proxy_functions)
    print("Remove proxy functions:\t\t", c.proxy_functions.remove_proxy_functions)
    print("Simplify expressions:\t\t", c.expressions.simplify_expressions)
    print("Remove dead branches:\t\t", c.expressions.remove_dead_branches)
    print("Decode strings:\t\t\t", c.expressions.undo_string_operations)
    print("Simplify properties:\t\t", c.miscellaneous.simplify_properties)
    print("Rename variables:\t\t", c.miscellaneous.rename_hex_identifiers)
    print("Beautify:\t\t\t", c.miscellaneous.beautify)
    print("Parse as module:\t\t", c.is_module)
    print("=====================================\n")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    sys.setrecursionlimit(100000)

    if args.sandbox_timeout is not None:
        config.sandbox_timeout = args.sandbox_timeout

    c = make_config(args)
    if not args.quiet:
        print_settings(c)

    if not os.path.isfile(args.input):
        print("Input file not found:", args.input, file=sys.stderr)
        return 1
    if os.path.exists(args.output) and not args.force:
        print("Output file already exists (use --force to overwrite):", args.output, file=sys.stderr)
        return 1

    if not args.quiet:
        print("Opening input file:", args.input)
    with open(args.input, "r", encoding="utf-8") as f:
        source = f.read()

    try:
        result = Deobfuscator(c).run(source)
    except DeobfuscationError as e:
        print("Deobfuscation failed:", type(e).__name__ + ":", e, file=sys.stderr)
        return 1

    if not args.quiet:
        print("Producing output file:", args.output)
    with open(args.output, "w", encoding="utf-8") as f:
        f.write(result.code)
        if not result.code.endswith("\n"):
            f.write("\n")

    if args.name_mapping is not None:
        if result.name_mapping is None:
            print("No name mapping: variable renaming is disabled", file=sys.stderr)
        else:
            with open(args.name_mapping, "w", encoding="utf-8") as f:
                json.dump(result.name_mapping, f, indent=2)
    return 0


if __name__ == "__main__":
    sys.exit(main())
