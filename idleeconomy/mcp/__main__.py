"""CLI entry point: python -m idleeconomy.mcp <economy_module>"""

from __future__ import annotations

import importlib
import sys

from idleeconomy.definition import EconomyDefinition


def load_economy(module_path: str) -> EconomyDefinition:
    """Import module and call define_economy()."""
    mod = importlib.import_module(module_path)
    if not hasattr(mod, "define_economy"):
        print(f"Error: module {module_path!r} has no define_economy() function", file=sys.stderr)
        sys.exit(1)
    return mod.define_economy()


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python -m idleeconomy.mcp <economy_module>", file=sys.stderr)
        print("Example: python -m idleeconomy.mcp examples.pixel_example", file=sys.stderr)
        sys.exit(1)

    module_path = sys.argv[1]

    # Redirect stdout to stderr during module loading in case define_economy() prints
    real_stdout = sys.stdout
    sys.stdout = sys.stderr
    try:
        definition = load_economy(module_path)
    finally:
        sys.stdout = real_stdout

    from idleeconomy.mcp.server import create_server

    server = create_server(definition)
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
