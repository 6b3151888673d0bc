"""
PLC Script Command-Line Interface.

Usage:
    plc run program.plc             # Analyze and execute; exit status = main()
    plc check program.plc           # Analyze only
    plc compile program.plc -o Main.java
    plc tokens program.plc          # Debug: dump tokens
    plc ast program.plc             # Debug: dump the program tree
    plc info                        # Show language information
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from plcscript import __version__
from plcscript.compiler.lexer import Lexer
from plcscript.compiler.parser import Parser
from plcscript.pipeline import check_source, generate_source
from plcscript.runtime.interpreter import DECIMAL_DIVISION_SCALE, Interpreter
from plcscript.utils.errors import PlcError

logger = logging.getLogger(__name__)


# =============================================================================
# ANSI Color Codes for Terminal Output
# =============================================================================


class Colors:
    """ANSI escape codes for colored terminal output."""

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"

    BOLD = "\033[1m"
    RESET = "\033[0m"

    @classmethod
    def disable(cls) -> None:
        """Disable all colors (for non-TTY output)."""
        cls.RED = ""
        cls.GREEN = ""
        cls.YELLOW = ""
        cls.CYAN = ""
        cls.GRAY = ""
        cls.BOLD = ""
        cls.RESET = ""

    @classmethod
    def enabled(cls) -> bool:
        return bool(cls.RESET)


def _init_colors() -> None:
    """Disable colors when output is not a TTY or NO_COLOR is set."""
    if not sys.stdout.isatty() or os.environ.get("NO_COLOR"):
        Colors.disable()


_init_colors()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="plc",
        description="PLC Script - analyze, run and compile PLC scripts",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser(
        "run",
        aliases=["r"],
        help="Analyze and execute a script",
    )
    run_parser.add_argument("input", type=Path, help="Input script (.plc)")
    run_parser.add_argument(
        "--decimal-scale",
        type=int,
        default=DECIMAL_DIVISION_SCALE,
        help=f"Fractional digits kept by Decimal division (default: {DECIMAL_DIVISION_SCALE})",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Analyze a script without running it",
    )
    check_parser.add_argument("input", type=Path, help="Input script (.plc)")

    compile_parser = subparsers.add_parser(
        "compile",
        aliases=["c"],
        help="Compile a script to a Java class",
    )
    compile_parser.add_argument("input", type=Path, help="Input script (.plc)")
    compile_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output Java file (default: Main.java next to the input)",
    )
    compile_parser.add_argument(
        "--indent",
        type=int,
        default=4,
        help="Spaces per indentation level (default: 4)",
    )
    compile_parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print generated code to stdout instead of a file",
    )

    tokens_parser = subparsers.add_parser("tokens", help="Show tokens (debug)")
    tokens_parser.add_argument("input", type=Path, help="Input script (.plc)")

    ast_parser = subparsers.add_parser("ast", help="Show the program tree (debug)")
    ast_parser.add_argument("input", type=Path, help="Input script (.plc)")

    subparsers.add_parser("info", help="Show language information")

    return parser


def _read_input(input_path: Path) -> Optional[str]:
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return None
    return input_path.read_text(encoding="utf-8")


def _report_failure(source: str, filename: str) -> bool:
    """Print the first diagnostic for a script. Returns True if it checks."""
    result = check_source(source, filename)
    if not result.success:
        print(result.render(source, use_color=Colors.enabled()), file=sys.stderr)
    return result.success


def cmd_run(args: argparse.Namespace) -> int:
    """Handle the run command."""
    source = _read_input(args.input)
    if source is None:
        return 1

    result = check_source(source, str(args.input))
    if not result.success:
        print(result.render(source, use_color=Colors.enabled()), file=sys.stderr)
        return 1

    try:
        interpreter = Interpreter(decimal_scale=args.decimal_scale)
        return interpreter.run(result.program.source)
    except PlcError as e:
        print(f"{Colors.RED}Runtime error:{Colors.RESET} {e}", file=sys.stderr)
        return 1


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the check command."""
    source = _read_input(args.input)
    if source is None:
        return 1

    if not _report_failure(source, str(args.input)):
        return 1
    print(f"{Colors.GREEN}OK{Colors.RESET}")
    return 0


def cmd_compile(args: argparse.Namespace) -> int:
    """Handle the compile command."""
    input_path: Path = args.input
    source = _read_input(input_path)
    if source is None:
        return 1

    if not _report_failure(source, str(input_path)):
        return 1

    try:
        java_code = generate_source(source, str(input_path), args.indent)
    except PlcError as e:
        print(f"{Colors.RED}Compilation error:{Colors.RESET} {e}", file=sys.stderr)
        return 1

    if args.stdout:
        print(java_code, end="")
        return 0

    output_path = args.output or input_path.with_name("Main.java")
    output_path.write_text(java_code, encoding="utf-8")
    print(f"{Colors.GREEN}Compiled:{Colors.RESET} {input_path} -> {output_path}")
    return 0


def cmd_tokens(args: argparse.Namespace) -> int:
    """Handle the tokens command (debug)."""
    source = _read_input(args.input)
    if source is None:
        return 1

    try:
        for token in Lexer(source, str(args.input)).tokenize():
            print(token)
        return 0
    except PlcError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_ast(args: argparse.Namespace) -> int:
    """Handle the ast command (debug)."""
    source = _read_input(args.input)
    if source is None:
        return 1

    try:
        tokens = Lexer(source, str(args.input)).tokenize()
        tree = Parser(tokens, source, str(args.input)).parse()
    except PlcError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_ast(tree)
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Handle the info command - show language information."""
    print(f"""
{Colors.BOLD}PLC Script{Colors.RESET}
==========

{Colors.CYAN}Version:{Colors.RESET} {__version__}

{Colors.CYAN}Types:{Colors.RESET}
  Integer, Decimal, Boolean, Character, String, Nil
  Any (accepts every type), Comparable (Integer, Decimal, Character, String)

{Colors.CYAN}Built-ins:{Colors.RESET}
  print(Any): Nil
  range(Integer, Integer): IntegerIterable

{Colors.CYAN}Program entry:{Colors.RESET}
  DEF main(): Integer DO ... END   (its result is the exit status)

{Colors.CYAN}Commands:{Colors.RESET}
  plc run <file>        Analyze and execute
  plc check <file>      Analyze only
  plc compile <file>    Generate a Java class
  plc tokens <file>     Show tokens
  plc ast <file>        Show the program tree
""")
    return 0


def _print_ast(node, indent: int = 0) -> None:
    """Pretty print a program tree node."""
    prefix = "  " * indent
    node_name = type(node).__name__

    attrs = {
        key: getattr(node, key)
        for key in getattr(node, "__dataclass_fields__", {})
        if key != "location"
    }

    if not attrs:
        print(f"{prefix}{node_name}")
        return

    print(f"{prefix}{node_name}:")
    for key, value in attrs.items():
        if hasattr(value, "__dataclass_fields__"):
            print(f"{prefix}  {key}:")
            _print_ast(value, indent + 2)
        elif isinstance(value, tuple) and value and hasattr(value[0], "__dataclass_fields__"):
            print(f"{prefix}  {key}: [")
            for item in value:
                _print_ast(item, indent + 2)
            print(f"{prefix}  ]")
        else:
            print(f"{prefix}  {key}: {value!r}")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if args.no_color:
        Colors.disable()

    if args.command is None:
        parser.print_help()
        return 0

    command_handlers = {
        "run": cmd_run,
        "r": cmd_run,
        "check": cmd_check,
        "compile": cmd_compile,
        "c": cmd_compile,
        "tokens": cmd_tokens,
        "ast": cmd_ast,
        "info": cmd_info,
    }

    handler = command_handlers.get(args.command)
    if handler:
        logger.debug("Running command %s", args.command)
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
