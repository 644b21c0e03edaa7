"""Entry points used by editors: validating a script and hover types."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from duckscript import parser, prelude, symbols
from duckscript.abstract_syntax import Command
from duckscript.context import Context
from duckscript.errors import DuckscriptError
from duckscript.type_checker import TypeChecker

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Analysis:
    """What a tolerant run over a script got through."""

    checker: TypeChecker
    ctx: Context
    # commands processed without error, in source order
    commands: list[Command] = dataclasses.field(default_factory=list)
    error: Optional[DuckscriptError] = None

    def symbol_at(self, line: int, column: int) -> Optional[symbols.Symbol]:
        return symbols.get_symbol(
            self.ctx,
            self.commands,
            line,
            column,
            self.checker.instantiations,
            self.checker.evaluated,
        )


def validate(source: str, prelude_ctx: Optional[Context] = None):
    """Raise the first error in `source`, if there is one."""
    commands = parser.parse_script(source)
    checker = TypeChecker()
    ctx = prelude.initial_context(checker) if prelude_ctx is None else prelude_ctx
    checker.check_commands(ctx, commands)


def analyze(source: str, prelude_ctx: Optional[Context] = None) -> Analysis:
    """Check as much of `source` as possible, stopping at the first error."""
    checker = TypeChecker()
    ctx = prelude.initial_context(checker) if prelude_ctx is None else prelude_ctx
    analysis = Analysis(checker, ctx)
    try:
        commands = parser.parse_script(source)
        for cmd in commands:
            analysis.ctx = checker.process_command(analysis.ctx, cmd)
            analysis.commands.append(cmd)
    except DuckscriptError as e:
        logger.debug("discarding the rest of the script: %s", e)
        analysis.error = e
    return analysis


def get_type(source: str, line: int, character: int, prelude_ctx: Optional[Context] = None) -> str:
    """The symbol at a 1-indexed line and character as ``name<g> :: Type``,
    or an empty string."""
    symbol = analyze(source, prelude_ctx).symbol_at(line, character - 1)
    if symbol is None or symbol.type is None:
        return ""
    return str(symbol)
