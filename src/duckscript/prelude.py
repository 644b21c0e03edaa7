"""The global environment every script is checked against."""

from duckscript import parser
from duckscript.context import Context

PRELUDE = """
/*
type () = {}

type String = {
  length: Number,
  startsWith: String -> Boolean,
  endsWith: String -> Boolean,
  split: String -> String[],
  toLocaleLowerCase: () -> String
}

type Number = {
  toString<unused>: unused -> String
}

type Boolean = {
  toString<plhd>: plhd -> String
}

type Array<arrtype> = {
  length: Number,
  map<newtype>: (arrtype -> newtype) -> newtype[],
  join: String -> String
}

type JSONT = {
  stringify<plhd>: plhd -> String
}
*/

// parseFloat :: String -> Number
// parseInt :: String -> Number

// JSON :: JSONT

// Number##binaryOp :: Number -> Number -> Number
"""


def initial_context(checker, source: str = PRELUDE) -> Context:
    """Check the global declarations in `source` with `checker`."""
    return checker.check_commands(Context.empty(), parser.parse_declaration(source))
