"""Shared constant values for the rescope runtime."""

SCOPE_OPEN = "{"
SCOPE_CLOSE = "}"
COLON = ":"
ARM_SEPARATOR = ";"
INDIRECTION_MARKER = "^"
REGISTER_MARKER = "$"
ESCAPE = "\\"
COMMENT_CHAR = "/"
GLOBAL_MARKER = "*"
DEF_KEYWORD = "def"
WHITESPACE = (" ", "\t", "\n")

# keyword -> token kind, see core.Token
BUILTIN_KEYWORDS = {
    "get_input": "get_input",
    "error": "error",
    "print": "print",
}

MAX_NESTING = 100
COMPACT_MIN_DEAD = 256

LOGBOOK_FILE = "rescope.logbook.jsonl"
REPL_HISTORY_LIMIT = 10
PROGRAM_SUFFIX = ".rsc"

__all__ = [
    "SCOPE_OPEN",
    "SCOPE_CLOSE",
    "COLON",
    "ARM_SEPARATOR",
    "INDIRECTION_MARKER",
    "REGISTER_MARKER",
    "ESCAPE",
    "COMMENT_CHAR",
    "GLOBAL_MARKER",
    "DEF_KEYWORD",
    "WHITESPACE",
    "BUILTIN_KEYWORDS",
    "MAX_NESTING",
    "COMPACT_MIN_DEAD",
    "LOGBOOK_FILE",
    "REPL_HISTORY_LIMIT",
    "PROGRAM_SUFFIX",
]
