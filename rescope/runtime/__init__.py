"""
rescope — a text-rewriting language built from nested ``{}`` scopes.

A program is plain text. Every scope is evaluated innermost first and
spliced back into the text as the text it produces:

  {input : pattern : output}          bare scope, one arm
  def name { in : pat : out; ... }     local function definition
  *def name { ... }                    program-wide function definition
  name{argument}                       call; first matching arm wins
  $1  ^$0                              registers (capture groups, outer frames)

| Layer                  | Purpose                                   |
<----------------------- + ----------------------------------------- >
| **Lexer**              | Character state machine → tokens          |
| **Token arena**        | Editable linked list with compaction      |
| **Scope locator**      | Next balanced region in the live text     |
| **Evaluator**          | Regex arms, register frames, built-ins    |
| **Driver**             | Fixpoint loop over the program text       |
| **Scope tree**         | Text dump and Graphviz export             |
| **Logbook**            | Run provenance, output hash and diff      |
"""

from . import core as _core
from . import errors as _errors
from . import lexer as _lexer
from . import tokens as _tokens
from . import scopes as _scopes
from . import evaluator as _evaluator
from . import interpreter as _interpreter
from . import analysis as _analysis
from . import logbook as _logbook
from .cli import main, parse_args, run_repl
from ..constants import LOGBOOK_FILE, MAX_NESTING

from .core import *
from .errors import *
from .lexer import *
from .tokens import *
from .scopes import *
from .evaluator import *
from .interpreter import *
from .analysis import *
from .logbook import *

__all__ = []
for module in (_core, _errors, _lexer, _tokens, _scopes, _evaluator, _interpreter, _analysis, _logbook):
    __all__.extend(getattr(module, '__all__', []))
__all__ += ['main', 'parse_args', 'run_repl', 'LOGBOOK_FILE', 'MAX_NESTING']
__all__ = list(dict.fromkeys(__all__))
