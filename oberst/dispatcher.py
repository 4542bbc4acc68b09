"""
Oberst dispatcher: match a raw line against a command tree and run its handler.

What this module provides
- dispatch(tree, context, line): the core, synchronous dispatch call.
- CommandSource: owns a tree plus a context reference and exposes the
  caller-facing API (register, dispatch, usage, help, interact). Sources can be
  shared: copies reuse the same frozen tree.

Dispatch algorithm
1. tokenize the line (UnterminatedQuoteError propagates as-is);
2. no tokens → EmptyInputError;
3. the first token must equal a command name (case-sensitive), otherwise
   CommandNotFoundError with close-match suggestions;
4. the command's variants are tried in registration order; the first one whose
   literals all match, whose arguments all parse and which consumes every
   remaining token wins, even if a later one would also match;
5. when none matches, NoMatchingSyntaxError carries the diagnostic of the first
   variant tried;
6. the handler runs as handler(context, *values);
7. None → 0, a non-negative int → that status; an exception raised by the
   handler (or a result that is not a status) → HandlerError wrapping the cause.

No handler runs before a variant fully matched, so a rejected line never has
partial side effects.

Concurrency
- A dispatch runs to completion on the calling thread. The tree is frozen on
  first dispatch and may then be shared across threads; the context is owned by
  the caller and is never locked here.
"""
import copy
import difflib
import logging
import sys
from collections import defaultdict

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .commands import CommandTree
from .faults import *
from .faults import trigger as _trigger
from .syntax import Literal
from .tokens import tokenize
from .utils import *

logger = logging.getLogger(__name__)

# Diagnostics a variant may report while matching; anything else is a defect and propagates.
_MISMATCHES = (LiteralMismatchError, MissingTokensError, ArgumentParseError, UnparsedTokensError)


def _invoke(definition, variant, context, values, /):
    """
    internal: run the handler and map its outcome to a status code.
    """
    name = definition.name
    try:
        result = variant.handler(context, *values)
    except Exception as error:
        logger.debug("handler of %r raised %s", name, type(error).__name__)
        raise HandlerError(
            "command %r failed: %s" % (name, str(error) or type(error).__name__),
            command=name,
            cause=error,
            hint="the handler raised %s" % type(error).__name__,
        ) from error

    if result is None:
        return 0

    if isinstance(result, bool) or not isinstance(result, int):
        cause = TypeError(f"handler returned {type(result).__name__}, expected an int status code or None")
    elif result < 0:
        cause = ValueError(f"handler returned {result}, status codes cannot be negative")
    else:
        return result

    raise HandlerError(
        "command %r returned an invalid status: %s" % (name, cause),
        command=name,
        cause=cause,
        hint="return None or a non-negative integer from the handler",
    ) from cause


def dispatch(tree, context, line, /):
    """
    Dispatch one raw line against a command tree.

    Parameters
    - tree: CommandTree (frozen by this call if it was not yet).
    - context: any object; handed to the handler as its first argument.
    - line: the raw input line.

    Returns
    - int: the handler's status code (0 when it returned None).

    Raises
    - UnterminatedQuoteError, EmptyInputError, CommandNotFoundError,
      NoMatchingSyntaxError, HandlerError.
    """
    if not isinstance(tree, CommandTree):
        raise TypeError("dispatch() first argument must be a command tree")

    tree.freeze()
    tokens = tokenize(line)

    if not tokens:
        raise EmptyInputError(
            "nothing to dispatch",
            hint="type a command name followed by its arguments",
        )

    name = tokens[0].value
    try:
        definition = tree[name]
    except KeyError:
        suggestions = difflib.get_close_matches(name, tree.keys(), 5)
        try:
            hint = "did you mean %r?" % suggestions[0]
        except IndexError:
            hint = "available commands: %s" % (", ".join(sorted(tree)) or "none")
        raise CommandNotFoundError(
            "unknown command %r" % name,
            command=name,
            name=name,
            suggestions=tuple(suggestions),
            hint=hint,
        ) from None

    arguments = tokens[1:]
    diagnostic = None

    for index, variant in enumerate(definition.variants, start=1):
        try:
            values = variant.match(arguments, tree.types, command=name)
        except _MISMATCHES as error:
            logger.debug("variant %d of %r (%s) rejected: %s", index, name, variant.usage, error.message)
            if diagnostic is None:
                diagnostic = error
            continue
        logger.debug("variant %d of %r (%s) selected", index, name, variant.usage)
        return _invoke(definition, variant, context, values)

    raise NoMatchingSyntaxError(
        "no syntax of %r accepts this input: %s" % (name, diagnostic.message),
        command=name,
        diagnostic=diagnostic,
        usage=definition.usage,
        hint="accepted forms: %s" % " / ".join(
            " ".join(filter(None, (name, usage))) for usage in definition.usage
        ),
    ) from diagnostic


class CommandSource:
    """
    Caller-facing command source: a tree, a context and rendering options.

    Options
    - name: program name shown in fault headers (overridden by __main__.__prog__).
    - shell: when True, dispatch() prints faults through rich and returns 1
      instead of raising them.
    - fancy: render faults and help inside panels.
    - colorful: style output with the palette (overridable via __main__.__styles__).
    - console: rich Console used for output (stderr by default).

    Sharing
    - copy.copy(source) and copy.replace(source, context=...) build sources
      that share the same (frozen) tree. The context object is shared by
      reference; synchronizing access to it is the owner's business.
    """

    def __init__(
            self,
            context=None,
            tree=Unset,
            /,
            *,
            name="oberst",
            shell=False,
            fancy=False,
            colorful=False,
            console=Unset,
    ):
        if not isinstance(tree, CommandTree | Unset):
            raise TypeError("command source tree must be a command tree")
        if not isinstance(name, str) or not name.strip():
            raise TypeError("command source name must be a non-empty string")
        self._context = context
        self._tree = coalesce(tree, CommandTree())
        self._name = name.strip()
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        self._console = coalesce(console, Console(stderr=True))

    context = property(lambda self: self._context)
    tree = property(lambda self: self._tree)
    name = property(lambda self: self._name)
    shell = property(lambda self: self._shell)
    fancy = property(lambda self: self._fancy)
    colorful = property(lambda self: self._colorful)
    console = property(lambda self: self._console)

    def register(self, source, variants=Unset, /, descr=Unset):
        """
        Register a command on the underlying tree (see CommandTree.register).

        Definition faults are configuration defects: they are always raised,
        even in shell mode.
        """
        return self._tree.register(source, variants, descr=descr)

    def trigger(self, fault, /, **options):
        """
        Surface a fault with this source's rendering options.
        """
        _trigger(
            fault,
            tool=self,
            shell=self._shell,
            fancy=self._fancy,
            colorful=self._colorful,
            console=self._console,
            **options,
        )

    def dispatch(self, line, /):
        """
        Dispatch a raw line with this source's context.

        Returns the handler's status code; in shell mode a dispatch fault is
        printed and 1 is returned.
        """
        try:
            return dispatch(self._tree, self._context, line)
        except (TokenizeError, DispatchError) as fault:
            if not self._shell:
                raise
            self.trigger(fault)
            return 1

    def usage(self, name, /):
        """
        Return the CommandUsage (name, usage forms, description) of a command.
        """
        try:
            return self._tree.usage(name)
        except KeyError:
            raise CommandNotFoundError(
                "unknown command %r" % name,
                command=name,
                name=name,
                suggestions=tuple(difflib.get_close_matches(str(name), self._tree.keys(), 5)),
                hint="available commands: %s" % (", ".join(sorted(self._tree)) or "none"),
            ) from None

    def help(self, name=Unset, /):
        """
        Build a rich renderable describing every command, or one command.

        Palette keys (override through __main__.__styles__)
        - command-name, literal, placeholder, argument-type, description,
          table-border, panel-title
        """
        styles = defaultdict(str, {
            "command-name": "bold #FF4D94",  # magenta-pink command names
            "literal": "bold #36C5F0",  # sky-blue literal words
            "placeholder": "bold #FFD600",  # amber placeholders
            "argument-type": "#9CA3AF",  # muted gray types
            "description": "italic #A3A3A3",  # neutral gray
            "table-border": "#4B5563",  # slate border
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self._colorful else ""

        def form(definition, variant):
            parts = [Text(definition.name, styler("command-name"))]
            for node in variant.nodes:
                if isinstance(node, Literal):
                    parts.append(Text(node.text, styler("literal")))
                else:
                    parts.append(Text.assemble(
                        "<",
                        Text(node.name, styler("placeholder")),
                        ": ",
                        Text(node.type, styler("argument-type")),
                        ">",
                    ))
            return Text(" ").join(parts)

        if name is Unset:
            definitions = list(self._tree.values())
            title = "commands"
        else:
            self.usage(name)  # raises CommandNotFoundError for unknown names
            definitions = [self._tree[name]]
            title = name

        table = Table(show_header=False, box=None, pad_edge=False, border_style=styler("table-border"))
        table.add_column("usage")
        table.add_column("description")
        for definition in definitions:
            for index, variant in enumerate(definition.variants):
                descr = definition.descr if index == 0 and definition.descr else ""
                table.add_row(form(definition, variant), Text(descr, styler("description")))

        if self._fancy:
            return Panel(table, title=Text(title, styler("panel-title")), title_align="left")
        return Group(Text(title + ":", styler("panel-title")), table)

    def interact(self, stream=Unset, /, *, prompt="> "):
        """
        Run a line-oriented shell until EOF or 'exit'.

        - every line is dispatched in shell mode (faults are printed, not raised);
        - 'help' and 'help <name>' print usage, 'exit'/'quit' stop, unless a
          command with that name was registered;
        - blank lines are skipped.

        Returns
        - the status code of the last dispatched line (0 when none ran).
        """
        stream = coalesce(stream, sys.stdin)
        shell = copy.replace(self, shell=True)
        status = 0

        while True:
            if prompt:
                self._console.print(prompt, end="")
            if not (line := stream.readline()):
                break
            if not line.strip():
                continue
            try:
                words = tuple(token.value for token in tokenize(line))
            except TokenizeError:
                words = ()  # dispatched below, which reports the fault

            match words:
                case ["exit" | "quit"] if words[0] not in self._tree:
                    break
                case ["help"] if "help" not in self._tree:
                    self._console.print(self.help())
                    continue
                case ["help", name] if "help" not in self._tree:
                    try:
                        self._console.print(self.help(name))
                    except CommandNotFoundError as fault:
                        shell.trigger(fault)
                    continue

            status = shell.dispatch(line)
            logger.debug("shell line %r finished with status %d", line.rstrip("\n"), status)

        return status

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        self._tree.freeze()
        options = {
            "context": self._context,
            "name": self._name,
            "shell": self._shell,
            "fancy": self._fancy,
            "colorful": self._colorful,
            "console": self._console,
        } | overrides
        context = options.pop("context")
        return type(self)(context, self._tree, **options)

    def __copy__(self):
        return self.__replace__()

    def __rich_repr__(self):
        yield "name", self._name
        yield "context", self._context
        yield "tree", self._tree
        yield "shell", self._shell
        yield "fancy", self._fancy
        yield "colorful", self._colorful

    def __repr__(self):
        return "command-source(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())


__all__ = (
    "dispatch",
    "CommandSource",
)
