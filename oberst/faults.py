"""
Oberst faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every fault the library
  raises. Codes are grouped by domain so logs and searches stay predictable.
- CommandException: base type carrying a message plus read-only options; knows
  how to render itself through rich and how to be copied with overrides
  (copy.replace).
- The fault families:
  • tokenizing      → TokenizeError (UnterminatedQuoteError)
  • conversion      → ConversionError (ValueOverflowError, InvalidDigitError,
                      InvalidFormatError, MissingValueError)
  • definition      → DefinitionError (EmptyCommandError, DuplicateCommandError,
                      UnknownPlaceholderError, ArgumentOrderMismatchError,
                      InvalidSyntaxError, UnknownArgumentTypeError, FrozenTreeError)
  • dispatching     → DispatchError (EmptyInputError, CommandNotFoundError,
                      ArgumentParseError, LiteralMismatchError, MissingTokensError,
                      UnparsedTokensError, NoMatchingSyntaxError, HandlerError)
- trigger(): surface a fault (raise it, or print it when running as a shell).
- getdoc(): optional description lookup for a code from the host application.

Propagation
- Definition faults abort the registration of the offending command; they are
  configuration defects and are raised eagerly.
- Dispatch faults are raised to the caller (or printed in shell mode); a handler
  never runs once any of them happened.
- A handler's own exception is wrapped in HandlerError; the original exception
  stays reachable as .cause and as __cause__.

Integration
- Hosts may define __codes__, __docs__, __styles__ and __prog__ in __main__ to
  relabel codes, attach docs, restyle output and name the program in headers.
"""
import copy
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce, rename

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the library (stable identifiers).

    grouping (by high-level domain)
    - tokenizing (1100x)
      • UNTERMINATED_QUOTE
    - routing and matching (1110x/1111x/1112x/1113x)
      • EMPTY_INPUT, COMMAND_NOT_FOUND
      • ARGUMENT_PARSE, LITERAL_MISMATCH, MISSING_TOKENS, UNPARSED_TOKENS
      • NO_MATCHING_SYNTAX
      • HANDLER
    - conversion causes (1120x)
      • VALUE_OVERFLOW, INVALID_DIGIT, INVALID_FORMAT, MISSING_VALUE
    - definitions (1130x/1131x/1132x)
      • EMPTY_COMMAND, DUPLICATE_COMMAND, FROZEN_TREE
      • UNKNOWN_PLACEHOLDER, ARGUMENT_ORDER_MISMATCH, INVALID_SYNTAX
      • UNKNOWN_ARGUMENT_TYPE

    spacing leaves room for additions without reshuffling existing codes.
    """
    # --- tokenizing errors (1100x) ---
    UNTERMINATED_QUOTE          = 11001

    # --- routing errors (1110x) ---
    EMPTY_INPUT                 = 11101
    COMMAND_NOT_FOUND           = 11102

    # --- matching errors (1111x) ---
    ARGUMENT_PARSE              = 11111
    LITERAL_MISMATCH            = 11112
    MISSING_TOKENS              = 11113
    UNPARSED_TOKENS             = 11114

    # --- selection errors (1112x) ---
    NO_MATCHING_SYNTAX          = 11121

    # --- delegated errors (1113x) ---
    HANDLER                     = 11131

    # --- conversion errors (1120x) ---
    VALUE_OVERFLOW              = 11201
    INVALID_DIGIT               = 11202
    INVALID_FORMAT              = 11203
    MISSING_VALUE               = 11204

    # --- definition errors (113xx) ---
    EMPTY_COMMAND               = 11301
    DUPLICATE_COMMAND           = 11302
    FROZEN_TREE                 = 11303
    UNKNOWN_PLACEHOLDER         = 11311
    ARGUMENT_ORDER_MISMATCH     = 11312
    INVALID_SYNTAX              = 11313
    UNKNOWN_ARGUMENT_TYPE       = 11321

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _field(name, /):
    """
    internal: read-only property over one entry of a fault's options.
    """

    @rename(name)
    def getter(self):
        try:
            return self.options[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} fault has no {name!r}") from None

    return property(getter)


class CommandException(Exception):
    """
    Base of every oberst fault.

    A fault is a message plus a read-only mapping of options. The options carry
    both the structured payload of the fault (e.g. 'slot', 'raw_token', 'cause')
    and rendering hints ('title', 'hint', 'shell', 'fancy', 'colorful', 'tool').

    Class-level defaults
    - __code__: FaultCode used when no 'code' option was given.
    - __title__: short title used when no 'title' option was given.
    """
    __code__ = FaultCode.HANDLER
    __title__ = "command error"

    def __init__(self, message=Unset, /, **options):
        if not isinstance(message, str | Unset):
            raise TypeError(f"{type(self).__name__}() message must be a string")
        super().__init__(coalesce(message, self.__title__))
        self.message = coalesce(message, self.__title__)
        self.options = MappingProxyType(options)

    code = property(lambda self: self.options.get("code", type(self).__code__))
    title = property(lambda self: self.options.get("title", type(self).__title__))
    hint = property(lambda self: self.options.get("hint"))

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = getattr(main, "__prog__", getattr(self.options.get("tool"), "name", "oberst"))

        header = Text.assemble(
            "[ ",
            text(prog, styler("prog-name")),
            " :: ",
            text(self.code.normalize(), styler("code")),
            " | ",
            text(self.title.title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        renders = [message]
        if self.hint:
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint"))))

        if fancy:
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell"):
            raise self from self.__cause__
        self.options.get("console", console).print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        replica = type(self)(self.message, **{**self.options, **overrides})
        replica.__cause__ = self.__cause__
        return replica


# --- tokenizing ---

class TokenizeError(CommandException):
    __code__ = FaultCode.UNTERMINATED_QUOTE
    __title__ = "tokenize error"

    line = _field("line")
    position = _field("position")


class UnterminatedQuoteError(TokenizeError):
    __code__ = FaultCode.UNTERMINATED_QUOTE
    __title__ = "unterminated quote"


# --- conversion causes (raised by argument types, wrapped by the dispatcher) ---

class ConversionError(CommandException):
    __code__ = FaultCode.INVALID_FORMAT
    __title__ = "conversion error"

    type = _field("type")
    raw = _field("raw")


class ValueOverflowError(ConversionError):
    __code__ = FaultCode.VALUE_OVERFLOW
    __title__ = "value out of range"


class InvalidDigitError(ConversionError):
    __code__ = FaultCode.INVALID_DIGIT
    __title__ = "invalid digit"


class InvalidFormatError(ConversionError):
    __code__ = FaultCode.INVALID_FORMAT
    __title__ = "invalid format"


class MissingValueError(ConversionError):
    __code__ = FaultCode.MISSING_VALUE
    __title__ = "missing value"


# --- definitions (build time) ---

class DefinitionError(CommandException):
    __code__ = FaultCode.INVALID_SYNTAX
    __title__ = "bad command definition"

    command = _field("command")


class EmptyCommandError(DefinitionError):
    __code__ = FaultCode.EMPTY_COMMAND
    __title__ = "command without variants"


class DuplicateCommandError(DefinitionError):
    __code__ = FaultCode.DUPLICATE_COMMAND
    __title__ = "duplicated command"


class FrozenTreeError(DefinitionError):
    __code__ = FaultCode.FROZEN_TREE
    __title__ = "command tree is frozen"


class UnknownPlaceholderError(DefinitionError):
    __code__ = FaultCode.UNKNOWN_PLACEHOLDER
    __title__ = "unknown placeholder"

    placeholder = _field("placeholder")


class ArgumentOrderMismatchError(DefinitionError):
    __code__ = FaultCode.ARGUMENT_ORDER_MISMATCH
    __title__ = "argument order mismatch"

    expected = _field("expected")
    found = _field("found")


class InvalidSyntaxError(DefinitionError):
    __code__ = FaultCode.INVALID_SYNTAX
    __title__ = "invalid syntax string"

    syntax = _field("syntax")


class UnknownArgumentTypeError(DefinitionError):
    __code__ = FaultCode.UNKNOWN_ARGUMENT_TYPE
    __title__ = "unknown argument type"

    type = _field("type")


# --- dispatching (run time) ---

class DispatchError(CommandException):
    __code__ = FaultCode.NO_MATCHING_SYNTAX
    __title__ = "dispatch error"

    command = _field("command")


class EmptyInputError(DispatchError):
    __code__ = FaultCode.EMPTY_INPUT
    __title__ = "empty input"


class CommandNotFoundError(DispatchError):
    __code__ = FaultCode.COMMAND_NOT_FOUND
    __title__ = "unknown command"

    name = _field("name")
    suggestions = _field("suggestions")


class ArgumentParseError(DispatchError):
    __code__ = FaultCode.ARGUMENT_PARSE
    __title__ = "bad argument"

    slot = _field("slot")
    expected_type = _field("expected_type")
    raw_token = _field("raw_token")
    cause = _field("cause")


class LiteralMismatchError(DispatchError):
    __code__ = FaultCode.LITERAL_MISMATCH
    __title__ = "unexpected word"

    expected = _field("expected")
    found = _field("found")


class MissingTokensError(DispatchError):
    __code__ = FaultCode.MISSING_TOKENS
    __title__ = "unexpected end of command"

    slot = _field("slot")


class UnparsedTokensError(DispatchError):
    __code__ = FaultCode.UNPARSED_TOKENS
    __title__ = "unparsed input"

    leftover = _field("leftover")


class NoMatchingSyntaxError(DispatchError):
    __code__ = FaultCode.NO_MATCHING_SYNTAX
    __title__ = "no matching syntax"

    diagnostic = _field("diagnostic")
    usage = _field("usage")


class HandlerError(DispatchError):
    __code__ = FaultCode.HANDLER
    __title__ = "command failed"

    cause = _field("cause")


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode (shell=True) the fault is printed through rich; otherwise it is raised.

    typical options
    - tool, shell, fancy, colorful, console, title, hint and any payload the
      renderer may want to show.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings. when
    not found, returns None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "CommandException",
    "TokenizeError",
    "UnterminatedQuoteError",
    "ConversionError",
    "ValueOverflowError",
    "InvalidDigitError",
    "InvalidFormatError",
    "MissingValueError",
    "DefinitionError",
    "EmptyCommandError",
    "DuplicateCommandError",
    "FrozenTreeError",
    "UnknownPlaceholderError",
    "ArgumentOrderMismatchError",
    "InvalidSyntaxError",
    "UnknownArgumentTypeError",
    "DispatchError",
    "EmptyInputError",
    "CommandNotFoundError",
    "ArgumentParseError",
    "LiteralMismatchError",
    "MissingTokensError",
    "UnparsedTokensError",
    "NoMatchingSyntaxError",
    "HandlerError",
    "trigger",
    "getdoc",
)
