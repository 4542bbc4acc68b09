"""
Oberst syntax variants.

What this module provides
- Literal(text): a slot that must equal its token exactly.
- Argument(name, type): a slot parsed by the argument type registered as 'type'.
- Parameter(name, type): one declared handler parameter (the context excluded).
- Variant: one accepted syntax of a command: its slots, its handler and the
  handler's parameter order. Built and validated once, matched many times.

Building a variant (Variant.build)
- default syntax (no syntax given): one Argument per parameter, in order.
- syntax string: whitespace-separated words; '<name>' is a placeholder bound to
  the parameter called 'name', any other word is a literal.
      "<times> times"  →  Argument('times', 'u64'), Literal('times')
- explicit slots: a sequence of Literal/Argument given directly.
- Variant.from_callable derives the parameters from the handler's signature
  (first parameter is the context; annotations give the types, 'str' when absent).

Build-time checks (raised eagerly, never at dispatch)
- InvalidSyntaxError: malformed placeholder, or a literal that can never match.
- UnknownPlaceholderError: a placeholder naming no parameter.
- ArgumentOrderMismatchError: placeholders out of the parameters' order,
  repeated, missing, or typed differently from their parameter.
- UnknownArgumentTypeError: a parameter type that the registry cannot resolve.

Matching (Variant.match)
- walks the slots over the remaining tokens; every literal must be equal, every
  argument must parse, and every token must be consumed. The first problem is
  raised as a diagnostic (LiteralMismatchError, MissingTokensError,
  ArgumentParseError, UnparsedTokensError); nothing is invoked here.
"""
import copy
import inspect
import re
from inspect import Parameter as _Parameter
from typing import NamedTuple

from .faults import *
from .utils import *


class Literal(NamedTuple):
    text: str

    def __str__(self):
        return self.text


class Argument(NamedTuple):
    name: str
    type: str

    def __str__(self):
        return "<%s: %s>" % (self.name, self.type)


class Parameter(NamedTuple):
    name: str
    type: object = "str"


def _annotation(annotation, /):
    """
    internal: turn a signature annotation into something Registry.resolve accepts.

    postponed annotations turn `times: "u64"` into the string "'u64'"; the extra
    quotes are stripped.
    """
    if annotation is _Parameter.empty:
        return "str"
    if isinstance(annotation, str) and len(annotation) > 1 and annotation[0] == annotation[-1] and annotation[0] in "'\"":
        return annotation[1:-1]
    return annotation


def _normalize(parameters, /):
    """
    internal: coerce parameter declarations into a tuple of Parameter.

    accepted items: Parameter, (name, type) pairs and bare names (typed 'str').
    """
    if isinstance(parameters, str):
        raise TypeError("variant parameters must be a sequence, not a string")
    normalized = []
    for parameter in parameters:
        match parameter:
            case Parameter():
                pass
            case str():
                parameter = Parameter(parameter)
            case (str() as name, type):
                parameter = Parameter(name, type)
            case _:
                raise TypeError("variant parameters must be names or (name, type) pairs")
        if not parameter.name.isidentifier():
            raise ValueError(f"variant parameter name {parameter.name!r} is not an identifier")
        if any(parameter.name == other.name for other in normalized):
            raise ValueError(f"variant parameter name {parameter.name!r} is declared twice")
        normalized.append(parameter)
    return tuple(normalized)


class Variant(NamedTuple):
    """
    One accepted syntax of a command.

    Fields
    - nodes: tuple of Literal/Argument, in matching order.
    - handler: callable invoked as handler(context, *values).
    - parameters: tuple of Parameter with canonical type identifiers.
    - syntax: the source syntax string, or None for default/explicit variants.

    Invariant: the names of the Argument nodes, left to right, equal the
    parameter names in order. Variant.build is the only place that checks it.
    """
    nodes: tuple
    handler: object
    parameters: tuple
    syntax: str | None = None

    @property
    def usage(self):
        """
        Human-readable form, e.g. '<times: u64> times'.
        """
        return " ".join(map(str, self.nodes))

    @property
    def arguments(self):
        return tuple(node for node in self.nodes if isinstance(node, Argument))

    @classmethod
    def build(cls, handler, parameters=(), syntax=Unset, /, *, types, command=Unset):
        """
        Build and validate a variant.

        Parameters
        - handler: callable taking the context followed by one value per parameter.
        - parameters: declared parameter order (Parameter, (name, type) or name).
        - syntax: Unset (default variant), a syntax string, or a sequence of
          Literal/Argument nodes.
        - types: the Registry used to resolve parameter types.
        - command: command name, only used to enrich fault messages.

        Raises
        - TypeError / ValueError on API misuse (non-callable handler, bad names).
        - DefinitionError subclasses on invalid syntax (see module docstring).
        """
        if not callable(handler):
            raise TypeError("variant handler must be callable")
        command = coalesce(command)

        resolved = []
        for parameter in _normalize(parameters):
            try:
                resolved.append(Parameter(parameter.name, types.resolve(parameter.type)))
            except UnknownArgumentTypeError as error:
                raise copy.replace(
                    error,
                    command=command,
                    parameter=parameter.name,
                ) from None
        parameters = tuple(resolved)
        lookup = {parameter.name: parameter for parameter in parameters}

        match syntax:
            case UnsetType():
                nodes = tuple(Argument(parameter.name, parameter.type) for parameter in parameters)
                source = None
            case str():
                nodes = _compile(syntax, lookup, command=command)
                source = " ".join(syntax.split())
            case _:
                nodes = _explicit(syntax, lookup, types, command=command)
                source = None

        _check_order(nodes, parameters, command=command, syntax=source)
        return cls(nodes, handler, parameters, source)

    @classmethod
    def from_callable(cls, handler, syntax=Unset, /, *, types, command=Unset):
        """
        Build a variant whose parameters come from the handler's signature.

        The first parameter receives the context and is skipped. The remaining
        ones must be positional; their annotations give the argument types.
        """
        try:
            signature = inspect.signature(handler)
        except (TypeError, ValueError):
            raise TypeError("variant handler must be a callable with an inspectable signature") from None

        parameters = list(signature.parameters.values())
        if not parameters or parameters[0].kind not in (_Parameter.POSITIONAL_ONLY, _Parameter.POSITIONAL_OR_KEYWORD):
            raise TypeError("variant handler must accept the context as its first positional parameter")

        declared = []
        for parameter in parameters[1:]:
            if parameter.kind not in (_Parameter.POSITIONAL_ONLY, _Parameter.POSITIONAL_OR_KEYWORD):
                raise TypeError(f"variant handler parameter {parameter.name!r} must be positional")
            declared.append(Parameter(parameter.name, _annotation(parameter.annotation)))

        return cls.build(handler, declared, syntax, types=types, command=command)

    def match(self, tokens, types, /, *, command=Unset, offset=1):
        """
        Match the remaining tokens against this variant.

        Parameters
        - tokens: tokens following the command name.
        - types: Registry used to parse argument slots.
        - command: command name (for messages).
        - offset: number of tokens before 'tokens' in the line (for ordinal positions).

        Returns
        - tuple of parsed values, in parameter order.

        Raises
        - LiteralMismatchError, MissingTokensError, ArgumentParseError or
          UnparsedTokensError describing the first problem met.
        """
        tokens = tuple(tokens)
        command = coalesce(command)
        values = []
        index = 0

        for slot in self.nodes:
            remaining = tokens[index:]
            position = ordinal(offset + index + 1)
            if isinstance(slot, Literal):
                if not remaining:
                    raise MissingTokensError(
                        "expected %r at %s position but the command ended" % (slot.text, position),
                        command=command,
                        slot=slot,
                        usage=self.usage,
                        hint="the full form is '%s %s'" % (command, self.usage),
                    )
                if (found := str(remaining[0])) != slot.text:
                    raise LiteralMismatchError(
                        "expected %r at %s position but found %r" % (slot.text, position, found),
                        command=command,
                        expected=slot.text,
                        found=found,
                        token=remaining[0],
                        hint="the full form is '%s %s'" % (command, self.usage),
                    )
                index += 1
                continue

            try:
                value, consumed = types.parse(slot.type, remaining)
            except ConversionError as error:
                raw = str(remaining[0]) if remaining else None
                raise ArgumentParseError(
                    "bad value for <%s> at %s position: %s" % (slot.name, position, error.message),
                    command=command,
                    slot=slot,
                    expected_type=slot.type,
                    raw_token=raw,
                    cause=error,
                    hint=error.hint,
                ) from error
            values.append(value)
            index += consumed

        if index < len(tokens):
            leftover = tuple(str(token) for token in tokens[index:])
            raise UnparsedTokensError(
                "unexpected %r at %s position" % (leftover[0], ordinal(offset + index + 1)),
                command=command,
                leftover=leftover,
                hint="remove the extra input; the full form is '%s %s'" % (command, self.usage),
            )

        return tuple(values)


_placeholder = re.compile(r"<([^\W\d]\w*)>")


def _compile(syntax, lookup, /, *, command):
    """
    internal: translate a syntax string into nodes (names and literals only;
    order is checked afterwards).
    """
    nodes = []
    for word in syntax.split():
        if match := _placeholder.fullmatch(word):
            if (name := match[1]) not in lookup:
                raise UnknownPlaceholderError(
                    "placeholder <%s> in %r names no parameter" % (name, syntax),
                    command=command,
                    placeholder=name,
                    syntax=syntax,
                    hint="declared parameters: %s" % (", ".join(lookup) or "none"),
                )
            nodes.append(Argument(name, lookup[name].type))
        elif set(word) & set('<>"'):
            raise InvalidSyntaxError(
                "malformed word %r in syntax %r" % (word, syntax),
                command=command,
                syntax=syntax,
                hint="placeholders are written '<name>' as a word on their own",
            )
        else:
            nodes.append(Literal(word))
    return tuple(nodes)


def _explicit(nodes, lookup, types, /, *, command):
    """
    internal: validate explicitly given Literal/Argument nodes.
    """
    if isinstance(nodes, (str, bytes)) or not hasattr(nodes, "__iter__"):
        raise TypeError("variant syntax must be a string or a sequence of Literal/Argument")

    validated = []
    for node in nodes:
        match node:
            case Literal(text=str() as text) if text and not set(text) & set('"') and not any(char.isspace() for char in text):
                validated.append(node)
            case Literal():
                raise InvalidSyntaxError(
                    "literal %r can never match a token" % (node.text,),
                    command=command,
                    syntax=node,
                    hint="literals are single non-empty words",
                )
            case Argument(name=name) if name not in lookup:
                raise UnknownPlaceholderError(
                    "argument <%s> names no parameter" % name,
                    command=command,
                    placeholder=name,
                    syntax=node,
                    hint="declared parameters: %s" % (", ".join(lookup) or "none"),
                )
            case Argument(name=name, type=type):
                try:
                    type = types.resolve(type)
                except UnknownArgumentTypeError as error:
                    raise copy.replace(error, command=command, parameter=name) from None
                if type != lookup[name].type:
                    raise ArgumentOrderMismatchError(
                        "argument <%s> is typed %s but its parameter is %s" % (name, type, lookup[name].type),
                        command=command,
                        expected=lookup[name].type,
                        found=type,
                        hint="make the slot type agree with the parameter",
                    )
                validated.append(Argument(name, type))
            case _:
                raise TypeError("variant syntax items must be Literal or Argument")
    return tuple(validated)


def _check_order(nodes, parameters, /, *, command, syntax):
    """
    internal: the argument names, left to right, must equal the parameter names.
    """
    found = tuple(node.name for node in nodes if isinstance(node, Argument))
    expected = tuple(parameter.name for parameter in parameters)
    if found == expected:
        return

    for index, (left, right) in enumerate(zip(found, expected), start=1):
        if left != right:
            message = "the %s placeholder is <%s> but the %s parameter is %r" % (
                ordinal(index), left, ordinal(index), right
            )
            break
    else:
        if len(found) > len(expected):
            message = "placeholder <%s> is repeated" % found[len(expected)]
        else:
            message = "parameter %r has no placeholder" % expected[len(found)]

    raise ArgumentOrderMismatchError(
        message,
        command=command,
        expected=expected,
        found=found,
        syntax=syntax,
        hint="write the placeholders in the order of the handler parameters: %s" % (
            " ".join("<%s>" % name for name in expected) or "(none)"
        ),
    )


__all__ = (
    "Literal",
    "Argument",
    "Parameter",
    "Variant",
)
