"""
Oberst command layer: declare, validate, and collect commands into a tree.

What this module provides
- CommandDefinition: a command name, its non-empty tuple of variants and an
  optional description.
- CommandUsage: (name, usage, descr) summary used by help renderers.
- CommandTree: read-only mapping name → CommandDefinition, filled through
  register() during the registration phase and frozen before dispatching.
- Declaration / command(): decorator sugar collecting variants from plain
  functions, later handed to CommandTree.register().

Registration contract (CommandTree.register)
- name: non-empty word (no whitespace, no quotes), case-sensitive.
- variants: at least one (EmptyCommandError); each one is
  • a Variant already built,
  • a callable (parameters taken from its signature), or
  • a (handler, parameters[, syntax]) tuple for the explicit builder form.
- a name already present raises DuplicateCommandError.
- any variant fault aborts the whole registration: the tree never holds a
  half-registered command.
- a frozen tree raises FrozenTreeError.

Quick start
    from oberst import CommandTree, command

    hello = command("hello", descr="greets someone")

    @hello.variant
    def hello_world(context):
        print("hello", context.name)

    @hello.variant("<times> times")
    def hello_many(context, times: "u64"):
        for _ in range(times):
            print("hello", context.name)

    tree = CommandTree()
    tree.register(hello)
    tree.register("ping", [(lambda context: 0, ())], descr="answers with 0")
"""
import logging
from collections.abc import Iterable, Mapping
from typing import NamedTuple

from .arguments import Registry
from .faults import *
from .syntax import Variant
from .utils import *

logger = logging.getLogger(__name__)


class CommandUsage(NamedTuple):
    name: str
    usage: tuple
    descr: str | None = None


class CommandDefinition(NamedTuple):
    """
    A registered command.

    Fields
    - name: the word that selects the command (first token of a line).
    - variants: tuple of Variant, tried in this order when dispatching.
    - descr: optional one-line description.
    """
    name: str
    variants: tuple
    descr: str | None = None

    @property
    def usage(self):
        return tuple(variant.usage for variant in self.variants)

    def summary(self):
        return CommandUsage(self.name, self.usage, self.descr)


def _sanitize_name(name, /):
    """
    internal: validate a command name and return it stripped.
    """
    if not isinstance(name, str):
        raise TypeError("command name must be a string")
    elif not (name := name.strip()):
        raise ValueError("command name cannot be empty")
    elif any(char.isspace() or char in '"\\' for char in name):
        raise ValueError(f"command name {name!r} must be a single word without quotes")
    return name


def _sanitize_descr(descr, /):
    """
    internal: None when Unset; otherwise a non-empty trimmed string.
    """
    if not isinstance(descr, str | Unset | None):
        raise TypeError("command 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError("command 'descr' cannot be empty")
    return coalesce(descr)


class Declaration:
    """
    Collects the variants of one command from decorated functions.

    Each decorated function must take the context as its first parameter; the
    other parameters become the variant's arguments, typed by their annotations.
    The decorated functions are returned unchanged.

        greet = command("greet")

        @greet.variant
        def greet_anyone(context): ...

        @greet.variant("<person> twice")
        def greet_twice(context, person: str): ...
    """

    def __init__(self, name, /, descr=Unset):
        self._name = _sanitize_name(name)
        self._descr = _sanitize_descr(descr)
        self._entries = []

    name = property(lambda self: self._name)
    descr = property(lambda self: self._descr)

    def variant(self, source=Unset, /):
        """
        Register a handler as a variant, with an optional syntax string.

        Forms
        - @declaration.variant           → default syntax from the signature.
        - @declaration.variant("<x> y")  → custom syntax.
        """
        if callable(source):
            self._entries.append((source, Unset))
            return source
        if not isinstance(source, str | Unset):
            raise TypeError("variant() argument must be a callable or a syntax string")

        @rename("variant")
        def wrapper(handler, /):
            if not callable(handler):
                raise TypeError("@variant() must be applied to a callable")
            self._entries.append((handler, source))
            return handler

        return wrapper

    def build(self, types, /):
        """
        Build every collected variant against the given registry.
        """
        return tuple(
            Variant.from_callable(handler, syntax, types=types, command=self._name)
            for handler, syntax in self._entries
        )

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f"declaration(name={self._name!r}, variants={len(self._entries)})"


class CommandTree(Mapping):
    """
    Mapping of command name → CommandDefinition.

    Lifecycle
    - registration phase: register() adds commands; faults abort the offending
      command only.
    - dispatch phase: after freeze() the tree (and its argument registry) is
      read-only and may be shared freely, including across threads.
    """

    def __init__(self, types=Unset, /):
        if not isinstance(types, Registry | Unset):
            raise TypeError("command tree types must be an argument registry")
        self._types = coalesce(types, Registry.default())
        self._commands = {}
        self._frozen = False

    types = property(lambda self: self._types)
    frozen = property(lambda self: self._frozen)

    def freeze(self):
        """
        Make the tree and its argument registry read-only. Idempotent.
        """
        if not self._frozen:
            logger.debug("freezing command tree with %d command(s)", len(self._commands))
        self._frozen = True
        self._types.freeze()
        return self

    def register(self, source, variants=Unset, /, descr=Unset):
        """
        Validate and add a command.

        Forms
        - register(declaration[, descr=...])
        - register(name, variants[, descr=...])

        Returns
        - the new CommandDefinition.

        Raises
        - TypeError / ValueError on API misuse (bad name, bad variant entries).
        - FrozenTreeError, DuplicateCommandError, EmptyCommandError.
        - any DefinitionError raised while building a variant.
        """
        if isinstance(source, Declaration):
            if variants is not Unset:
                raise TypeError("register() takes no variants when given a declaration")
            name = source.name
            descr = source.descr if descr is Unset else _sanitize_descr(descr)
        else:
            name = _sanitize_name(source)
            descr = _sanitize_descr(descr)
            if variants is Unset:
                raise TypeError("register() missing required argument: 'variants'")
            if isinstance(variants, str) or not isinstance(variants, Iterable):
                raise TypeError("register() variants must be an iterable of variants")

        if self._frozen:
            raise FrozenTreeError(
                "cannot register %r: the command tree is frozen" % name,
                command=name,
                hint="register every command before the first dispatch",
            )

        if name in self._commands:
            raise DuplicateCommandError(
                "command %r is already registered" % name,
                command=name,
                hint="merge the variants into one registration or pick another name",
            )

        try:
            if isinstance(source, Declaration):
                built = source.build(self._types)
            else:
                built = tuple(self._build(entry, name) for entry in variants)
        except DefinitionError as error:
            logger.debug("rejected command %r: %s", name, error.message)
            raise

        if not built:
            raise EmptyCommandError(
                "command %r declares no variants" % name,
                command=name,
                hint="give the command at least one accepted syntax",
            )

        self._commands[name] = definition = CommandDefinition(name, built, descr)
        logger.debug("registered command %r with %d variant(s): %s", name, len(built), definition.usage)
        return definition

    def _build(self, entry, name, /):
        """
        internal: turn one variant entry into a validated Variant.
        """
        match entry:
            case Variant():
                # ready-made variants are validated again against this tree's registry
                return Variant.build(
                    entry.handler,
                    entry.parameters,
                    entry.nodes if entry.syntax is None else entry.syntax,
                    types=self._types,
                    command=name,
                )
            case (handler, parameters):
                return Variant.build(handler, parameters, types=self._types, command=name)
            case (handler, parameters, syntax):
                return Variant.build(handler, parameters, syntax, types=self._types, command=name)
            case _ if callable(entry):
                return Variant.from_callable(entry, types=self._types, command=name)
            case _:
                raise TypeError("command variants must be variants, callables or (handler, parameters[, syntax]) tuples")

    def usage(self, name, /):
        """
        Return the CommandUsage of a registered command (KeyError if unknown).
        """
        return self._commands[name].summary()

    def __getitem__(self, name, /):
        return self._commands[name]

    def __iter__(self):
        return iter(self._commands)

    def __len__(self):
        return len(self._commands)

    def __rich_repr__(self):
        yield "commands", tuple(self._commands)
        yield "frozen", self._frozen

    def __repr__(self):
        return "command-tree(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())


def command(name, /, descr=Unset):
    """
    Start a declaration for the command 'name'.

    Returns
    - Declaration: decorate handlers with .variant and pass it to CommandTree.register().
    """
    return Declaration(name, descr)


__all__ = (
    "CommandUsage",
    "CommandDefinition",
    "CommandTree",
    "Declaration",
    "command",
)
