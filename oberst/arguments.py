r"""
Oberst argument types and their registry.

Overview
- Capabilities
  • ArgumentType: base of every parsing capability. parse(tokens) receives the
    tokens that remain after the slots already matched and returns a
    (value, consumed) pair, or raises a ConversionError.
  • Integer: base-10 integers of a fixed bit width, signed or unsigned.
  • Float: IEEE floating point values (32 or 64 bits).
  • Boolean: the literals 'true' and 'false' (case-sensitive).
  • String: exactly one token, taken verbatim (quotes already removed).

- Registry
  • maps a type identifier ('u64', 'str', ...) to a capability.
  • resolve(type) accepts a type identifier or one of the Python aliases
    str/int/float/bool (also as strings, which is what postponed annotations
    produce) and returns the canonical identifier.
  • parse(type_id, tokens) looks up the capability and runs it.
  • register(type_id, capability) adds custom capabilities, which may consume
    more than one token.
  • freeze() makes the registry read-only; trees freeze their registry with them.

Built-in identifiers
- u8 u16 u32 u64 u128 usize / i8 i16 i32 i64 i128 isize (usize/isize are 64 bits)
- f32 f64
- bool
- str

Guarantees
- Capabilities are stateless and shared read-only by every slot that uses them.
- Built-ins consume exactly one token and never look past it.
- A failed parse leaves no trace, so several variants can be tried speculatively.

Quick example:
    >>> registry = Registry.default()
    >>> registry.parse("u8", ("42", "times"))
    (42, 1)
    >>> registry.resolve(int)
    'i64'
"""
import math
import operator
import re
import struct
from collections.abc import Mapping

from .faults import *
from .utils import *


def _backed(field, /):
    """
    internal: read-only property over the private backing attribute '_<field>'.
    """
    getter = operator.attrgetter("_" + field)
    return property(rename(lambda self: getter(self), field))


class CapabilityType(type):
    """
    Metaclass giving argument types a stable, introspectable shape.

    Responsibilities
    - Expose the fields listed in __introspectable__ as read-only properties
      reading the private backing attribute (e.g. 'bits' reads '_bits').
    - Provide __typename__ (class name split on camel-case, hyphenated) for messages.
    - Provide a compact __repr__ and a __rich_repr__ for pretty printers.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                field: _backed(field) for field in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return "%s(%s)" % (
                type(self).__typename__,
                ", ".join("%s=%r" % pair for pair in self.__rich_repr__())
            )
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for field in type(self).__introspectable__:
                yield field, getattr(self, field)
        self.__rich_repr__ = __rich_repr__

        return self


def _head(capability, tokens, /):
    """
    internal: return the text of the first remaining token, or raise MissingValueError.
    """
    if not tokens:
        raise MissingValueError(
            "expected a value of type %r but the command ended" % capability.name,
            type=capability.name,
            raw=None,
            hint="add a %s value" % capability.name,
        )
    return str(tokens[0])


class ArgumentType(metaclass=CapabilityType):
    """
    Base parsing capability.

    Subclasses implement parse(tokens) -> (value, consumed). 'tokens' is an
    immutable sequence (Token or str items) positioned at the slot being parsed.
    """
    __introspectable__ = ("name",)

    def __init__(self, name, /):
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} name must be a string")
        elif not (name := name.strip()) or any(char.isspace() for char in name):
            raise ValueError(f"{type(self).__typename__} name must be a non-empty word")
        self._name = name

    def parse(self, tokens, /):
        raise NotImplementedError(f"{type(self).__typename__} does not implement parse()")

    def __str__(self):
        return self._name


class Integer(ArgumentType):
    """
    Base-10 integer of a fixed width.

    - unsigned: digits only ('0'-'9'); signed: an optional leading '-'.
    - anything else (including '+', spaces, underscores or an empty body) raises
      InvalidDigitError.
    - values outside [minimum, maximum] raise ValueOverflowError.
    """
    __introspectable__ = ("name", "bits", "signed")

    def __init__(self, name, /, bits, signed):
        super().__init__(name)
        if not isinstance(bits, int) or bits < 1:
            raise ValueError("integer 'bits' must be a positive integer")
        self._bits = bits
        self._signed = bool(signed)
        self._pattern = re.compile(r"-?[0-9]+" if signed else r"[0-9]+")

    @property
    def minimum(self):
        return -(1 << (self._bits - 1)) if self._signed else 0

    @property
    def maximum(self):
        return (1 << (self._bits - 1)) - 1 if self._signed else (1 << self._bits) - 1

    def parse(self, tokens, /):
        raw = _head(self, tokens)
        if not self._pattern.fullmatch(raw):
            raise InvalidDigitError(
                "%r is not a valid %s" % (raw, self._name),
                type=self._name,
                raw=raw,
                hint="use base-10 digits%s" % (" with an optional leading '-'" if self._signed else " only"),
            )
        digits = raw.lstrip("-").lstrip("0") or "0"
        # int() refuses very long digit strings, so their length is checked first.
        if len(digits) <= len(str(max(-self.minimum, self.maximum))):
            value = -int(digits) if raw.startswith("-") else int(digits)
            if self.minimum <= value <= self.maximum:
                return value, 1
        raise ValueOverflowError(
            "%s does not fit in %s" % (raw if len(raw) <= 40 else raw[:37] + "...", self._name),
            type=self._name,
            raw=raw,
            hint="use a value between %d and %d" % (self.minimum, self.maximum),
        )


class Float(ArgumentType):
    """
    IEEE floating point number.

    Accepts decimal and exponent notation ('1', '-2.5', '.5', '3e8') and the
    special names inf/infinity/nan (any case). Values too large for the width
    become infinity, as IEEE rounding does.
    """
    __introspectable__ = ("name", "bits")

    _pattern = re.compile(
        r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|(?i:inf|infinity|nan))"
    )

    def __init__(self, name, /, bits=64):
        super().__init__(name)
        if bits not in (32, 64):
            raise ValueError("float 'bits' must be 32 or 64")
        self._bits = bits

    def parse(self, tokens, /):
        raw = _head(self, tokens)
        if not self._pattern.fullmatch(raw):
            raise InvalidFormatError(
                "%r is not a valid %s" % (raw, self._name),
                type=self._name,
                raw=raw,
                hint="use a decimal number such as 1.5 or 2e3",
            )
        value = float(raw)
        if self._bits == 32:
            try:
                value, = struct.unpack("f", struct.pack("f", value))
            except OverflowError:
                value = math.copysign(math.inf, value)
        return value, 1


class Boolean(ArgumentType):
    """
    The case-sensitive literals 'true' and 'false'.
    """

    def __init__(self, name="bool", /):
        super().__init__(name)

    def parse(self, tokens, /):
        match raw := _head(self, tokens):
            case "true":
                return True, 1
            case "false":
                return False, 1
        raise InvalidFormatError(
            "%r is not a valid %s" % (raw, self._name),
            type=self._name,
            raw=raw,
            hint="use 'true' or 'false'",
        )


class String(ArgumentType):
    """
    One token, verbatim. Quote removal already happened in the tokenizer.
    """

    def __init__(self, name="str", /):
        super().__init__(name)

    def parse(self, tokens, /):
        return _head(self, tokens), 1


# Python types (and their names, as postponed annotations spell them) accepted
# wherever a type identifier is expected.
_aliases = {
    str: "str",
    int: "i64",
    float: "f64",
    bool: "bool",
    "int": "i64",
    "float": "f64",
}


class Registry(Mapping):
    """
    Type identifier → ArgumentType mapping with build-time resolution.

    Lifecycle
    - Built (usually via Registry.default()) and extended during registration.
    - Frozen together with the command tree; registering afterwards raises
      FrozenTreeError.
    """

    def __init__(self, types=(), /):
        self._types = {}
        self._frozen = False
        for identifier, capability in dict(types).items():
            self.register(identifier, capability)

    @classmethod
    def default(cls):
        """
        Return a fresh registry holding every built-in capability.
        """
        registry = cls()
        for bits in (8, 16, 32, 64, 128):
            registry.register("u%d" % bits, Integer("u%d" % bits, bits=bits, signed=False))
            registry.register("i%d" % bits, Integer("i%d" % bits, bits=bits, signed=True))
        registry.register("usize", Integer("usize", bits=64, signed=False))
        registry.register("isize", Integer("isize", bits=64, signed=True))
        registry.register("f32", Float("f32", bits=32))
        registry.register("f64", Float("f64", bits=64))
        registry.register("bool", Boolean())
        registry.register("str", String())
        return registry

    @property
    def frozen(self):
        return self._frozen

    def freeze(self):
        self._frozen = True
        return self

    def register(self, identifier, capability, /, *, replace=False):
        """
        Bind a capability to a type identifier.

        Raises
        - TypeError: identifier not a string, or capability not an ArgumentType.
        - ValueError: identifier empty/blank, or already bound and replace is False.
        - FrozenTreeError: the registry was frozen.
        """
        if not isinstance(identifier, str):
            raise TypeError("register() type identifier must be a string")
        elif not (identifier := identifier.strip()) or any(char.isspace() for char in identifier):
            raise ValueError("register() type identifier must be a non-empty word")
        if not isinstance(capability, ArgumentType):
            raise TypeError("register() capability must be an argument type")
        if self._frozen:
            raise FrozenTreeError(
                "cannot register type %r: the argument registry is frozen" % identifier,
                command=None,
                hint="register argument types before the first dispatch",
            )
        if identifier in self._types and not replace:
            raise ValueError(f"argument type {identifier!r} is already registered")
        self._types[identifier] = capability
        return capability

    def resolve(self, type, /):
        """
        Return the canonical identifier for a type identifier or Python alias.

        Raises
        - UnknownArgumentTypeError: nothing is registered under that name.
        """
        try:
            identifier = _aliases.get(type, type)
        except TypeError:  # unhashable
            identifier = type
        if isinstance(identifier, str) and identifier in self._types:
            return identifier
        raise UnknownArgumentTypeError(
            "no argument type is registered for %r" % (getattr(type, "__name__", type),),
            type=type,
            command=None,
            hint="use one of: %s" % ", ".join(sorted(self._types)),
        )

    def parse(self, identifier, tokens, /):
        """
        Parse a value of the given type from the leading tokens.

        Returns
        - (value, consumed): consumed is at least 1 for the built-ins.

        Raises
        - UnknownArgumentTypeError for an unknown identifier.
        - ConversionError (or a subclass) when the tokens do not hold a valid value,
          or when the capability reports a token count it could not have consumed.
        """
        capability = self[self.resolve(identifier)]
        value, consumed = capability.parse(tokens := tuple(tokens))
        if not isinstance(consumed, int) or not 0 <= consumed <= len(tokens):
            raise ConversionError(
                "argument type %r reported an invalid token count %r" % (capability.name, consumed),
                type=capability.name,
                raw=str(tokens[0]) if tokens else None,
                hint="parse() must consume between 0 and %d token(s)" % len(tokens),
            )
        return value, consumed

    def __getitem__(self, identifier, /):
        return self._types[identifier]

    def __iter__(self):
        return iter(self._types)

    def __len__(self):
        return len(self._types)

    def __repr__(self):
        return "registry(%s)" % ", ".join(self._types)


__all__ = (
    "ArgumentType",
    "Integer",
    "Float",
    "Boolean",
    "String",
    "Registry",
)

# Keep the metaclass out of star-imports and docs; not part of the public API.
del CapabilityType
