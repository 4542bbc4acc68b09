r"""
Oberst tokenizer.

What this module provides
- Token: immutable (value, start, end, quoted) record; value is the text after
  quote removal, start/end the half-open span it covered in the source line.
- tokenize(line): split a raw command line into tokens.

Rules
- Tokens are separated by runs of whitespace.
- A double quote opens a quoted segment that runs until the next unescaped
  double quote; whitespace inside is kept verbatim.
- A backslash immediately followed by a double quote yields a literal quote
  (the backslash is dropped); any other backslash is kept as-is.
- Text glued to a quoted segment belongs to the same token: 'a"b c"d' → 'ab cd'.
- Input ending inside an open quote raises UnterminatedQuoteError.
- Empty or blank input yields an empty tuple (not an error).

Example
    >>> [token.value for token in tokenize('hello "John Smith" 3')]
    ['hello', 'John Smith', '3']
"""
from typing import NamedTuple

from .faults import FaultCode, UnterminatedQuoteError, getdoc


class Token(NamedTuple):
    value: str
    start: int
    end: int
    quoted: bool = False

    def __str__(self):
        return self.value


def tokenize(line, /):
    """
    Split a raw line into an ordered tuple of Token.

    Pure function of its input: no state is kept between calls.

    Raises
    - TypeError: when line is not a string.
    - UnterminatedQuoteError: when the line ends inside an open quote.
    """
    if not isinstance(line, str):
        raise TypeError("tokenize() argument must be a string")

    tokens = []
    length = len(line)
    index = 0

    while index < length:
        if line[index].isspace():
            index += 1
            continue

        start = index
        chunks = []
        quoted = False

        while index < length and not line[index].isspace():
            char = line[index]
            if char == "\\" and index + 1 < length and line[index + 1] == '"':
                chunks.append('"')
                index += 2
            elif char == '"':
                quoted = True
                opening = index
                index += 1
                while True:
                    if index >= length:
                        raise UnterminatedQuoteError(
                            "quote opened at column %d is never closed" % (opening + 1),
                            line=line,
                            position=opening,
                            hint="close the quote or escape it as \\\"",
                            docs=getdoc(FaultCode.UNTERMINATED_QUOTE),
                        )
                    char = line[index]
                    if char == "\\" and index + 1 < length and line[index + 1] == '"':
                        chunks.append('"')
                        index += 2
                    elif char == '"':
                        index += 1
                        break
                    else:
                        chunks.append(char)
                        index += 1
            else:
                chunks.append(char)
                index += 1

        tokens.append(Token("".join(chunks), start, index, quoted))

    return tuple(tokens)


__all__ = (
    "Token",
    "tokenize",
)
