"""
Quiver tokenizer: split a raw command line into tokens.

Rules
- Unquoted whitespace separates tokens; runs of whitespace never yield empty tokens.
- Double and single quotes group text, and are stripped from the token.
  While one quote style is open, the other one is an ordinary character,
  so 'say "hi"' and "it's" both work.
- A backslash escapes the next character, but only inside quotes.
  Outside quotes it is kept literally (Windows-like paths stay intact).
- End of input inside a quote is not fatal: the tokens read so far, including
  the partial one, are returned together with the kind of quote left open.

Inverse
- join(tokens) quotes every token that would not survive a tokenize() round-trip
  and joins them with single spaces, so tokenize(join(tokens)).tokens == tokens
  for any tokens that are non-empty.

Quick example
    >>> tokenize('give "Steve Jobs" apple').tokens
    ('give', 'Steve Jobs', 'apple')
    >>> tokenize('say "hello').error
    'unclosed double quote'
"""
from collections.abc import Iterable
from typing import NamedTuple


class Tokenization(NamedTuple):
    """
    Result of tokenize(): the tokens read, and which quote (if any) was left open.
    """
    tokens: tuple[str, ...]
    unclosed: str | None = None

    @property
    def ok(self):
        return self.unclosed is None

    @property
    def error(self):
        """
        Lowercase reason for a tokenization failure, None when the line was well-formed.
        """
        match self.unclosed:
            case None:
                return None
            case '"':
                return "unclosed double quote"
            case "'":
                return "unclosed single quote"


def tokenize(line, /):
    """
    Split line into tokens.

    Parameters
    - line: str, or an iterable of pre-split pieces. Pieces are joined with a single
      space and tokenized again, which recovers quoted spans a naive splitter broke up.

    Returns
    - Tokenization(tokens, unclosed)
    """
    if not isinstance(line, str):
        if not isinstance(line, Iterable):
            raise TypeError("tokenize() argument must be a string or an iterable of strings")
        pieces = tuple(line)
        if not all(isinstance(piece, str) for piece in pieces):
            raise TypeError("tokenize() pieces must be strings")
        line = " ".join(pieces)

    tokens = []
    current = []
    double = single = escaped = False

    for char in line:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\" and (double or single):
            escaped = True
        elif char == '"' and not single:
            double = not double
        elif char == "'" and not double:
            single = not single
        elif char.isspace() and not (double or single):
            if current:
                tokens.append("".join(current))
                current.clear()
        else:
            current.append(char)

    # A trailing lone backslash inside quotes escapes nothing and is dropped.
    if current:
        tokens.append("".join(current))

    return Tokenization(tuple(tokens), '"' if double else "'" if single else None)


def needs_quoting(token, /):
    """
    Whether token must be quoted to survive a tokenize() round-trip.
    """
    return not token or any(char.isspace() or char in "\"'" for char in token)


def quote(token, /):
    """
    Wrap token in double quotes (escaping backslashes and double quotes) when needed.
    """
    if not needs_quoting(token):
        return token
    return '"%s"' % token.replace("\\", "\\\\").replace('"', '\\"')


def join(tokens, /):
    """
    Rebuild a command line from tokens; inverse of tokenize() for non-empty tokens.
    """
    return " ".join(map(quote, tokens))


__all__ = (
    "Tokenization",
    "tokenize",
    "needs_quoting",
    "quote",
    "join",
)
