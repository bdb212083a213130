"""
Flag spelling conventions.

A convention answers two questions for the parser:
- how is a declared modifier name spelled on the command line (canonicalize)
- does a token carry a modifier name and its parameter in one piece
  (is_inline / inline_name / inline_value)

Conventions are stateless; instances are passed to the parser explicitly so
that parsers with different conventions can coexist.

    >>> unix = UnixConvention()
    >>> unix.canonicalize("v"), unix.canonicalize("count")
    ('-v', '--count')
    >>> unix.is_inline("--count=5"), unix.inline_name("--count=5"), unix.inline_value("--count=5")
    (True, '--count', '5')
"""
from abc import ABC, abstractmethod
from typing import final


class Convention(ABC):
    """
    Strategy contract for spelling and recognising modifiers.

    Subclasses define `separator` (the character joining an inline name and
    parameter), `prefix` (the leading character every modifier spelling starts
    with) and `offset` (the first index where the separator may appear, so the
    prefix markers are never mistaken for the separator region), and implement
    canonicalize().
    """
    separator = "="
    prefix = "-"
    offset = 2

    @abstractmethod
    def canonicalize(self, name, /):
        """Return the on-command-line spelling of a declared modifier name."""

    def _validate(self, name):
        if not isinstance(name, str):
            raise TypeError("canonicalize() argument must be a string")
        elif not name:
            raise ValueError("canonicalize() argument must be a non-empty string")
        return name

    def _locate(self, token):
        if not isinstance(token, str) or not token.startswith(self.prefix):
            return -1
        return token.find(self.separator, self.offset)

    def is_inline(self, token, /):
        """True when the token embeds a name and a parameter joined by the separator."""
        return self._locate(token) != -1

    def inline_name(self, token, /):
        if (index := self._locate(token)) == -1:
            raise ValueError("inline_name() argument %r is not an inline modifier" % (token,))
        return token[:index]

    def inline_value(self, token, /):
        if (index := self._locate(token)) == -1:
            raise ValueError("inline_value() argument %r is not an inline modifier" % (token,))
        return token[index + len(self.separator):]

    def __repr__(self):
        return f"{type(self).__name__}()"

    def __eq__(self, other):
        return type(self) is type(other)

    def __hash__(self):
        return hash(type(self))


@final
class UnixConvention(Convention):
    """
    UNIX style: '-x' for one-character names, '--name' otherwise.
    Inline form: '-x=value' or '--name=value'.
    """
    separator = "="
    prefix = "-"
    offset = 2

    def canonicalize(self, name, /):
        name = self._validate(name)
        if len(name) == 1:
            return "-" + name
        return "--" + name


@final
class WindowsConvention(Convention):
    """
    Windows style: '/name' regardless of length.
    Inline form: '/name:value'.
    """
    separator = ":"
    prefix = "/"
    offset = 2

    def canonicalize(self, name, /):
        return "/" + self._validate(name)


__all__ = (
    "Convention",
    "UnixConvention",
    "WindowsConvention",
)
