"""
argbind faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
- ParserException / ParserWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting report/fancy/colorful).

UX goals
- Position-first messages: every message names the ordinal position of the
  offending token (“at third position”).
- Short titles, one-sentence bodies, a single clear hint.
- Styling configurable via __styles__ in __main__; program name via __prog__.

Integration
- The parser builds a fault and calls trigger(fault, **ctx).
- With report=False the exception is raised; with report=True it is rendered
  on the stderr console via rich and control returns to the parser, which
  stops the scan.
"""
import inspect
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used by the parser (stable identifiers).

    grouping
    - dispatch errors (211xx)
      • MISSING_PARAMETER, UNRECOGNIZED_TOKEN, CONVERSION_FAILURE
    - registration warnings (221xx)
      • DUPLICATE_MODIFIER
    """
    # --- dispatch errors (21xxx) ---
    MISSING_PARAMETER       = 21101
    UNRECOGNIZED_TOKEN      = 21102
    CONVERSION_FAILURE      = 21103

    # --- warnings (22xxx) ---
    DUPLICATE_MODIFIER      = 22101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _program(options):
    """Resolve the program label: __prog__ in __main__, then the 'prog' option."""
    return getattr(__import__("__main__"), "__prog__", options.get("prog") or "argbind")


def _render(self, palette, kind):
    main = __import__("__main__")
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = self.options.get("colorful", True)
    fancy = self.options.get("fancy", False)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        return Text(str(fragment), styles[style])

    code = self.options.get("code")
    header = Text.assemble(
        "[ ",
        text(_program(self.options), "prog-name"),
        " — ",
        text(code.normalize() if code is not None else "?", "code"),
        " | ",
        text(str(self.options.get("title", kind)).title(), "title"),
        " ]"
    )
    message = text(self.message, "message")
    hint = Text("")
    if self.options.get("hint"):
        hint = Text.assemble(text(" → ", "hint-arrow"), text(self.options["hint"], "hint"))

    if fancy:
        return Panel(Group(message, hint), title=header, title_align="left")
    return Group(header, message, hint)


class ParserException(Exception):
    """
    Base class of every dispatch fault.

    Carries a message and a read-only mapping of options. Common options are
    code (FaultCode), title, hint, token, index, and the rendering switches
    report, fancy, colorful and prog.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    @property
    def token(self):
        return self.options.get("token")

    @property
    def index(self):
        return self.options.get("index")

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "title": "bold #FF4DA6",
            "message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, "error")

    def __trigger__(self) -> None:
        if not self.options.get("report"):
            raise self from self.options.get("exception")
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class MissingParameterError(ParserException): ...
class UnrecognizedTokenError(ParserException): ...
class ConversionError(ParserException, ValueError): ...


class ParserWarning(ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "title": "bold #FFC2E0",
            "message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, "warning")

    def __trigger__(self) -> None:
        if not self.options.get("report"):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DuplicateModifierWarning(ParserWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - with report=True the fault is rendered on the stderr console; otherwise
      exceptions are raised and warnings are emitted through warnings.warn.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "ParserException",
    "MissingParameterError",
    "UnrecognizedTokenError",
    "ConversionError",
    "ParserWarning",
    "DuplicateModifierWarning",
    "FaultCode",
    "trigger",
)
