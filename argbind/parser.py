"""
argbind dispatch engine: register modifiers, then classify an argument vector.

What this module provides
- Parser: owns a Registry, a Convention and the two failure policies, and runs
  a single left-to-right scan over argv that
  • writes converted parameters into the bound slots as soon as a modifier is seen,
  • collects positional arguments (argv[0] first) when the caller opted in,
  • hands unrecognized tokens to the unknown-token handler,
  • stops on a missing parameter according to the missing-parameter policy.
- Outcome: what run() returns (fault, positionals, skipped, index).

Classification (per token, cursor starting at 1)
1. exact known spelling
   • value-requiring: bind the next token and skip both, or stop with
     MissingParameterError when there is no next token.
   • presence-only: bind with no parameter.
2. inline form accepted by the convention (e.g. --name=value)
   • bind the inline parameter when the name is a value-requiring modifier,
   • otherwise the whole token is unrecognized (never a positional).
3. anything else: positional when collecting, unrecognized otherwise.

Quick start
    from argbind import Parser, Slot

    parser = Parser()
    verbose, count, files = Slot(False), Slot(1), []
    parser.add_presence_flag("verbose", verbose)
    parser.add_valued_flag("count", count, int)
    parser.collect_positionals(files)
    parser.run(["prog", "--verbose", "--count=3", "a.txt"])
    # verbose.value is True, count.value == 3, files == ["prog", "a.txt"]

Failure model
- Bindings are applied immediately; a scan that stops early keeps what was
  already applied and leaves everything later untouched. Nothing is rolled back.
- ConversionError always propagates, whatever the policies say.
"""
import difflib
import os.path
import shlex
import sys
from collections.abc import Iterable, MutableSequence
from typing import NamedTuple

from .conventions import Convention, UnixConvention
from .faults import *
from .policies import MissingParameterPolicy, UnknownTokenPolicy, resolve_handler
from .registry import Registry
from .utils import Unset, coalesce, mirror, ordinal


class Outcome(NamedTuple):
    """
    Result of Parser.run().

    - fault: None on success, otherwise the fault that stopped a reporting scan.
    - positionals: collected positionals (argv[0] first), or () when not collecting.
    - skipped: tokens the unknown-token handler chose to skip.
    - index: cursor position where the scan ended.
    """
    fault: ParserException | None
    positionals: tuple[str, ...]
    skipped: tuple[str, ...]
    index: int

    @property
    def ok(self):
        return self.fault is None

    def __bool__(self):
        return self.ok


class Parser:
    """
    Declarative modifier parser.

    Parameters
    - convention: Convention instance (default: UnixConvention()).
    - on_missing: MissingParameterPolicy (default: ABORT).
    - on_unknown: UnknownTokenPolicy member or handler(positionals, token)
      returning one (default: ABORT).
    - fancy: render reported faults inside a panel.
    - colorful: colorize reported faults.

    Lifecycle
    - register modifiers (add_*), optionally collect_positionals(), then run().
    - the registry is locked during run(); registering from inside a converter
      or handler raises RuntimeError.
    - release() (or leaving a `with` block) drops every binder.
    """
    convention = mirror("convention")
    on_missing = mirror("on_missing")
    on_unknown = mirror("on_unknown")
    fancy = mirror("fancy")
    colorful = mirror("colorful")

    def __init__(
            self,
            convention=Unset,
            *,
            on_missing=MissingParameterPolicy.ABORT,
            on_unknown=UnknownTokenPolicy.ABORT,
            fancy=False,
            colorful=True,
    ):
        if not isinstance(convention, Convention | Unset):
            raise TypeError("Parser() argument must be a Convention")
        if not isinstance(on_missing, MissingParameterPolicy):
            raise TypeError("Parser() 'on_missing' must be a MissingParameterPolicy")
        self._registry = Registry(coalesce(convention, UnixConvention()))
        self._convention = self._registry.convention
        self._on_missing = on_missing
        self._on_unknown = on_unknown
        self._handler = resolve_handler(on_unknown)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        self._into = None
        self._prog = None

    @property
    def registry(self):
        return self._registry

    @property
    def collecting(self):
        return self._into is not None

    def add_presence_flag(self, name, target, /):
        return self._registry.add_presence_flag(name, target)

    def add_valued_flag(self, name, target, type=str, /):
        return self._registry.add_valued_flag(name, target, type)

    def add_custom_valued_flag(self, name, target, converter, /):
        return self._registry.add_custom_valued_flag(name, target, converter)

    def collect_positionals(self, into, /):
        """
        Opt in to positional collection.

        On a scan that runs to the end, the contents of `into` are replaced by
        argv[0] followed by every positional token in encounter order.
        """
        if not isinstance(into, MutableSequence):
            raise TypeError("collect_positionals() argument must be a mutable sequence")
        if self._registry.locked:
            raise RuntimeError("positional collection cannot be enabled while the parser is running")
        self._into = into

    def release(self):
        self._registry.release()
        self._into = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.release()

    def trigger(self, fault, /, report=False, **options):
        """Fire a fault with this parser's rendering options merged in; returns the merged fault."""
        fault = fault.__replace__(**options, report=report, fancy=self._fancy, colorful=self._colorful, prog=self._prog)
        trigger(fault)
        return fault

    @staticmethod
    def _tokenize(argv, argc):
        if argv is Unset:
            tokens = list(sys.argv)
        elif isinstance(argv, str):
            tokens = shlex.split(argv)
        elif isinstance(argv, Iterable):
            tokens = list(argv)
            for token in tokens:
                if not isinstance(token, str):
                    raise TypeError("run() argument must be a string or an iterable of strings")
        else:
            raise TypeError("run() argument must be a string or an iterable of strings")

        if argc is not Unset:
            if not isinstance(argc, int) or isinstance(argc, bool):
                raise TypeError("run() 'argc' must be an integer")
            elif not 0 <= argc <= len(tokens):
                raise ValueError("run() 'argc' must be between 0 and %d" % len(tokens))
            tokens = tokens[:argc]

        if not tokens:
            raise ValueError("run() argument must contain at least the invocation name")
        return tokens

    def run(self, argv=Unset, argc=Unset, /):
        """
        Scan argv once and apply every recognized modifier.

        Parameters
        - argv: Unset (use sys.argv), a shell-like string (split with shlex),
          or an iterable of strings; index 0 is the invocation name.
        - argc: optional number of leading tokens of argv to consider.

        Returns
        - Outcome; its fault is set only when a REPORT policy stopped the scan.

        Raises
        - MissingParameterError / UnrecognizedTokenError under ABORT policies.
        - ConversionError when a parameter cannot be converted.
        - RuntimeError if the parser was released or is already running.
        """
        tokens = self._tokenize(argv, argc)
        if self._registry.locked:
            raise RuntimeError("run() cannot be called while the parser is running")
        self._registry.lock()
        self._prog = os.path.basename(tokens[0])
        try:
            return self._dispatch(tokens)
        finally:
            self._registry.unlock()

    def _dispatch(self, tokens):
        registry = self._registry
        convention = self._convention
        positionals = [tokens[0]]
        skipped = []
        index = 1

        while index < len(tokens):
            token = tokens[index]

            if token in registry:
                if registry.requires_value(token):
                    if index + 1 < len(tokens):
                        self._bind(token, tokens[index + 1], index)
                        index += 2
                        continue
                    # only reached under REPORT; ABORT raised inside _missing()
                    return Outcome(self._missing(token, index), (), tuple(skipped), index)
                else:
                    self._bind(token, Unset, index)
            elif convention.is_inline(token):
                if registry.requires_value(name := convention.inline_name(token)):
                    self._bind(name, convention.inline_value(token), index)
                else:
                    fault = self._unknown(token, index, positionals, skipped)
                    if fault is not None:
                        return Outcome(fault, (), tuple(skipped), index)
            elif self._into is not None:
                positionals.append(token)
            else:
                fault = self._unknown(token, index, positionals, skipped)
                if fault is not None:
                    return Outcome(fault, (), tuple(skipped), index)

            index += 1

        if self._into is None:
            return Outcome(None, (), tuple(skipped), index)
        self._into[:] = positionals
        return Outcome(None, tuple(positionals), tuple(skipped), index)

    def _bind(self, spelling, raw, index):
        binder = self._registry[spelling]
        try:
            binder(raw)
        except ParserException:
            raise
        except (ValueError, TypeError, LookupError, ArithmeticError) as exception:
            typename = getattr(getattr(binder, "type", None), "__name__", "value")
            self.trigger(ConversionError(
                "parameter %r of modifier %r at %s position cannot be converted" % (raw, spelling, ordinal(index)),
                title="conversion error",
                code=FaultCode.CONVERSION_FAILURE,
                token=spelling,
                value=raw,
                index=index,
                hint="use a valid %s for %r" % (typename, spelling),
                exception=exception,
            ))

    def _missing(self, token, index):
        fault = MissingParameterError(
            "modifier %r at %s position is missing its parameter" % (token, ordinal(index)),
            title="missing parameter",
            code=FaultCode.MISSING_PARAMETER,
            token=token,
            index=index,
            hint="pass a value after it (for example: %s <value>)" % token,
        )
        return self.trigger(fault, report=self._on_missing is MissingParameterPolicy.REPORT)

    def _unknown(self, token, index, positionals, skipped):
        decision = self._handler(tuple(positionals), token)
        if not isinstance(decision, UnknownTokenPolicy):
            raise TypeError("unknown-token handler must return an UnknownTokenPolicy, got %r" % (decision,))
        if decision is UnknownTokenPolicy.SKIP:
            skipped.append(token)
            return None

        name = self._convention.inline_name(token) if self._convention.is_inline(token) else token
        suggestions = difflib.get_close_matches(name, self._registry.known, 3)
        try:
            hint = "did you mean %r?" % suggestions[0]
        except IndexError:
            hint = "remove it or check the spelling of the modifier"
        fault = UnrecognizedTokenError(
            "unrecognized argument %r at %s position" % (token, ordinal(index)),
            title="unrecognized argument",
            code=FaultCode.UNRECOGNIZED_TOKEN,
            token=token,
            index=index,
            suggestions=suggestions,
            hint=hint,
        )
        return self.trigger(fault, report=decision is UnknownTokenPolicy.REPORT)

    def __repr__(self):
        return "parser(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "convention", self._convention
        yield "known", sorted(self._registry.known)
        yield "valued", sorted(self._registry.valued)
        yield "on_missing", self._on_missing
        yield "on_unknown", self._on_unknown
        yield "collecting", self.collecting


__all__ = (
    "Parser",
    "Outcome",
)
