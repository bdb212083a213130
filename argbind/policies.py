"""
Failure policies for the dispatch engine.

Two independent decisions, each fixed when a Parser is constructed:

- MissingParameterPolicy: what happens when a value-requiring modifier is the
  last token and has no parameter.
    ABORT   raise MissingParameterError
    REPORT  render the fault on stderr and stop the scan

- UnknownTokenPolicy: what happens with a token that is neither a known
  modifier, an inline modifier, nor an accepted positional.
    ABORT   raise UnrecognizedTokenError
    REPORT  render the fault on stderr and stop the scan
    SKIP    ignore the token and keep scanning

Unknown tokens are delegated to a handler: any callable
handler(positionals, token) -> UnknownTokenPolicy. The built-in handlers below
return a constant decision; collect(into) records the token before skipping.
"""
from enum import Enum

from .utils import rename


class MissingParameterPolicy(Enum):
    ABORT = "abort"
    REPORT = "report"


class UnknownTokenPolicy(Enum):
    ABORT = "abort"
    REPORT = "report"
    SKIP = "skip"


def abort(positionals, token, /):
    return UnknownTokenPolicy.ABORT


def report(positionals, token, /):
    return UnknownTokenPolicy.REPORT


def skip(positionals, token, /):
    return UnknownTokenPolicy.SKIP


def collect(into, /):
    """
    Build a handler that appends every unknown token to `into` and skips it.

        >>> strays = []
        >>> handler = collect(strays)
        >>> handler(("prog",), "--nope")
        <UnknownTokenPolicy.SKIP: 'skip'>
        >>> strays
        ['--nope']
    """
    if not hasattr(into, "append"):
        raise TypeError("collect() argument must support append()")

    @rename("collect")
    def handler(positionals, token, /):
        into.append(token)
        return UnknownTokenPolicy.SKIP

    return handler


_HANDLERS = {
    UnknownTokenPolicy.ABORT: abort,
    UnknownTokenPolicy.REPORT: report,
    UnknownTokenPolicy.SKIP: skip,
}


def resolve_handler(policy, /):
    """Turn an UnknownTokenPolicy member (or a handler) into a handler callable."""
    if isinstance(policy, UnknownTokenPolicy):
        return _HANDLERS[policy]
    if callable(policy):
        return policy
    raise TypeError("unknown-token policy must be an UnknownTokenPolicy or a callable")


__all__ = (
    "MissingParameterPolicy",
    "UnknownTokenPolicy",
    "abort",
    "report",
    "skip",
    "collect",
    "resolve_handler",
)
