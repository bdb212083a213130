"""
Modifier registry: canonical spelling → binder.

The registry is filled by registration calls before a parse and is read-only
while the parser is running. It owns every binder it installs and drops them
all on release().

Invariants
- `valued` is always a subset of `known`.
- Each canonical spelling maps to exactly one binder; registering the same
  spelling again replaces the earlier binder and role (and emits a
  DuplicateModifierWarning).
"""
import inspect

from .binders import Binder, PresenceBinder, ValueBinder, CallableBinder
from .conventions import Convention, UnixConvention
from .faults import DuplicateModifierWarning, FaultCode, trigger
from .utils import Unset, coalesce, mirror


class Registry:
    convention = mirror("convention")

    def __init__(self, convention=Unset, /):
        if not isinstance(convention, Convention | Unset):
            raise TypeError("Registry() argument must be a Convention")
        self._convention = coalesce(convention, UnixConvention())
        self._binders = {}
        self._valued = set()
        self._locked = False
        self._released = False

    @property
    def known(self):
        return frozenset(self._binders)

    @property
    def valued(self):
        return frozenset(self._valued)

    @property
    def locked(self):
        return self._locked

    @property
    def released(self):
        return self._released

    def __contains__(self, spelling):
        return spelling in self._binders

    def __len__(self):
        return len(self._binders)

    def __iter__(self):
        return iter(self._binders)

    def __getitem__(self, spelling):
        return self._binders[spelling]

    def requires_value(self, spelling, /):
        return spelling in self._valued

    def _install(self, name, binder, valued):
        if self._locked:
            raise RuntimeError("registry cannot be modified while the parser is running")
        if self._released:
            raise RuntimeError("registry was released")
        spelling = self._convention.canonicalize(name)
        if spelling in self._binders:
            trigger(DuplicateModifierWarning(
                "modifier %r is registered more than once; the latest registration wins" % spelling,
                title="duplicate modifier",
                code=FaultCode.DUPLICATE_MODIFIER,
                token=spelling,
                hint="register each modifier name once",
            ))
        self._binders[spelling] = binder
        if valued:
            self._valued.add(spelling)
        else:
            self._valued.discard(spelling)
        return binder

    def add_presence_flag(self, name, target, /):
        """Declare a presence-only modifier that sets target.value to True."""
        return self._install(name, PresenceBinder(target), False)

    def add_valued_flag(self, name, target, type=str, /):
        """Declare a value-requiring modifier converted with the built-in converter for `type`."""
        return self._install(name, ValueBinder(target, type), True)

    def add_custom_valued_flag(self, name, target, converter, /):
        """
        Declare a value-requiring modifier with a caller-supplied conversion.

        `converter` is either a Binder subclass, instantiated with the target,
        or any callable mapping the raw text to the stored value.
        """
        if inspect.isclass(converter) and issubclass(converter, Binder):
            binder = converter(target)
        elif callable(converter):
            binder = CallableBinder(target, converter)
        else:
            raise TypeError("add_custom_valued_flag() converter must be a Binder subclass or a callable")
        return self._install(name, binder, True)

    def lock(self):
        if self._released:
            raise RuntimeError("registry was released")
        self._locked = True

    def unlock(self):
        self._locked = False

    def release(self):
        """Drop every binder. The registry cannot be used afterwards."""
        if self._locked:
            raise RuntimeError("registry cannot be released while the parser is running")
        self._binders.clear()
        self._valued.clear()
        self._released = True

    def __repr__(self):
        return f"Registry({self._convention!r}, known={sorted(self._binders)!r}, valued={sorted(self._valued)!r})"


__all__ = (
    "Registry",
)
