r"""
argbind value binders and storage slots.

Overview
- Storage
  • Slot[_T]: a caller-owned cell exposing a writable `value` attribute.
  • AttributeSlot: exposes an attribute of any object as a slot
    (e.g. a dataclass instance or a SimpleNamespace used as settings record).
  Any object with a writable `value` attribute can be used as a binding target.

- Binders
  • Binder: base class. Holds a non-owning reference to its slot and applies
    either “no parameter” (presence) or a raw text parameter to it.
  • PresenceBinder: writes True on presence; never takes a parameter.
  • ValueBinder: converts the raw text with a built-in converter chosen by type.
  • CallableBinder: converts the raw text with a caller-supplied callable.

Conversion
- Built-in converters: str, int, float, complex, bool, pathlib.Path.
- Converters raise ValueError, TypeError, LookupError or ArithmeticError on bad
  input; the parser turns those into ConversionError with the offending flag
  and position attached.

Quick example:
    >>> verbose, count = Slot(False), Slot(0)
    >>> PresenceBinder(verbose)()
    >>> ValueBinder(count, int)("5")
    >>> verbose.value, count.value
    (True, 5)
"""
import pathlib

from .utils import Unset, mirror


class Slot[_T]:
    """
    Externally-owned storage cell bound to a modifier.

    The parser never creates slots: callers create them, keep them, and read
    `value` after parsing. Slots must outlive the parser that writes to them.
    """
    __slots__ = ("value",)

    def __init__(self, value=None):
        self.value = value

    def __repr__(self):
        return f"Slot({self.value!r})"

    def __eq__(self, other):
        if isinstance(other, Slot):
            return self.value == other.value
        return NotImplemented

    __hash__ = None


class AttributeSlot:
    """
    Slot view over an attribute of another object.

    Reads and writes go straight to `getattr(object, name)` / `setattr(object, name, ...)`.
    """
    __slots__ = ("_object", "_name")

    def __init__(self, object, name, /):
        if not isinstance(name, str):
            raise TypeError("AttributeSlot() second argument must be a string")
        elif not name.isidentifier():
            raise ValueError("AttributeSlot() second argument must be an identifier")
        self._object = object
        self._name = name

    @property
    def value(self):
        return getattr(self._object, self._name)

    @value.setter
    def value(self, value):
        setattr(self._object, self._name, value)

    def __repr__(self):
        return f"AttributeSlot({type(self._object).__name__}, {self._name!r})"


def _slot(target):
    if not hasattr(target, "value"):
        raise TypeError("binding target must expose a writable 'value' attribute (use Slot or AttributeSlot)")
    return target


_TRUTHY = frozenset({"1", "true", "yes", "on", "y", "t"})
_FALSY = frozenset({"0", "false", "no", "off", "n", "f"})


def _boolean(text):
    if (lowered := text.strip().lower()) in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError("invalid boolean literal: %r" % text)


CONVERTERS = {
    str: str,
    int: int,
    float: float,
    complex: complex,
    bool: _boolean,
    pathlib.Path: pathlib.Path,
}


class Binder:
    """
    Connects one declared modifier to its slot.

    Calling a binder applies one occurrence of the modifier:
    - binder()        → presence (no parameter)
    - binder("text")  → raw text parameter

    Subclasses override __call__; custom binders passed to
    Parser.add_custom_valued_flag() are instantiated with the slot only.
    """
    target = mirror("target")

    def __init__(self, target, /):
        self._target = _slot(target)

    def __call__(self, raw=Unset, /):
        raise NotImplementedError("%s must implement __call__" % type(self).__name__)

    def __repr__(self):
        return f"{type(self).__name__}({self._target!r})"


class PresenceBinder(Binder):

    def __call__(self, raw=Unset, /):
        if raw is not Unset:
            raise TypeError("presence binder does not take a parameter")
        self._target.value = True


class ValueBinder(Binder):
    """
    Converts the raw text with the built-in converter registered for `type`
    and stores the result.
    """
    type = mirror("type")

    def __init__(self, target, type=str, /):
        super().__init__(target)
        try:
            self._converter = CONVERTERS[type]
        except (KeyError, TypeError):
            raise TypeError(
                "no built-in conversion for %r; use add_custom_valued_flag() instead" % (type,)
            ) from None
        self._type = type

    def __call__(self, raw=Unset, /):
        if raw is Unset:
            raise TypeError("%s requires a parameter" % type(self).__name__)
        self._target.value = self._converter(raw)


class CallableBinder(Binder):
    """Like ValueBinder but the conversion is any callable mapping text to a value."""
    converter = mirror("converter")

    def __init__(self, target, converter, /):
        super().__init__(target)
        if not callable(converter):
            raise TypeError("CallableBinder() converter must be callable")
        self._converter = converter

    def __call__(self, raw=Unset, /):
        if raw is Unset:
            raise TypeError("%s requires a parameter" % type(self).__name__)
        self._target.value = self._converter(raw)


__all__ = (
    "Slot",
    "AttributeSlot",
    "Binder",
    "PresenceBinder",
    "ValueBinder",
    "CallableBinder",
    "CONVERTERS",
)
