# src/opmeter/contracts/paths.py
"""Outcome path values.

``ok()``, ``reject()``, ``fail()`` and ``path()`` accept any object as the
outcome path. The argument is resolved once, at the API boundary, into one of
four tagged variants. The engine never inspects the original object again.

Variants:
- Text: a plain string, used verbatim
- Symbol: an enum member, rendered by its symbolic name
- Fault: an exception, rendered by its type name (simple or qualified)
  with the exception message kept apart
- Display: anything else, rendered with ``str()``
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class Text:
    value: str


@dataclass(frozen=True, slots=True)
class Symbol:
    name: str


@dataclass(frozen=True, slots=True)
class Fault:
    """An exception used as an outcome path.

    Attributes:
        type_name: Simple class name (``ValueError``)
        qualified_name: Module-qualified class name (``decimal.InvalidOperation``)
        message: ``str(exception)``, or None when empty
    """

    type_name: str
    qualified_name: str
    message: str | None


@dataclass(frozen=True, slots=True)
class Display:
    value: str


PathValue = Text | Symbol | Fault | Display


def _qualified_name(cls: type) -> str:
    # Builtin exceptions read better without the "builtins." prefix
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def to_path_value(value: object) -> PathValue | None:
    """Resolve an arbitrary path argument into a tagged variant.

    Returns None for None, which callers report as an illegal argument.
    """
    match value:
        case None:
            return None
        case str():
            return Text(value)
        case Enum():
            return Symbol(value.name)
        case BaseException():
            message = str(value)
            return Fault(
                type_name=type(value).__name__,
                qualified_name=_qualified_name(type(value)),
                message=message or None,
            )
        case _:
            return Display(str(value))


def path_text(value: PathValue, *, qualified: bool = False) -> str:
    """Plain display string for a path variant.

    Args:
        value: Resolved path variant
        qualified: For Fault values, use the module-qualified type name
            (fail paths) instead of the simple name (ok/reject paths)
    """
    match value:
        case Text(text):
            return text
        case Symbol(name):
            return name
        case Fault():
            return value.qualified_name if qualified else value.type_name
        case Display(text):
            return text
