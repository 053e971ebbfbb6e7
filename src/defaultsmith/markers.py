"""Markers read statically by ``defaultsmith generate``.

They never change runtime behaviour of the decorated code. Arguments must be
written as literals so they can be read without importing the module.

    from typing import Annotated
    from defaultsmith import DefaultValue, with_defaults

    class Greeter:
        @with_defaults
        def greet(
            self,
            name: str,
            greeting: Annotated[str, DefaultValue("Hello")],
        ) -> str:
            return f"{greeting}, {name}!"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence, TypeVar, overload

T = TypeVar("T")


@dataclass(frozen=True)
class DefaultValue:
    """Literal default (``DefaultValue("8080")``) or static field reference
    (``DefaultValue(field="DEFAULT_PORT")`` / ``field="pkg.mod.Cls.NAME"``)."""

    value: str | None = None
    field: str | None = None


@dataclass(frozen=True)
class DefaultFactory:
    """Static zero-argument factory producing the default on every call."""

    reference: str


@dataclass(frozen=True)
class DefaultsOptions:
    named: bool = False
    method_name: str = "create"


@overload
def with_defaults(target: T) -> T: ...


@overload
def with_defaults(
    target: None = None, *, named: bool = False, method_name: str = "create"
) -> Callable[[T], T]: ...


def with_defaults(
    target: Any = None, *, named: bool = False, method_name: str = "create"
) -> Any:
    options = DefaultsOptions(named=named, method_name=method_name)

    def _mark(item: T) -> T:
        setattr(item, "__defaultsmith__", options)
        return item

    if target is not None:
        return _mark(target)
    return _mark


def include_defaults(
    *targets: type, named: bool = False, method_name: str = "create"
) -> Callable[[T], T]:
    options = DefaultsOptions(named=named, method_name=method_name)

    def _mark(companion: T) -> T:
        setattr(companion, "__defaultsmith_include__", (tuple(targets), options))
        return companion

    return _mark


class RequiredFieldUnset(ValueError):
    """Raised by a generated builder when a required field was never set."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Required parameter '{name}' was not set")
        self.name = name


def bind_prefix(
    name: str,
    parameters: Sequence[str],
    args: Sequence[Any],
    kwargs: Mapping[str, Any],
) -> tuple[Any, ...]:
    """Bind positional and keyword arguments of a generated overload helper.

    Returns the values of the leading parameters that were supplied, in
    declaration order. The supplied parameters must form a prefix of
    ``parameters``.
    """
    if len(args) > len(parameters):
        raise TypeError(
            f"{name}() takes at most {len(parameters)} arguments but {len(args)} were given"
        )
    bound = dict(zip(parameters, args))
    for key, value in kwargs.items():
        if key not in parameters:
            raise TypeError(f"{name}() got an unexpected keyword argument '{key}'")
        if key in bound:
            raise TypeError(f"{name}() got multiple values for argument '{key}'")
        bound[key] = value
    count = 0
    while count < len(parameters) and parameters[count] in bound:
        count += 1
    if count != len(bound):
        raise TypeError(f"{name}() missing required argument '{parameters[count]}'")
    return tuple(bound[parameter] for parameter in parameters[:count])
