from __future__ import annotations

from defaultsmith.engine.model import (
    CallableSpec,
    DefaultExpression,
    OverloadSet,
    Variant,
)
from defaultsmith.engine.parameters import check_consecutive_defaults
from defaultsmith.exceptions import StructuralError, StructuralErrorKind


def generate_overloads(target: CallableSpec) -> OverloadSet:
    """Expand trailing defaults into progressively shorter call shapes.

    Every parameter at or after the first default must already carry a
    resolved expression.
    """
    params = target.parameters
    first = target.first_default_index()
    if first is None:
        return OverloadSet(
            target=target,
            variants=(Variant(provided_count=len(params), provided=params, trailing_defaults=()),),
        )
    check_consecutive_defaults(target)
    expressions: list[DefaultExpression] = []
    for param in params[first:]:
        if param.default_expression is None:
            raise StructuralError(
                kind=StructuralErrorKind.INVALID_TARGET,
                target=target.display_name,
                names=(param.name,),
                detail=f"default for '{param.name}' was not resolved",
            )
        expressions.append(param.default_expression)
    variants = []
    for count in range(first, len(params) + 1):
        variants.append(
            Variant(
                provided_count=count,
                provided=params[:count],
                trailing_defaults=tuple(expressions[count - first :]),
            )
        )
    return OverloadSet(target=target, variants=tuple(variants))
