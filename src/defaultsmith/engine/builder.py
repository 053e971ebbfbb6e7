from __future__ import annotations

import re
from typing import Sequence

from defaultsmith.engine.model import (
    BuilderField,
    BuilderSpec,
    CallableKind,
    CallableSpec,
    TerminalKind,
)
from defaultsmith.exceptions import StructuralError, StructuralErrorKind

DEFAULT_BUILDER_SUFFIX = "Builder"


def _camelize(value: str) -> str:
    parts = [p for p in re.split(r"[^a-zA-Z0-9]+", value) if p]
    return "".join(p[:1].upper() + p[1:] for p in parts)


def builder_name(target: CallableSpec, suffix: str = DEFAULT_BUILDER_SUFFIX) -> str:
    if target.kind is CallableKind.CONSTRUCTOR and target.factory_name is None:
        return f"{target.owner_simple_name}{suffix}"
    return f"{_camelize(target.factory_name or target.name)}{suffix}"


def _describe(target: CallableSpec) -> str:
    if target.kind is CallableKind.CONSTRUCTOR and target.factory_name is None:
        return "the constructor builder"
    return f"method '{target.factory_name or target.name}'"


def check_builder_conflicts(
    targets: Sequence[CallableSpec], suffix: str = DEFAULT_BUILDER_SUFFIX
) -> list[tuple[CallableSpec, StructuralError]]:
    """Report later targets whose builder name is already claimed.

    ``targets`` are the named-mode callables of one generated namespace, in
    declaration order. Constructors claim their name first.
    """
    ordered = sorted(
        enumerate(targets),
        key=lambda item: (item[1].kind is not CallableKind.CONSTRUCTOR, item[0]),
    )
    claimed: dict[str, CallableSpec] = {}
    conflicts: list[tuple[CallableSpec, StructuralError]] = []
    for _, target in ordered:
        name = builder_name(target, suffix)
        holder = claimed.get(name)
        if holder is None:
            claimed[name] = target
            continue
        conflicts.append(
            (
                target,
                StructuralError(
                    kind=StructuralErrorKind.BUILDER_NAME_CONFLICT,
                    target=_describe(target),
                    names=(name,),
                    detail=_describe(holder),
                ),
            )
        )
    return conflicts


def synthesize_builder(
    target: CallableSpec, builder_suffix: str = DEFAULT_BUILDER_SUFFIX
) -> BuilderSpec:
    fields = tuple(
        BuilderField(
            name=param.name,
            type=param.type,
            annotation=param.annotation,
            default_expression=param.default_expression,
        )
        for param in target.parameters
    )
    terminal = TerminalKind.BUILD if target.kind is CallableKind.CONSTRUCTOR else TerminalKind.CALL
    for item in fields:
        if item.name == terminal.value:
            raise StructuralError(
                kind=StructuralErrorKind.INVALID_TARGET,
                target=target.display_name,
                names=(item.name,),
                detail=(
                    f"parameter '{item.name}' would shadow the builder's {terminal.value}() "
                    "method; rename it or use named=False"
                ),
            )
    return BuilderSpec(
        builder_name=builder_name(target, builder_suffix),
        target=target,
        fields=fields,
        terminal_kind=terminal,
        entry_point_name=target.entry_point_name,
    )
