"""Convention-based default discovery for types that cannot be annotated.

A companion scope names its defaults ``DEFAULT_<PARAM>`` (static fields) or
``default_<param>()`` (static zero-argument functions). Discovered names are
normalized so that ``DEFAULT_MAX_SIZE``, ``default_max_size`` and
``defaultMaxSize`` all bind to a parameter called ``max_size`` or ``maxSize``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Sequence

from defaultsmith.engine.model import (
    CallableSpec,
    DiscoveredDefault,
    FactoryExpression,
    FieldExpression,
    SourceKind,
    Visibility,
)
from defaultsmith.engine.symbols import ScopeInfo, SymbolTable
from defaultsmith.exceptions import (
    DiscoveryWarning,
    DiscoveryWarningKind,
    StructuralError,
    StructuralErrorKind,
)

FIELD_PREFIX = "DEFAULT_"
METHOD_PREFIX = "default"


def normalize(name: str) -> str:
    return name.replace("_", "").lower()


@dataclass
class DiscoveryResult:
    companion: ScopeInfo
    defaults: dict[str, DiscoveredDefault] = field(default_factory=dict)
    shadowed: dict[str, list[str]] = field(default_factory=dict)

    def add(self, entry: DiscoveredDefault) -> None:
        previous = self.defaults.get(entry.normalized_name)
        if previous is not None:
            self.shadowed.setdefault(entry.normalized_name, []).append(previous.original_name)
        self.defaults[entry.normalized_name] = entry

    def __contains__(self, name: object) -> bool:
        return name in self.defaults

    def __len__(self) -> int:
        return len(self.defaults)


def discover(companion: ScopeInfo, symbols: SymbolTable) -> DiscoveryResult:
    result = DiscoveryResult(companion=companion)
    for member in symbols.members_of(companion.qualified_name):
        if not member.is_static or member.visibility is Visibility.PRIVATE:
            continue
        if member.is_field and member.name.upper().startswith(FIELD_PREFIX):
            suffix = member.name[len(FIELD_PREFIX) :]
            if not suffix:
                continue
            result.add(
                DiscoveredDefault(
                    normalized_name=normalize(suffix),
                    expression=FieldExpression(
                        scope=companion.qualified_name,
                        import_module=companion.import_module,
                        member=member.name,
                    ),
                    original_name=member.name,
                    source_kind=SourceKind.FIELD,
                )
            )
        elif (
            member.is_static_no_arg_method
            and not member.returns_void
            and member.name.startswith(METHOD_PREFIX)
            and len(member.name) > len(METHOD_PREFIX)
        ):
            suffix = normalize(member.name[len(METHOD_PREFIX) :])
            if not suffix:
                continue
            result.add(
                DiscoveredDefault(
                    normalized_name=suffix,
                    expression=FactoryExpression(
                        scope=companion.qualified_name,
                        import_module=companion.import_module,
                        member=member.name,
                    ),
                    original_name=f"{member.name}()",
                    source_kind=SourceKind.FACTORY,
                )
            )
    return result


def score(candidate: CallableSpec, discovered: DiscoveryResult) -> int:
    return sum(1 for param in candidate.parameters if normalize(param.name) in discovered)


def select_best(
    candidates: Sequence[CallableSpec], discovered: DiscoveryResult
) -> CallableSpec | None:
    """Highest score, then more parameters, then first declared."""
    best: CallableSpec | None = None
    best_key = (-1, -1)
    for candidate in candidates:
        key = (score(candidate, discovered), len(candidate.parameters))
        if key > best_key:
            best = candidate
            best_key = key
    return best


def validate_included_type(scope: ScopeInfo) -> None:
    if scope.is_protocol or scope.is_abstract:
        raise StructuralError(
            kind=StructuralErrorKind.INCLUDED_TYPE_NOT_CONCRETE,
            target=scope.simple_name,
            detail=scope.kind_label,
        )
    if scope.is_record:
        return
    if not any(c.visibility is Visibility.PUBLIC for c in scope.constructors):
        raise StructuralError(
            kind=StructuralErrorKind.NO_PUBLIC_CONSTRUCTOR,
            target=scope.simple_name,
        )


def candidates_for(scope: ScopeInfo) -> tuple[CallableSpec, ...]:
    if scope.is_record:
        return scope.constructors[:1]
    return tuple(c for c in scope.constructors if c.visibility is Visibility.PUBLIC)


@dataclass
class MatchResult:
    target: CallableSpec
    matched: list[str] = field(default_factory=list)
    warnings: list[tuple[str | None, DiscoveryWarning]] = field(default_factory=list)


def match_defaults(
    chosen: CallableSpec,
    discovered: DiscoveryResult,
    *,
    warn_unmatched: bool = True,
) -> MatchResult:
    """Bind discovered defaults to the parameters of ``chosen``."""
    type_name = chosen.owner_simple_name
    companion_name = discovered.companion.simple_name
    result = MatchResult(target=chosen)
    used: set[str] = set()
    params = []
    for param in chosen.parameters:
        key = normalize(param.name)
        entry = discovered.defaults.get(key)
        if entry is None:
            params.append(param)
            continue
        used.add(key)
        result.matched.append(param.name)
        params.append(replace(param, default_source=None, default_expression=entry.expression))
        shadowed = discovered.shadowed.get(key)
        if shadowed:
            result.warnings.append(
                (
                    param.name,
                    DiscoveryWarning(
                        kind=DiscoveryWarningKind.AMBIGUOUS_DEFAULT,
                        type_name=type_name,
                        companion_name=companion_name,
                        original_name=entry.original_name,
                        names=tuple(shadowed),
                    ),
                )
            )
    if not result.matched:
        result.warnings.append(
            (
                None,
                DiscoveryWarning(
                    kind=DiscoveryWarningKind.NO_DEFAULTS_FOUND,
                    type_name=type_name,
                    companion_name=companion_name,
                ),
            )
        )
    if warn_unmatched:
        for key, entry in discovered.defaults.items():
            if key in used:
                continue
            result.warnings.append(
                (
                    None,
                    DiscoveryWarning(
                        kind=DiscoveryWarningKind.UNMATCHED_DEFAULT,
                        type_name=type_name,
                        original_name=entry.original_name,
                    ),
                )
            )
    result.target = replace(chosen, parameters=tuple(params))
    return result
