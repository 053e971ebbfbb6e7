from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Sequence

from defaultsmith.engine.literals import coerce, is_multi_character_char
from defaultsmith.engine.model import (
    CallableSpec,
    DefaultExpression,
    DefaultSource,
    FactorySource,
    FieldSource,
    GenerationMode,
    LiteralExpression,
    LiteralSource,
    ParameterSpec,
)
from defaultsmith.engine.references import ReferenceResolver
from defaultsmith.engine.symbols import ScopeInfo, ScopeKind, SymbolTable
from defaultsmith.exceptions import (
    DefaultsmithError,
    DiscoveryWarning,
    DiscoveryWarningKind,
    ReferenceKind,
    StructuralError,
    StructuralErrorKind,
)


def select_default_source(
    sources: Sequence[DefaultSource], *, target: str, parameter: str
) -> DefaultSource | None:
    """Single default source of one declaration site."""
    if not sources:
        return None
    if len(sources) > 1:
        kinds = {type(source) for source in sources}
        if FactorySource in kinds and len(kinds) > 1:
            detail = (
                f"Parameter '{parameter}' cannot have both DefaultValue and DefaultFactory"
            )
        elif kinds == {LiteralSource, FieldSource}:
            detail = f"Parameter '{parameter}': DefaultValue cannot specify both 'value' and 'field'"
        else:
            detail = f"Parameter '{parameter}' declares more than one default"
        raise StructuralError(
            kind=StructuralErrorKind.DUPLICATE_DEFAULT_SOURCE,
            target=target,
            names=(parameter,),
            detail=detail,
        )
    return sources[0]


def merge_default_sources(
    owner_site: DefaultSource | None, component_site: DefaultSource | None
) -> DefaultSource | None:
    """The callable's own declaration wins over the record component's."""
    if owner_site is not None:
        return owner_site
    return component_site


def check_consecutive_defaults(target: CallableSpec) -> None:
    """Reject a required parameter after the first defaulted one.

    Only overloaded generation needs the suffix shape; named mode accepts any
    placement.
    """
    if target.generation_mode is GenerationMode.NAMED:
        return
    first = target.first_default_index()
    if first is None:
        return
    offenders = [
        (index, param)
        for index, param in enumerate(target.parameters)
        if index > first and param.is_required
    ]
    if not offenders:
        return
    raise StructuralError(
        kind=StructuralErrorKind.NON_CONSECUTIVE_DEFAULT,
        target=target.display_name,
        at=offenders[0][0],
        names=tuple(param.name for _, param in offenders),
    )


def owner_scope(symbols: SymbolTable, owner: str) -> ScopeInfo:
    scope = symbols.lookup_absolute_scope(owner)
    if scope is not None:
        return scope
    namespace, _, simple = owner.rpartition(".")
    return ScopeInfo(
        qualified_name=owner,
        simple_name=simple,
        namespace=namespace,
        import_module=namespace,
        kind=ScopeKind.CLASS,
    )


@dataclass(frozen=True)
class ParameterIssue:
    parameter: str | None
    error: DefaultsmithError


@dataclass(frozen=True)
class ParameterWarning:
    parameter: str | None
    warning: DiscoveryWarning


@dataclass
class CompletedTarget:
    target: CallableSpec
    errors: list[ParameterIssue] = field(default_factory=list)
    warnings: list[ParameterWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ParameterModel:
    """Resolves every default source of a callable into an expression."""

    symbols: SymbolTable

    @property
    def resolver(self) -> ReferenceResolver:
        return ReferenceResolver(self.symbols)

    def resolve_default(
        self, param: ParameterSpec, scope: ScopeInfo
    ) -> DefaultExpression | None:
        source = param.default_source
        if source is None:
            return param.default_expression
        if isinstance(source, LiteralSource):
            return coerce(source.text, param.type)
        if isinstance(source, FieldSource):
            return self.resolver.resolve(source.reference, ReferenceKind.FIELD, param.type, scope)
        return self.resolver.resolve(source.reference, ReferenceKind.FACTORY, param.type, scope)

    def complete(self, target: CallableSpec) -> CompletedTarget:
        """Resolve all parameters, collecting every error before giving up."""
        scope = owner_scope(self.symbols, target.owner)
        result = CompletedTarget(target=target)
        resolved: list[ParameterSpec] = []
        for param in target.parameters:
            try:
                expression = self.resolve_default(param, scope)
            except DefaultsmithError as error:
                result.errors.append(ParameterIssue(parameter=param.name, error=error))
                resolved.append(param)
                continue
            if isinstance(expression, LiteralExpression) and is_multi_character_char(expression):
                result.warnings.append(
                    ParameterWarning(
                        parameter=param.name,
                        warning=DiscoveryWarning(
                            kind=DiscoveryWarningKind.MULTI_CHARACTER_LITERAL,
                            type_name=target.display_name,
                            original_name=str(expression.value),
                        ),
                    )
                )
            resolved.append(replace(param, default_expression=expression))
        try:
            check_consecutive_defaults(target)
        except StructuralError as error:
            result.errors.append(ParameterIssue(parameter=None, error=error))
        result.target = replace(target, parameters=tuple(resolved))
        return result
