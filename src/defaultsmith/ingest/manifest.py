"""JSON manifest host.

A manifest describes scopes, their members and the callables to expand
without any source to parse, which is how non-Python front ends feed the
engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from defaultsmith.config import GenerationConfig
from defaultsmith.engine.model import (
    BuilderSpec,
    CallableKind,
    CallableSpec,
    DefaultSource,
    FactorySource,
    FieldSource,
    GenerationMode,
    IncludeSpec,
    LiteralSource,
    OverloadSet,
    OwnerSpec,
    ParameterSpec,
    SemanticType,
    Visibility,
)
from defaultsmith.engine.orchestrator import NamespaceResult, RunResult, TargetResult
from defaultsmith.engine.parameters import merge_default_sources, select_default_source
from defaultsmith.engine.symbols import (
    InMemorySymbolTable,
    MemberInfo,
    MemberKind,
    ScopeInfo,
    ScopeKind,
)
from defaultsmith.exceptions import DefaultsmithError, Diagnostic, Severity
from defaultsmith.schema import (
    BuilderFieldDTO,
    CallableDTO,
    DefaultDTO,
    DiagnosticDTO,
    ManifestDTO,
    NamespacePlanDTO,
    PlanResponseDTO,
    ScopeDTO,
    TargetPlanDTO,
    VariantDTO,
)


@dataclass
class Manifest:
    symbols: InMemorySymbolTable
    owners: list[OwnerSpec] = field(default_factory=list)
    includes: list[IncludeSpec] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def _sources(dto: DefaultDTO | None) -> list[DefaultSource]:
    if dto is None:
        return []
    out: list[DefaultSource] = []
    if dto.value is not None:
        out.append(LiteralSource(dto.value))
    if dto.field is not None:
        out.append(FieldSource(dto.field))
    if dto.factory is not None:
        out.append(FactorySource(dto.factory))
    return out


def _callable(dto: CallableDTO, *, owner: str, entry_point: str) -> CallableSpec:
    owner_simple = owner.rpartition(".")[2]
    target = owner_simple if dto.kind == "constructor" else f"{owner_simple}.{dto.name}"
    params = []
    for param in dto.parameters:
        source = merge_default_sources(
            select_default_source(_sources(param.default), target=target, parameter=param.name),
            select_default_source(
                _sources(param.component_default), target=target, parameter=param.name
            ),
        )
        params.append(
            ParameterSpec(
                name=param.name,
                type=SemanticType.from_annotation(param.type),
                annotation=param.type,
                default_source=source,
                keyword_only=param.keyword_only,
            )
        )
    return CallableSpec(
        name=dto.name,
        kind=CallableKind(dto.kind),
        owner=owner,
        parameters=tuple(params),
        generation_mode=GenerationMode.NAMED if dto.named else GenerationMode.OVERLOADED,
        entry_point_name=dto.method_name or entry_point,
        is_static=dto.static,
        returns_value=not dto.returns_void,
        return_annotation=dto.return_type or (owner_simple if dto.kind == "constructor" else ""),
        visibility=Visibility.PRIVATE if dto.private else Visibility.PUBLIC,
        factory_name=dto.factory_name,
    )


def _scope(dto: ScopeDTO, constructors: tuple[CallableSpec, ...]) -> ScopeInfo:
    namespace, _, simple = dto.name.rpartition(".")
    if dto.kind == "module":
        namespace = dto.name
    return ScopeInfo(
        qualified_name=dto.name,
        simple_name=simple,
        namespace=namespace,
        import_module=dto.import_module or (dto.name if dto.kind == "module" else namespace),
        kind=ScopeKind(dto.kind),
        is_abstract=dto.abstract,
        constructors=constructors,
    )


def _members(dto: ScopeDTO) -> list[MemberInfo]:
    return [
        MemberInfo(
            name=member.name,
            kind=MemberKind(member.kind),
            is_static=member.static,
            parameter_count=member.parameter_count,
            value_type=SemanticType.from_annotation(member.type) if member.type else None,
            returns_void=member.returns_void,
            visibility=Visibility.PRIVATE if member.private else Visibility.PUBLIC,
        )
        for member in dto.members
    ]


def load_manifest(
    payload: Mapping[str, object] | ManifestDTO,
    *,
    config: GenerationConfig | None = None,
) -> Manifest:
    """Validate ``payload`` and convert it into engine inputs.

    Raises ``pydantic.ValidationError`` on schema violations. Per-callable
    problems (duplicate default sources) become diagnostics.
    """
    config = config or GenerationConfig()
    dto = payload if isinstance(payload, ManifestDTO) else ManifestDTO.model_validate(payload)
    diagnostics: list[Diagnostic] = []

    def _convert(item: CallableDTO, owner: str) -> CallableSpec | None:
        try:
            return _callable(item, owner=owner, entry_point=config.entry_point)
        except DefaultsmithError as error:
            diagnostics.append(Diagnostic.from_error(error, target=f"{owner}.{item.name}"))
            return None

    scopes = []
    members: dict[str, list[MemberInfo]] = {}
    for scope in dto.scopes:
        constructors = tuple(
            spec
            for spec in (_convert(item, scope.name) for item in scope.constructors)
            if spec is not None
        )
        scopes.append(_scope(scope, constructors))
        members[scope.name] = _members(scope)
    owners = []
    for owner in dto.owners:
        callables = tuple(
            spec
            for spec in (_convert(item, owner.scope) for item in owner.callables)
            if spec is not None
        )
        owners.append(
            OwnerSpec(
                scope=owner.scope,
                callables=callables,
                source_module=owner.module or owner.scope.rpartition(".")[0],
            )
        )
    includes = [
        IncludeSpec(
            companion=include.companion,
            targets=tuple(include.targets),
            generation_mode=GenerationMode.NAMED if include.named else GenerationMode.OVERLOADED,
            entry_point_name=include.method_name or config.entry_point,
            source_module=include.module or include.companion.rpartition(".")[0],
        )
        for include in dto.includes
    ]
    return Manifest(
        symbols=InMemorySymbolTable.build(scopes, members, dto.aliases),
        owners=owners,
        includes=includes,
        diagnostics=diagnostics,
    )


def _diagnostic_dto(diagnostic: Diagnostic) -> DiagnosticDTO:
    return DiagnosticDTO(
        severity=diagnostic.severity.value,
        code=diagnostic.code,
        message=diagnostic.message,
        target=diagnostic.target,
        parameter=diagnostic.parameter,
        path=diagnostic.path,
    )


def _target_dto(result: TargetResult) -> TargetPlanDTO:
    dto = TargetPlanDTO(
        target=result.target,
        diagnostics=[_diagnostic_dto(d) for d in result.diagnostics],
    )
    plan = result.plan if result.ok else None
    if isinstance(plan, OverloadSet):
        dto.kind = "overloads"
        dto.entry_point = plan.target.entry_point_name
        dto.variants = [
            VariantDTO(
                provided_count=variant.provided_count,
                parameters=[param.name for param in variant.provided],
                defaults=[expression.source for expression in variant.trailing_defaults],
            )
            for variant in plan.variants
        ]
    elif isinstance(plan, BuilderSpec):
        dto.kind = "builder"
        dto.entry_point = plan.entry_point_name
        dto.builder_name = plan.builder_name
        dto.terminal = plan.terminal_kind.value
        dto.fields = [
            BuilderFieldDTO(
                name=item.name,
                type=item.type.display,
                required=item.required,
                validated=item.validated,
                default=item.default_expression.source if item.default_expression else None,
            )
            for item in plan.fields
        ]
    return dto


def _namespace_dto(namespace: NamespaceResult, source: str | None) -> NamespacePlanDTO:
    return NamespacePlanDTO(
        name=namespace.name,
        owner=namespace.owner,
        module=namespace.source_module,
        targets=[_target_dto(target) for target in namespace.targets],
        source=source,
    )


def plan_payload(
    result: RunResult,
    *,
    extra: list[Diagnostic] | None = None,
    sources: Mapping[str, str] | None = None,
) -> dict[str, object]:
    """JSON-ready rendering of a run; ``sources`` maps namespace name to code."""
    sources = sources or {}
    diagnostics = list(extra or []) + result.diagnostics
    response = PlanResponseDTO(
        namespaces=[_namespace_dto(ns, sources.get(ns.name)) for ns in result.namespaces],
        errors=sum(1 for d in diagnostics if d.severity is Severity.ERROR),
        warnings=sum(1 for d in diagnostics if d.severity is Severity.WARNING),
    )
    payload = response.model_dump()
    if extra:
        payload["diagnostics"] = [_diagnostic_dto(d).model_dump() for d in extra]
    return payload
