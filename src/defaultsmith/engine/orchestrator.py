from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Sequence

from defaultsmith.config import GenerationConfig
from defaultsmith.engine.builder import check_builder_conflicts, synthesize_builder
from defaultsmith.engine.discovery import (
    candidates_for,
    discover,
    match_defaults,
    select_best,
    validate_included_type,
)
from defaultsmith.engine.model import (
    CallableKind,
    CallableSpec,
    EmissionPlan,
    GenerationMode,
    IncludeSpec,
    OwnerSpec,
    Visibility,
)
from defaultsmith.engine.overloads import generate_overloads
from defaultsmith.engine.parameters import ParameterModel, owner_scope
from defaultsmith.engine.symbols import ScopeInfo, SymbolTable
from defaultsmith.exceptions import (
    DefaultsmithError,
    Diagnostic,
    DiscoveryWarning,
    Severity,
    StructuralError,
    StructuralErrorKind,
)


@dataclass
class TargetResult:
    target: str
    plan: EmissionPlan | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.plan is not None and not any(
            d.severity is Severity.ERROR for d in self.diagnostics
        )

    def error(self, error: DefaultsmithError, parameter: str | None = None) -> None:
        self.diagnostics.append(
            Diagnostic.from_error(error, target=self.target, parameter=parameter)
        )

    def warn(self, warning: DiscoveryWarning, parameter: str | None = None) -> None:
        self.diagnostics.append(
            Diagnostic.from_warning(warning, target=self.target, parameter=parameter)
        )


@dataclass
class NamespaceResult:
    """Everything generated into one ``{Owner}Defaults`` namespace."""

    name: str
    owner: str
    source_module: str
    owner_module: str = ""
    targets: list[TargetResult] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def plans(self) -> list[EmissionPlan]:
        return [t.plan for t in self.targets if t.plan is not None and t.ok]

    @property
    def all_diagnostics(self) -> list[Diagnostic]:
        items = list(self.diagnostics)
        for target in self.targets:
            items.extend(target.diagnostics)
        return items

    @property
    def has_errors(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.all_diagnostics)


@dataclass
class RunResult:
    namespaces: list[NamespaceResult] = field(default_factory=list)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        items: list[Diagnostic] = []
        for namespace in self.namespaces:
            items.extend(namespace.all_diagnostics)
        return items

    @property
    def has_errors(self) -> bool:
        return any(ns.has_errors for ns in self.namespaces)

    def by_module(self) -> dict[str, list[NamespaceResult]]:
        grouped: dict[str, list[NamespaceResult]] = {}
        for namespace in self.namespaces:
            grouped.setdefault(namespace.source_module, []).append(namespace)
        return grouped


@dataclass(frozen=True)
class DefaultsEngine:
    symbols: SymbolTable
    config: GenerationConfig = field(default_factory=GenerationConfig)

    @property
    def parameters(self) -> ParameterModel:
        return ParameterModel(self.symbols)

    def namespace_name(self, owner: str) -> str:
        return f"{owner.rsplit('.', 1)[-1]}{self.config.namespace_suffix}"

    def plan_callable(self, target: CallableSpec) -> TargetResult:
        result = TargetResult(target=target.display_name)
        if target.visibility is Visibility.PRIVATE:
            kind = "Constructor" if target.kind is CallableKind.CONSTRUCTOR else "Method"
            result.error(
                StructuralError(
                    kind=StructuralErrorKind.PRIVATE_TARGET,
                    target=target.name,
                    detail=kind,
                )
            )
            return result
        completed = self.parameters.complete(target)
        for issue in completed.errors:
            result.error(issue.error, issue.parameter)
        for notice in completed.warnings:
            result.warn(notice.warning, notice.parameter)
        if not completed.ok:
            return result
        try:
            if completed.target.generation_mode is GenerationMode.NAMED:
                result.plan = synthesize_builder(completed.target, self.config.builder_suffix)
            else:
                result.plan = generate_overloads(completed.target)
        except StructuralError as error:
            result.error(error)
        return result

    def plan_owner(self, owner: OwnerSpec) -> NamespaceResult:
        namespace = NamespaceResult(
            name=self.namespace_name(owner.scope),
            owner=owner.scope,
            source_module=owner.source_module,
            owner_module=owner_scope(self.symbols, owner.scope).import_module,
        )
        named = [c for c in owner.callables if c.generation_mode is GenerationMode.NAMED]
        conflicts = {
            id(target): error
            for target, error in check_builder_conflicts(named, self.config.builder_suffix)
        }
        helpers: dict[str, CallableSpec] = {}
        for target in owner.callables:
            error = conflicts.get(id(target))
            holder = helpers.get(target.helper_name)
            if error is None and holder is not None:
                error = StructuralError(
                    kind=StructuralErrorKind.INVALID_TARGET,
                    target=target.display_name,
                    names=(target.helper_name,),
                    detail=(
                        f"helper '{target.helper_name}' is already generated for "
                        f"{holder.display_name}; set method_name to disambiguate"
                    ),
                )
            if error is not None:
                conflicted = TargetResult(target=target.display_name)
                conflicted.error(error)
                namespace.targets.append(conflicted)
                continue
            helpers[target.helper_name] = target
            namespace.targets.append(self.plan_callable(target))
        return namespace

    def _include_scope(self, name: str, companion: ScopeInfo) -> ScopeInfo | None:
        scope = self.symbols.lookup_absolute_scope(name)
        if scope is None:
            scope = self.symbols.lookup_relative_scope(companion.namespace, name)
        return scope

    def plan_include(self, include: IncludeSpec) -> list[NamespaceResult]:
        """One namespace per included type, all sharing the companion's defaults."""
        companion = owner_scope(self.symbols, include.companion)
        discovered = discover(companion, self.symbols)
        results: list[NamespaceResult] = []
        for name in include.targets:
            scope = self._include_scope(name, companion)
            owner = scope.qualified_name if scope is not None else name
            namespace = NamespaceResult(
                name=self.namespace_name(owner),
                owner=owner,
                source_module=include.source_module,
                owner_module=scope.import_module if scope is not None else "",
            )
            results.append(namespace)
            outcome = TargetResult(target=owner.rsplit(".", 1)[-1])
            namespace.targets.append(outcome)
            if scope is None:
                outcome.error(
                    StructuralError(
                        kind=StructuralErrorKind.INVALID_TARGET,
                        target=companion.simple_name,
                        names=(name,),
                        detail=f"included type '{name}' could not be resolved",
                    )
                )
                continue
            try:
                validate_included_type(scope)
            except StructuralError as error:
                outcome.error(error)
                continue
            chosen = select_best(candidates_for(scope), discovered)
            if chosen is None:
                continue
            matched = match_defaults(
                chosen, discovered, warn_unmatched=self.config.warn_unmatched
            )
            for parameter, warning in matched.warnings:
                outcome.warn(warning, parameter)
            target = replace(
                matched.target,
                generation_mode=include.generation_mode,
                entry_point_name=include.entry_point_name,
            )
            planned = self.plan_callable(target)
            outcome.plan = planned.plan
            outcome.diagnostics.extend(planned.diagnostics)
        return results

    def run(
        self,
        owners: Sequence[OwnerSpec] = (),
        includes: Sequence[IncludeSpec] = (),
        *,
        jobs: int | None = None,
    ) -> RunResult:
        """Plan every owner and include request; results keep input order."""
        workers = jobs if jobs is not None else self.config.jobs
        tasks: list = [(self.plan_owner, owner) for owner in owners]
        tasks.extend((self.plan_include, include) for include in includes)
        if workers <= 1 or len(tasks) <= 1:
            outputs = [fn(arg) for fn, arg in tasks]
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(fn, arg) for fn, arg in tasks]
                outputs = [future.result() for future in futures]
        result = RunResult()
        for output in outputs:
            if isinstance(output, list):
                result.namespaces.extend(output)
            else:
                result.namespaces.append(output)
        return result
