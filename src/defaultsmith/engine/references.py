from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from defaultsmith.engine.model import (
    FactoryExpression,
    FieldExpression,
    Reference,
    SemanticType,
    is_assignable,
)
from defaultsmith.engine.symbols import MemberInfo, ScopeInfo, SymbolTable
from defaultsmith.exceptions import (
    ReferenceErrorKind,
    ReferenceKind,
    ReferenceResolutionError,
)


def parse_reference(text: str, kind: ReferenceKind = ReferenceKind.FIELD) -> Reference:
    """Split ``Qualifier.member`` on its last dot.

    A reference without a dot names a member of the owner scope.
    """
    if not text:
        raise ReferenceResolutionError(
            kind=ReferenceErrorKind.EMPTY_REFERENCE,
            reference=text,
            reference_kind=kind,
        )
    qualifier, dot, member = text.rpartition(".")
    if not dot:
        return Reference(qualifier=None, member=text, text=text)
    if not member:
        raise ReferenceResolutionError(
            kind=ReferenceErrorKind.EMPTY_MEMBER_NAME,
            reference=text,
            reference_kind=kind,
        )
    return Reference(qualifier=qualifier, member=member, text=text)


def levenshtein_distance(left: str, right: str) -> int:
    len_left = len(left)
    len_right = len(right)
    longest = max(len_left, len_right)
    if abs(len_left - len_right) > longest // 2:
        return longest
    previous = list(range(len_right + 1))
    for i in range(1, len_left + 1):
        current = [i] + [0] * len_right
        for j in range(1, len_right + 1):
            cost = 0 if left[i - 1] == right[j - 1] else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        previous = current
    return previous[len_right]


def suggest(target: str, candidates: Iterable[str]) -> str | None:
    """Closest candidate within ``max(2, len(target) // 3)`` edits, else None."""
    if not target:
        return None
    lowered = target.lower()
    threshold = max(2, len(target) // 3)
    best: str | None = None
    best_distance = threshold + 1
    for candidate in candidates:
        distance = levenshtein_distance(lowered, candidate.lower())
        if distance < best_distance:
            best = candidate
            best_distance = distance
    return best


@dataclass(frozen=True)
class ReferenceResolver:
    symbols: SymbolTable

    def resolve(
        self,
        text: str,
        kind: ReferenceKind,
        target_type: SemanticType,
        owner: ScopeInfo,
    ) -> FieldExpression | FactoryExpression:
        reference = parse_reference(text, kind)
        scope = owner
        if reference.qualifier is not None:
            scope = self._resolve_scope(reference, kind, owner)
        member = self.symbols.lookup_owner_scope_member(scope.qualified_name, reference.member)
        if member is None or member.is_field is (kind is ReferenceKind.FACTORY):
            raise self._not_found(reference, kind, scope)
        if kind is ReferenceKind.FIELD:
            self._check_field(reference, member, target_type, scope)
            return FieldExpression(
                scope=scope.qualified_name,
                import_module=scope.import_module,
                member=member.name,
            )
        self._check_factory(reference, member, target_type, scope)
        return FactoryExpression(
            scope=scope.qualified_name,
            import_module=scope.import_module,
            member=member.name,
        )

    def _resolve_scope(
        self, reference: Reference, kind: ReferenceKind, owner: ScopeInfo
    ) -> ScopeInfo:
        qualifier = reference.qualifier or ""
        scope = self.symbols.lookup_absolute_scope(qualifier)
        if scope is None:
            scope = self.symbols.lookup_relative_scope(owner.namespace, qualifier)
        if scope is None:
            raise ReferenceResolutionError(
                kind=ReferenceErrorKind.UNKNOWN_SCOPE,
                reference=reference.text,
                reference_kind=kind,
                scope_name=qualifier,
                member=reference.member,
            )
        return scope

    def _error(
        self,
        error_kind: ReferenceErrorKind,
        reference: Reference,
        kind: ReferenceKind,
        scope: ScopeInfo,
        detail: str = "",
    ) -> ReferenceResolutionError:
        return ReferenceResolutionError(
            kind=error_kind,
            reference=reference.text,
            reference_kind=kind,
            scope_name=scope.simple_name,
            member=reference.member,
            detail=detail,
        )

    def _check_field(
        self,
        reference: Reference,
        member: MemberInfo,
        target_type: SemanticType,
        scope: ScopeInfo,
    ) -> None:
        if not member.is_static:
            raise self._error(ReferenceErrorKind.NOT_STATIC, reference, ReferenceKind.FIELD, scope)
        if not is_assignable(member.value_type, target_type):
            source = member.value_type.display if member.value_type else "object"
            raise self._error(
                ReferenceErrorKind.TYPE_MISMATCH,
                reference,
                ReferenceKind.FIELD,
                scope,
                detail=f"has type {source} which is not assignable to {target_type.display}",
            )

    def _check_factory(
        self,
        reference: Reference,
        member: MemberInfo,
        target_type: SemanticType,
        scope: ScopeInfo,
    ) -> None:
        kind = ReferenceKind.FACTORY
        if not member.is_static:
            raise self._error(ReferenceErrorKind.NOT_STATIC, reference, kind, scope)
        if member.parameter_count > 0:
            raise self._error(ReferenceErrorKind.TAKES_ARGUMENTS, reference, kind, scope)
        if member.returns_void:
            raise self._error(ReferenceErrorKind.VOID_RETURN, reference, kind, scope)
        if not is_assignable(member.value_type, target_type):
            source = member.value_type.display if member.value_type else "object"
            raise self._error(
                ReferenceErrorKind.TYPE_MISMATCH,
                reference,
                kind,
                scope,
                detail=f"returns {source} which is not assignable to {target_type.display}",
            )

    def _not_found(
        self, reference: Reference, kind: ReferenceKind, scope: ScopeInfo
    ) -> ReferenceResolutionError:
        candidates = _eligible_names(self.symbols.members_of(scope.qualified_name), kind)
        return ReferenceResolutionError(
            kind=ReferenceErrorKind.NOT_FOUND,
            reference=reference.text,
            reference_kind=kind,
            scope_name=scope.simple_name,
            member=reference.member,
            suggestion=suggest(reference.member, candidates),
            candidates=tuple(candidates),
        )


def _eligible_names(members: Sequence[MemberInfo], kind: ReferenceKind) -> list[str]:
    if kind is ReferenceKind.FIELD:
        return [m.name for m in members if m.is_field and m.is_static]
    return [m.name for m in members if m.is_static_no_arg_method and not m.returns_void]
