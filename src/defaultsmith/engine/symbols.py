from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Mapping, Protocol, Sequence

from defaultsmith.engine.model import CallableSpec, SemanticType, Visibility


class MemberKind(StrEnum):
    FIELD = "field"
    METHOD = "method"


class ScopeKind(StrEnum):
    MODULE = "module"
    CLASS = "class"
    RECORD = "record"
    PROTOCOL = "protocol"


@dataclass(frozen=True)
class MemberInfo:
    name: str
    kind: MemberKind
    is_static: bool = True
    parameter_count: int = 0
    value_type: SemanticType | None = None
    returns_void: bool = False
    visibility: Visibility = Visibility.PUBLIC

    @property
    def is_field(self) -> bool:
        return self.kind is MemberKind.FIELD

    @property
    def is_method(self) -> bool:
        return self.kind is MemberKind.METHOD

    @property
    def is_static_no_arg_method(self) -> bool:
        return self.is_method and self.is_static and self.parameter_count == 0


@dataclass(frozen=True)
class ScopeInfo:
    qualified_name: str
    simple_name: str
    namespace: str
    import_module: str
    kind: ScopeKind = ScopeKind.CLASS
    is_abstract: bool = False
    constructors: tuple[CallableSpec, ...] = ()

    @property
    def is_record(self) -> bool:
        return self.kind is ScopeKind.RECORD

    @property
    def is_protocol(self) -> bool:
        return self.kind is ScopeKind.PROTOCOL

    @property
    def kind_label(self) -> str:
        if self.is_protocol:
            return "protocol"
        if self.is_abstract:
            return "abstract class"
        return str(self.kind.value)


class SymbolTable(Protocol):
    def lookup_owner_scope_member(self, owner: str, name: str) -> MemberInfo | None: ...

    def lookup_absolute_scope(self, path: str) -> ScopeInfo | None: ...

    def lookup_relative_scope(self, namespace: str, name: str) -> ScopeInfo | None: ...

    def members_of(self, scope: str) -> Sequence[MemberInfo]: ...


@dataclass(frozen=True)
class InMemorySymbolTable:
    """Immutable snapshot of every scope visible to one generation run.

    ``aliases`` maps a namespace to the names it imports, so that a relative
    lookup from inside a module sees ``from x import Y`` as ``Y``.
    """

    scopes: Mapping[str, ScopeInfo] = field(default_factory=dict)
    members: Mapping[str, tuple[MemberInfo, ...]] = field(default_factory=dict)
    aliases: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        scopes: Sequence[ScopeInfo],
        members: Mapping[str, Sequence[MemberInfo]],
        aliases: Mapping[str, Mapping[str, str]] | None = None,
    ) -> InMemorySymbolTable:
        return cls(
            scopes={scope.qualified_name: scope for scope in scopes},
            members={name: tuple(items) for name, items in members.items()},
            aliases={ns: dict(table) for ns, table in (aliases or {}).items()},
        )

    def lookup_owner_scope_member(self, owner: str, name: str) -> MemberInfo | None:
        for member in self.members.get(owner, ()):
            if member.name == name:
                return member
        return None

    def lookup_absolute_scope(self, path: str) -> ScopeInfo | None:
        return self.scopes.get(path)

    def lookup_relative_scope(self, namespace: str, name: str) -> ScopeInfo | None:
        head, _, rest = name.partition(".")
        imported = self.aliases.get(namespace, {}).get(head)
        if imported is not None:
            resolved = f"{imported}.{rest}" if rest else imported
            scope = self.scopes.get(resolved)
            if scope is not None:
                return scope
        if not namespace:
            return self.scopes.get(name)
        scope = self.scopes.get(f"{namespace}.{name}")
        if scope is not None:
            return scope
        # Sibling modules of the same package.
        package = namespace.rpartition(".")[0]
        if package:
            return self.scopes.get(f"{package}.{name}")
        return None

    def members_of(self, scope: str) -> Sequence[MemberInfo]:
        return self.members.get(scope, ())
