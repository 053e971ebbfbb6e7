"""Error taxonomy for default resolution and generation.

Errors are frozen dataclasses so they can be raised by the engine, caught by
the orchestrator and kept as immutable records on the affected target.
Discovery warnings are never raised; they are advisory records only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class LiteralErrorKind(StrEnum):
    NOT_PARSEABLE = "NotParseable"
    NULL_ON_PRIMITIVE = "NullOnPrimitive"
    EMPTY_NOT_ALLOWED = "EmptyNotAllowed"


class ReferenceErrorKind(StrEnum):
    EMPTY_REFERENCE = "EmptyReference"
    EMPTY_MEMBER_NAME = "EmptyMemberName"
    UNKNOWN_SCOPE = "UnknownScope"
    NOT_STATIC = "NotStatic"
    TAKES_ARGUMENTS = "TakesArguments"
    VOID_RETURN = "VoidReturn"
    TYPE_MISMATCH = "TypeMismatch"
    NOT_FOUND = "NotFound"


class StructuralErrorKind(StrEnum):
    NON_CONSECUTIVE_DEFAULT = "NonConsecutiveDefault"
    BUILDER_NAME_CONFLICT = "BuilderNameConflict"
    DUPLICATE_DEFAULT_SOURCE = "DuplicateDefaultSource"
    INCLUDED_TYPE_NOT_CONCRETE = "IncludedTypeNotConcrete"
    NO_PUBLIC_CONSTRUCTOR = "NoPublicConstructor"
    PRIVATE_TARGET = "PrivateTarget"
    INVALID_TARGET = "InvalidTarget"


class DiscoveryWarningKind(StrEnum):
    NO_DEFAULTS_FOUND = "NoDefaultsFound"
    UNMATCHED_DEFAULT = "UnmatchedDefaultWarning"
    AMBIGUOUS_DEFAULT = "AmbiguousDefault"
    MULTI_CHARACTER_LITERAL = "MultiCharacterLiteral"


class ReferenceKind(StrEnum):
    FIELD = "field"
    FACTORY = "factory"


class DefaultsmithError(Exception):
    """Base class for every error the engine raises."""

    @property
    def code(self) -> str:
        return str(getattr(self, "kind", type(self).__name__))

    def message(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        return self.message()


@dataclass(frozen=True)
class LiteralError(DefaultsmithError):
    kind: LiteralErrorKind
    value: str
    type_name: str

    def message(self) -> str:
        if self.kind is LiteralErrorKind.NULL_ON_PRIMITIVE:
            return f"'null' is not a valid default for primitive type '{self.type_name}'."
        if self.kind is LiteralErrorKind.EMPTY_NOT_ALLOWED:
            return (
                "Default value with empty value is only valid for str type, "
                f"not {self.type_name}."
            )
        if self.type_name in {"boolean", "bool"}:
            return f"'{self.value}' is not a valid boolean. Use 'true' or 'false'."
        return f"'{self.value}' is not a valid {self.type_name.lower()}."


@dataclass(frozen=True)
class ReferenceResolutionError(DefaultsmithError):
    kind: ReferenceErrorKind
    reference: str
    reference_kind: ReferenceKind
    scope_name: str = ""
    member: str = ""
    detail: str = ""
    suggestion: str | None = None
    candidates: tuple[str, ...] = field(default_factory=tuple)

    @property
    def _is_factory(self) -> bool:
        return self.reference_kind is ReferenceKind.FACTORY

    @property
    def _marker(self) -> str:
        if self._is_factory:
            return f'DefaultFactory("{self.reference}")'
        return f'DefaultValue(field="{self.reference}")'

    def message(self) -> str:
        noun = "Factory method" if self._is_factory else "Field"
        kind = self.kind
        if kind is ReferenceErrorKind.EMPTY_REFERENCE:
            what = "method" if self._is_factory else "field"
            marker = "DefaultFactory" if self._is_factory else "DefaultValue(field=...)"
            return f"{marker} requires a non-empty {what} reference."
        if kind is ReferenceErrorKind.EMPTY_MEMBER_NAME:
            what = "method" if self._is_factory else "field"
            marker = "DefaultFactory" if self._is_factory else "DefaultValue(field=...)"
            return f"{marker} reference '{self.reference}' has empty {what} name."
        if kind is ReferenceErrorKind.UNKNOWN_SCOPE:
            example = "uuid.UUID.uuid4" if self._is_factory else "sys.maxsize"
            return (
                f"Class '{self.scope_name}' not found for {self._marker}. "
                f"Hint: Use the fully qualified name (e.g., {example})."
            )
        if kind is ReferenceErrorKind.NOT_STATIC:
            return f"{noun} '{self.member}' in {self.scope_name} must be static."
        if kind is ReferenceErrorKind.TAKES_ARGUMENTS:
            return f"{noun} '{self.member}' in {self.scope_name} must have no parameters."
        if kind is ReferenceErrorKind.VOID_RETURN:
            return f"{noun} '{self.member}' in {self.scope_name} cannot return None."
        if kind is ReferenceErrorKind.TYPE_MISMATCH:
            return f"{noun} '{self.member}' in {self.scope_name} {self.detail}."
        return self._not_found_message()

    def _not_found_message(self) -> str:
        noun = "Factory method" if self._is_factory else "Field"
        parts = [f"{noun} '{self.member}' not found in {self.scope_name}."]
        call = "()" if self._is_factory else ""
        if self.suggestion is not None:
            parts.append(f"Did you mean '{self.suggestion}{call}'?")
        elif self.candidates:
            listed = ", ".join(f"{name}{call}" for name in self.candidates)
            if self._is_factory:
                parts.append(f"Available static no-arg methods: {listed}.")
            else:
                parts.append(f"Available static fields: {listed}.")
        elif self._is_factory:
            parts.append("Ensure the method exists and is static with no parameters.")
        else:
            parts.append("Ensure the field exists and is static.")
        return " ".join(parts)


@dataclass(frozen=True)
class StructuralError(DefaultsmithError):
    kind: StructuralErrorKind
    target: str
    at: int | None = None
    names: tuple[str, ...] = field(default_factory=tuple)
    detail: str = ""

    def message(self) -> str:
        kind = self.kind
        if kind is StructuralErrorKind.NON_CONSECUTIVE_DEFAULT:
            missing = ", ".join(self.names)
            return (
                f"Non-consecutive defaults for {self.target}: parameter(s) [{missing}] "
                "have no default but appear after parameters with defaults. "
                "Either add defaults for these parameters, or use named=True mode."
            )
        if kind is StructuralErrorKind.BUILDER_NAME_CONFLICT:
            builder = self.names[0] if self.names else ""
            return (
                f"Builder name conflict: {self.target} would generate '{builder}' "
                f"which conflicts with {self.detail}. "
                "Consider renaming the method or using named=False for one of them."
            )
        if kind is StructuralErrorKind.DUPLICATE_DEFAULT_SOURCE:
            return f"{self.target}: {self.detail or 'parameter declares more than one default source'}. Use one or the other."
        if kind is StructuralErrorKind.INCLUDED_TYPE_NOT_CONCRETE:
            return (
                f"Cannot include {self.detail} '{self.target}' in include_defaults. "
                "Only concrete classes and records are supported."
            )
        if kind is StructuralErrorKind.NO_PUBLIC_CONSTRUCTOR:
            return (
                f"{self.target} has no public constructor. "
                "include_defaults requires a public constructor to generate factory methods."
            )
        if kind is StructuralErrorKind.PRIVATE_TARGET:
            return (
                f"{self.detail or 'Method'} '{self.target}' is private. "
                "Generated helpers cannot access private elements."
            )
        return f"{self.target}: {self.detail}"


@dataclass(frozen=True)
class DiscoveryWarning:
    kind: DiscoveryWarningKind
    type_name: str
    companion_name: str = ""
    original_name: str = ""
    names: tuple[str, ...] = field(default_factory=tuple)

    @property
    def code(self) -> str:
        return str(self.kind)

    def message(self) -> str:
        kind = self.kind
        if kind is DiscoveryWarningKind.NO_DEFAULTS_FOUND:
            return (
                f"No defaults found for {self.type_name}. Define DEFAULT_{{component}} "
                f"fields or default_{{component}}() methods in {self.companion_name}."
            )
        if kind is DiscoveryWarningKind.UNMATCHED_DEFAULT:
            return (
                f"Default '{self.original_name}' does not match any parameter in "
                f"{self.type_name}'s selected constructor. "
                "Check parameter names or constructor signature."
            )
        if kind is DiscoveryWarningKind.AMBIGUOUS_DEFAULT:
            shadowed = ", ".join(self.names)
            return (
                f"Default '{self.original_name}' for {self.type_name} shadows "
                f"{shadowed} in {self.companion_name}; the last declaration wins."
            )
        return (
            f"Char default '{self.original_name}' for {self.type_name} has more than "
            "one character and is emitted as a string literal."
        )


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    code: str
    message: str
    target: str
    parameter: str | None = None
    path: str | None = None

    @classmethod
    def from_error(
        cls,
        error: DefaultsmithError,
        *,
        target: str,
        parameter: str | None = None,
        path: str | None = None,
    ) -> Diagnostic:
        return cls(
            severity=Severity.ERROR,
            code=error.code,
            message=error.message(),
            target=target,
            parameter=parameter,
            path=path,
        )

    @classmethod
    def from_warning(
        cls,
        warning: DiscoveryWarning,
        *,
        target: str,
        parameter: str | None = None,
        path: str | None = None,
    ) -> Diagnostic:
        return cls(
            severity=Severity.WARNING,
            code=warning.code,
            message=warning.message(),
            target=target,
            parameter=parameter,
            path=path,
        )

    def render(self) -> str:
        where = self.target
        if self.parameter:
            where = f"{where}({self.parameter})"
        if self.path:
            where = f"{self.path}: {where}"
        return f"{where}: {self.severity.value}: {self.message} [{self.code}]"
