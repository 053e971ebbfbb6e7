from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
import re
from typing import Union


class TypeKind(StrEnum):
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    CHAR = "char"
    STRING = "string"
    NOMINAL = "nominal"


INTEGER_KINDS = frozenset({TypeKind.BYTE, TypeKind.SHORT, TypeKind.INT, TypeKind.LONG})
FLOAT_KINDS = frozenset({TypeKind.FLOAT, TypeKind.DOUBLE})
NUMERIC_KINDS = INTEGER_KINDS | FLOAT_KINDS
PRIMITIVE_KINDS = NUMERIC_KINDS | {TypeKind.BOOLEAN, TypeKind.CHAR}

# Widening order used for assignability between numeric kinds.
_WIDENING_RANK: dict[TypeKind, int] = {
    TypeKind.BYTE: 0,
    TypeKind.SHORT: 1,
    TypeKind.CHAR: 1,
    TypeKind.INT: 2,
    TypeKind.LONG: 3,
    TypeKind.FLOAT: 4,
    TypeKind.DOUBLE: 5,
}

_ANNOTATION_KINDS: dict[str, TypeKind] = {
    "int8": TypeKind.BYTE,
    "byte": TypeKind.BYTE,
    "int16": TypeKind.SHORT,
    "short": TypeKind.SHORT,
    "int": TypeKind.INT,
    "int32": TypeKind.INT,
    "int64": TypeKind.LONG,
    "long": TypeKind.LONG,
    "float32": TypeKind.FLOAT,
    "float": TypeKind.DOUBLE,
    "float64": TypeKind.DOUBLE,
    "double": TypeKind.DOUBLE,
    "bool": TypeKind.BOOLEAN,
    "boolean": TypeKind.BOOLEAN,
    "char": TypeKind.CHAR,
    "str": TypeKind.STRING,
}

_ANY_NAMES = frozenset({"object", "Any", "typing.Any"})
_OPTIONAL_RE = re.compile(r"^(?:typing\.)?Optional\[(?P<inner>.+)\]$")


def _strip_optional(text: str) -> tuple[str, bool]:
    match = _OPTIONAL_RE.match(text)
    if match:
        return match.group("inner").strip(), True
    parts = [part.strip() for part in text.split("|")]
    if len(parts) > 1 and "None" in parts:
        rest = [part for part in parts if part != "None"]
        return " | ".join(rest), True
    return text, False


@dataclass(frozen=True)
class SemanticType:
    kind: TypeKind
    name: str
    nullable: bool = False

    @classmethod
    def of(cls, kind: TypeKind, *, nullable: bool = False) -> SemanticType:
        return cls(kind=kind, name=str(kind.value), nullable=nullable)

    @classmethod
    def nominal(cls, name: str) -> SemanticType:
        return cls(kind=TypeKind.NOMINAL, name=name, nullable=True)

    @classmethod
    def from_annotation(cls, text: str | None) -> SemanticType:
        raw = (text or "").strip().strip("'\"")
        if not raw:
            return cls.nominal("object")
        inner, nullable = _strip_optional(raw)
        key = inner
        if inner.startswith(("numpy.", "np.")):
            key = inner.rsplit(".", 1)[-1]
        kind = _ANNOTATION_KINDS.get(key)
        if kind is None:
            return cls(kind=TypeKind.NOMINAL, name=raw, nullable=True)
        if kind is TypeKind.STRING:
            return cls(kind=kind, name=inner, nullable=True)
        return cls(kind=kind, name=inner, nullable=nullable)

    @property
    def is_primitive(self) -> bool:
        return self.kind in PRIMITIVE_KINDS and not self.nullable

    @property
    def display(self) -> str:
        if self.nullable and self.kind in PRIMITIVE_KINDS:
            return f"{self.name} | None"
        return self.name


def _nominal_matches(source: str, target: str) -> bool:
    if source == target:
        return True
    return source.rsplit(".", 1)[-1] == target.rsplit(".", 1)[-1]


def is_assignable(source: SemanticType | None, target: SemanticType) -> bool:
    """Static assignability of a value of ``source`` type to ``target``.

    An unknown source type (an unannotated member) is accepted.
    """
    if source is None:
        return True
    if target.kind is TypeKind.NOMINAL and target.name in _ANY_NAMES:
        return True
    if source.kind is TypeKind.NOMINAL or target.kind is TypeKind.NOMINAL:
        if source.kind is not target.kind:
            return False
        return _nominal_matches(source.name, target.name)
    if source.kind is target.kind:
        return True
    if source.kind not in _WIDENING_RANK or target.kind not in _WIDENING_RANK:
        return False
    if target.kind is TypeKind.CHAR:
        return False
    # Boxing only targets the same kind; unboxing may widen.
    if target.nullable:
        return False
    return _WIDENING_RANK[source.kind] < _WIDENING_RANK[target.kind]


@dataclass(frozen=True)
class Reference:
    qualifier: str | None
    member: str
    text: str

    @property
    def is_external(self) -> bool:
        return self.qualifier is not None


@dataclass(frozen=True)
class LiteralSource:
    text: str


@dataclass(frozen=True)
class FieldSource:
    reference: str


@dataclass(frozen=True)
class FactorySource:
    reference: str


DefaultSource = Union[LiteralSource, FieldSource, FactorySource]


@dataclass(frozen=True)
class LiteralExpression:
    kind: TypeKind
    value: object
    text: str
    narrowing: TypeKind | None = None

    @property
    def is_null(self) -> bool:
        return self.value is None

    @property
    def source(self) -> str:
        if self.narrowing is not None:
            return f"({self.narrowing.value}) {self.text}"
        return self.text


@dataclass(frozen=True)
class FieldExpression:
    scope: str
    import_module: str
    member: str

    @property
    def path(self) -> str:
        return f"{self.scope}.{self.member}"

    @property
    def source(self) -> str:
        return self.path


@dataclass(frozen=True)
class FactoryExpression:
    scope: str
    import_module: str
    member: str

    @property
    def path(self) -> str:
        return f"{self.scope}.{self.member}"

    @property
    def source(self) -> str:
        return f"{self.path}()"


DefaultExpression = Union[LiteralExpression, FieldExpression, FactoryExpression]


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    type: SemanticType
    annotation: str = ""
    default_source: DefaultSource | None = None
    default_expression: DefaultExpression | None = None
    keyword_only: bool = False

    @property
    def has_default(self) -> bool:
        return self.default_source is not None or self.default_expression is not None

    @property
    def is_required(self) -> bool:
        return not self.has_default


class CallableKind(StrEnum):
    METHOD = "method"
    CONSTRUCTOR = "constructor"


class GenerationMode(StrEnum):
    OVERLOADED = "overloaded"
    NAMED = "named"


class Visibility(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"


DEFAULT_ENTRY_POINT = "create"


@dataclass(frozen=True)
class CallableSpec:
    name: str
    kind: CallableKind
    owner: str
    parameters: tuple[ParameterSpec, ...] = ()
    generation_mode: GenerationMode = GenerationMode.OVERLOADED
    entry_point_name: str = DEFAULT_ENTRY_POINT
    is_static: bool = False
    returns_value: bool = True
    return_annotation: str = ""
    visibility: Visibility = Visibility.PUBLIC
    factory_name: str | None = None

    @property
    def owner_simple_name(self) -> str:
        return self.owner.rsplit(".", 1)[-1]

    @property
    def display_name(self) -> str:
        if self.kind is CallableKind.CONSTRUCTOR and self.factory_name is None:
            return self.owner_simple_name
        return f"{self.owner_simple_name}.{self.factory_name or self.name}"

    @property
    def is_constructor(self) -> bool:
        return self.kind is CallableKind.CONSTRUCTOR

    @property
    def helper_name(self) -> str:
        """Name of the generated overload function or builder entry point."""
        if self.kind is CallableKind.CONSTRUCTOR and self.factory_name is None:
            return self.entry_point_name
        return self.factory_name or self.name

    def first_default_index(self) -> int | None:
        for index, param in enumerate(self.parameters):
            if param.has_default:
                return index
        return None


@dataclass(frozen=True)
class Variant:
    provided_count: int
    provided: tuple[ParameterSpec, ...]
    trailing_defaults: tuple[DefaultExpression, ...]


@dataclass(frozen=True)
class OverloadSet:
    target: CallableSpec
    variants: tuple[Variant, ...]


class TerminalKind(StrEnum):
    BUILD = "build"
    CALL = "call"


@dataclass(frozen=True)
class BuilderField:
    name: str
    type: SemanticType
    annotation: str = ""
    default_expression: DefaultExpression | None = None

    @property
    def required(self) -> bool:
        return self.default_expression is None

    @property
    def validated(self) -> bool:
        return self.required and not self.type.is_primitive


@dataclass(frozen=True)
class BuilderSpec:
    builder_name: str
    target: CallableSpec
    fields: tuple[BuilderField, ...]
    terminal_kind: TerminalKind
    entry_point_name: str


EmissionPlan = Union[OverloadSet, BuilderSpec]


class SourceKind(StrEnum):
    FIELD = "field"
    FACTORY = "factory"


@dataclass(frozen=True)
class DiscoveredDefault:
    normalized_name: str
    expression: DefaultExpression
    original_name: str
    source_kind: SourceKind


@dataclass(frozen=True)
class OwnerSpec:
    """Callables of one owner scope, emitted into one generated namespace."""

    scope: str
    callables: tuple[CallableSpec, ...] = ()
    source_module: str = ""


@dataclass(frozen=True)
class IncludeSpec:
    companion: str
    targets: tuple[str, ...]
    generation_mode: GenerationMode = GenerationMode.OVERLOADED
    entry_point_name: str = DEFAULT_ENTRY_POINT
    source_module: str = ""
