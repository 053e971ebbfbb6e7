from defaultsmith.engine.builder import check_builder_conflicts, synthesize_builder
from defaultsmith.engine.discovery import discover, match_defaults, select_best
from defaultsmith.engine.literals import coerce, format_literal
from defaultsmith.engine.model import (
    BuilderSpec,
    CallableKind,
    CallableSpec,
    GenerationMode,
    IncludeSpec,
    OverloadSet,
    OwnerSpec,
    ParameterSpec,
    SemanticType,
    TypeKind,
)
from defaultsmith.engine.orchestrator import (
    DefaultsEngine,
    NamespaceResult,
    RunResult,
    TargetResult,
)
from defaultsmith.engine.overloads import generate_overloads
from defaultsmith.engine.references import ReferenceResolver, suggest
from defaultsmith.engine.symbols import InMemorySymbolTable, MemberInfo, ScopeInfo

__all__ = [
    "BuilderSpec",
    "CallableKind",
    "CallableSpec",
    "DefaultsEngine",
    "GenerationMode",
    "InMemorySymbolTable",
    "IncludeSpec",
    "MemberInfo",
    "NamespaceResult",
    "OverloadSet",
    "OwnerSpec",
    "ParameterSpec",
    "ReferenceResolver",
    "RunResult",
    "ScopeInfo",
    "SemanticType",
    "TargetResult",
    "TypeKind",
    "check_builder_conflicts",
    "coerce",
    "discover",
    "format_literal",
    "generate_overloads",
    "match_defaults",
    "select_best",
    "suggest",
    "synthesize_builder",
]
