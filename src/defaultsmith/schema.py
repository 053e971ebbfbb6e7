from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel


class DefaultDTO(BaseModel):
    value: Optional[str] = None
    field: Optional[str] = None
    factory: Optional[str] = None


class ParameterDTO(BaseModel):
    name: str
    type: str = ""
    default: Optional[DefaultDTO] = None
    component_default: Optional[DefaultDTO] = None
    keyword_only: bool = False


class CallableDTO(BaseModel):
    name: str
    kind: Literal["method", "constructor"] = "method"
    parameters: List[ParameterDTO] = []
    named: bool = False
    method_name: Optional[str] = None
    static: bool = False
    returns_void: bool = False
    return_type: str = ""
    private: bool = False
    factory_name: Optional[str] = None


class MemberDTO(BaseModel):
    name: str
    kind: Literal["field", "method"] = "field"
    static: bool = True
    parameter_count: int = 0
    type: Optional[str] = None
    returns_void: bool = False
    private: bool = False


class ScopeDTO(BaseModel):
    name: str
    kind: Literal["module", "class", "record", "protocol"] = "class"
    abstract: bool = False
    import_module: Optional[str] = None
    members: List[MemberDTO] = []
    constructors: List[CallableDTO] = []


class OwnerDTO(BaseModel):
    scope: str
    module: str = ""
    callables: List[CallableDTO] = []


class IncludeDTO(BaseModel):
    companion: str
    targets: List[str]
    named: bool = False
    method_name: Optional[str] = None
    module: str = ""


class ManifestDTO(BaseModel):
    scopes: List[ScopeDTO] = []
    owners: List[OwnerDTO] = []
    includes: List[IncludeDTO] = []
    aliases: Dict[str, Dict[str, str]] = {}


class DiagnosticDTO(BaseModel):
    severity: Literal["error", "warning"]
    code: str
    message: str
    target: str
    parameter: Optional[str] = None
    path: Optional[str] = None


class VariantDTO(BaseModel):
    provided_count: int
    parameters: List[str]
    defaults: List[str]


class BuilderFieldDTO(BaseModel):
    name: str
    type: str
    required: bool
    validated: bool
    default: Optional[str] = None


class TargetPlanDTO(BaseModel):
    target: str
    kind: Optional[Literal["overloads", "builder"]] = None
    entry_point: Optional[str] = None
    variants: List[VariantDTO] = []
    builder_name: Optional[str] = None
    terminal: Optional[str] = None
    fields: List[BuilderFieldDTO] = []
    diagnostics: List[DiagnosticDTO] = []


class NamespacePlanDTO(BaseModel):
    name: str
    owner: str
    module: str
    targets: List[TargetPlanDTO] = []
    source: Optional[str] = None


class PlanResponseDTO(BaseModel):
    namespaces: List[NamespacePlanDTO] = []
    errors: int = 0
    warnings: int = 0
