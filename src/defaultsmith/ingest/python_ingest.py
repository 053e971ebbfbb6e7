from __future__ import annotations

import ast
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from defaultsmith.config import GenerationConfig
from defaultsmith.engine.model import (
    CallableKind,
    CallableSpec,
    DefaultSource,
    FactorySource,
    FieldSource,
    GenerationMode,
    IncludeSpec,
    LiteralSource,
    OwnerSpec,
    ParameterSpec,
    SemanticType,
    Visibility,
)
from defaultsmith.engine.parameters import merge_default_sources, select_default_source
from defaultsmith.engine.symbols import (
    InMemorySymbolTable,
    MemberInfo,
    MemberKind,
    ScopeInfo,
    ScopeKind,
)
from defaultsmith.exceptions import (
    DefaultsmithError,
    Diagnostic,
    Severity,
    StructuralError,
    StructuralErrorKind,
)

WITH_DEFAULTS = "with_defaults"
INCLUDE_DEFAULTS = "include_defaults"
DEFAULT_VALUE = "DefaultValue"
DEFAULT_FACTORY = "DefaultFactory"

_CONSTANT_TYPES: dict[type, str] = {
    bool: "bool",
    int: "int",
    float: "float",
    str: "str",
}


@dataclass(frozen=True)
class ParseFailureWitness:
    path: Path
    stage: str
    error: str

    def diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code="ParseFailure",
            message=f"{self.stage} failed: {self.error}",
            target=self.path.name,
            path=str(self.path),
        )


@dataclass(frozen=True)
class MarkerOptions:
    named: bool
    method_name: str


@dataclass
class ModuleIngest:
    module: str
    path: Path | None = None
    scopes: list[ScopeInfo] = field(default_factory=list)
    members: dict[str, list[MemberInfo]] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    owners: list[OwnerSpec] = field(default_factory=list)
    includes: list[IncludeSpec] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def report(self, error: DefaultsmithError, target: str, parameter: str | None = None) -> None:
        self.diagnostics.append(
            Diagnostic.from_error(
                error,
                target=target,
                parameter=parameter,
                path=str(self.path) if self.path else None,
            )
        )


@dataclass
class IngestResult:
    symbols: InMemorySymbolTable
    owners: list[OwnerSpec] = field(default_factory=list)
    includes: list[IncludeSpec] = field(default_factory=list)
    modules: dict[str, Path] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    parse_failures: list[ParseFailureWitness] = field(default_factory=list)


def module_name(path: Path, project_root: Path | None = None) -> str:
    rel = path.with_suffix("")
    if project_root is not None:
        try:
            rel = rel.relative_to(project_root)
        except ValueError:
            pass
    parts = list(rel.parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


def iter_python_paths(
    paths: Iterable[str | Path], *, config: GenerationConfig
) -> list[Path]:
    """Expand input paths to python files, pruning excluded directories early.

    Previously generated modules are skipped.
    """
    generated = f"{config.output_suffix}.py"
    out: list[Path] = []
    for p in paths:
        path = Path(p)
        if path.is_dir():
            for root, dirnames, filenames in os.walk(path, topdown=True):
                dirnames[:] = sorted(d for d in dirnames if d not in config.exclude)
                for filename in sorted(filenames):
                    if not filename.endswith(".py") or filename.endswith(generated):
                        continue
                    out.append(Path(root) / filename)
        elif path.suffix == ".py" and not path.name.endswith(generated):
            out.append(path)
    return out


def _tail(node: ast.AST) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def _callee_tail(node: ast.AST) -> str | None:
    if isinstance(node, ast.Call):
        return _tail(node.func)
    return _tail(node)


def _is_private(name: str) -> bool:
    return name.startswith("_") and not (name.startswith("__") and name.endswith("__"))


def _visibility(name: str) -> Visibility:
    return Visibility.PRIVATE if _is_private(name) else Visibility.PUBLIC


def _decorator_names(node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef) -> set[str]:
    return {name for name in (_callee_tail(d) for d in node.decorator_list) if name}


def _find_decorator(
    node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef, name: str
) -> ast.expr | None:
    for decorator in node.decorator_list:
        if _callee_tail(decorator) == name:
            return decorator
    return None


def _strip_wrapper(annotation: ast.expr, wrappers: set[str]) -> ast.expr:
    if isinstance(annotation, ast.Subscript) and _tail(annotation.value) in wrappers:
        return annotation.slice
    return annotation


def _is_classvar(annotation: ast.expr) -> bool:
    if isinstance(annotation, ast.Subscript):
        return _tail(annotation.value) == "ClassVar"
    return _tail(annotation) == "ClassVar"


def _split_annotated(annotation: ast.expr | None) -> tuple[str, list[ast.expr]]:
    """Annotation text plus the metadata items of ``Annotated[T, ...]``."""
    if annotation is None:
        return "", []
    annotation = _strip_wrapper(annotation, {"ClassVar", "Final", "InitVar"})
    if (
        isinstance(annotation, ast.Subscript)
        and _tail(annotation.value) == "Annotated"
        and isinstance(annotation.slice, ast.Tuple)
        and annotation.slice.elts
    ):
        first, *metadata = annotation.slice.elts
        return ast.unparse(first), metadata
    if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
        return annotation.value, []
    return ast.unparse(annotation), []


def _value_type(annotation: ast.expr | None, value: ast.expr | None) -> SemanticType | None:
    if annotation is not None:
        text, _ = _split_annotated(annotation)
        return SemanticType.from_annotation(text)
    if isinstance(value, ast.Constant) and value.value is not None:
        name = _CONSTANT_TYPES.get(type(value.value))
        if name is not None:
            return SemanticType.from_annotation(name)
    if isinstance(value, ast.UnaryOp) and isinstance(value.operand, ast.Constant):
        return _value_type(None, value.operand)
    return None


def _invalid(target: str, detail: str) -> StructuralError:
    return StructuralError(kind=StructuralErrorKind.INVALID_TARGET, target=target, detail=detail)


def _string_arg(node: ast.expr, *, target: str, marker: str) -> str:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    raise _invalid(target, f"{marker} arguments must be string literals")


def _marker_sources(metadata: Sequence[ast.expr], *, target: str) -> list[DefaultSource]:
    sources: list[DefaultSource] = []
    for item in metadata:
        if not isinstance(item, ast.Call):
            continue
        marker = _tail(item.func)
        if marker == DEFAULT_VALUE:
            value: str | None = None
            reference: str | None = None
            if item.args:
                value = _string_arg(item.args[0], target=target, marker=marker)
            for keyword in item.keywords:
                if keyword.arg == "value":
                    value = _string_arg(keyword.value, target=target, marker=marker)
                elif keyword.arg == "field":
                    reference = _string_arg(keyword.value, target=target, marker=marker)
            if value is not None:
                sources.append(LiteralSource(value))
            if reference is not None:
                sources.append(FieldSource(reference))
            if value is None and reference is None:
                sources.append(LiteralSource(""))
        elif marker == DEFAULT_FACTORY:
            reference = None
            if item.args:
                reference = _string_arg(item.args[0], target=target, marker=marker)
            for keyword in item.keywords:
                if keyword.arg == "reference":
                    reference = _string_arg(keyword.value, target=target, marker=marker)
            sources.append(FactorySource(reference or ""))
    return sources


def _marker_options(
    decorator: ast.expr, *, target: str, entry_point: str
) -> MarkerOptions:
    named = False
    method_name = entry_point
    if not isinstance(decorator, ast.Call):
        return MarkerOptions(named=named, method_name=method_name)
    for keyword in decorator.keywords:
        if not isinstance(keyword.value, ast.Constant):
            raise _invalid(target, f"'{keyword.arg}' must be a literal")
        if keyword.arg == "named":
            named = bool(keyword.value.value)
        elif keyword.arg == "method_name":
            if not isinstance(keyword.value.value, str) or not keyword.value.value.isidentifier():
                raise _invalid(target, "'method_name' must be an identifier string")
            method_name = keyword.value.value
    return MarkerOptions(named=named, method_name=method_name)


def _required_count(args: ast.arguments, skip_first: bool) -> int:
    positional = [*args.posonlyargs, *args.args]
    if skip_first and positional:
        positional = positional[1:]
    required = len(positional) - len(args.defaults)
    required_kw = sum(1 for d in args.kw_defaults if d is None)
    return max(required, 0) + required_kw


def _method_binding(node: ast.FunctionDef | ast.AsyncFunctionDef) -> str:
    names = _decorator_names(node)
    if "staticmethod" in names:
        return "static"
    if "classmethod" in names:
        return "class"
    return "instance"


def _returns_void(node: ast.FunctionDef | ast.AsyncFunctionDef) -> bool:
    returns = node.returns
    return isinstance(returns, ast.Constant) and returns.value is None


def _return_text(node: ast.FunctionDef | ast.AsyncFunctionDef) -> str:
    return ast.unparse(node.returns) if node.returns is not None else ""


def _returns_class(node: ast.FunctionDef | ast.AsyncFunctionDef, class_name: str) -> bool:
    returns = node.returns
    if isinstance(returns, ast.Constant) and isinstance(returns.value, str):
        return returns.value in {class_name, "Self"}
    return _tail(returns) in {class_name, "Self"} if returns is not None else False


def _function_member(node: ast.FunctionDef | ast.AsyncFunctionDef, *, in_class: bool) -> MemberInfo:
    binding = _method_binding(node) if in_class else "static"
    return MemberInfo(
        name=node.name,
        kind=MemberKind.METHOD,
        is_static=binding != "instance",
        parameter_count=_required_count(node.args, skip_first=in_class and binding != "static"),
        value_type=SemanticType.from_annotation(_return_text(node)) if node.returns is not None else None,
        returns_void=_returns_void(node),
        visibility=_visibility(node.name),
    )


def _assign_members(statement: ast.stmt, *, in_class: bool) -> list[MemberInfo]:
    if isinstance(statement, ast.Assign):
        out = []
        for target in statement.targets:
            if isinstance(target, ast.Name):
                out.append(
                    MemberInfo(
                        name=target.id,
                        kind=MemberKind.FIELD,
                        is_static=True,
                        value_type=_value_type(None, statement.value),
                        visibility=_visibility(target.id),
                    )
                )
        return out
    if isinstance(statement, ast.AnnAssign) and isinstance(statement.target, ast.Name):
        name = statement.target.id
        is_static = not in_class or _is_classvar(statement.annotation)
        return [
            MemberInfo(
                name=name,
                kind=MemberKind.FIELD,
                is_static=is_static,
                value_type=_value_type(statement.annotation, statement.value),
                visibility=_visibility(name),
            )
        ]
    return []


def _is_dataclass(node: ast.ClassDef) -> bool:
    return "dataclass" in _decorator_names(node)


def _base_names(node: ast.ClassDef) -> set[str]:
    return {name for name in (_tail(base) for base in node.bases) if name}


def _field_excluded_from_init(value: ast.expr | None) -> bool:
    if not isinstance(value, ast.Call) or _tail(value.func) != "field":
        return False
    for keyword in value.keywords:
        if keyword.arg == "init" and isinstance(keyword.value, ast.Constant):
            return keyword.value.value is False
    return False


class _ModuleVisitor:
    def __init__(
        self,
        module: str,
        *,
        path: Path | None,
        config: GenerationConfig,
    ) -> None:
        self.config = config
        self.result = ModuleIngest(module=module, path=path)

    @property
    def module(self) -> str:
        return self.result.module

    def _package(self) -> str:
        path = self.result.path
        if path is not None and path.name == "__init__.py":
            return self.module
        return self.module.rpartition(".")[0]

    def _record_imports(self, node: ast.Import | ast.ImportFrom) -> None:
        aliases = self.result.aliases
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    aliases[alias.asname] = alias.name
                else:
                    head = alias.name.split(".", 1)[0]
                    aliases[head] = head
            return
        base = node.module or ""
        if node.level:
            package = self._package()
            for _ in range(node.level - 1):
                package = package.rpartition(".")[0]
            base = ".".join(part for part in (package, base) if part)
        for alias in node.names:
            if alias.name == "*":
                continue
            aliases[alias.asname or alias.name] = f"{base}.{alias.name}" if base else alias.name

    def visit(self, tree: ast.Module) -> ModuleIngest:
        module = self.module
        self.result.scopes.append(
            ScopeInfo(
                qualified_name=module,
                simple_name=module.rpartition(".")[2],
                namespace=module,
                import_module=module,
                kind=ScopeKind.MODULE,
            )
        )
        members: list[MemberInfo] = []
        functions: list[CallableSpec] = []
        for statement in tree.body:
            if isinstance(statement, (ast.Import, ast.ImportFrom)):
                self._record_imports(statement)
            elif isinstance(statement, (ast.FunctionDef, ast.AsyncFunctionDef)):
                members.append(_function_member(statement, in_class=False))
                spec = self._module_function(statement)
                if spec is not None:
                    functions.append(spec)
            elif isinstance(statement, ast.ClassDef):
                self._visit_class(statement, prefix=module)
            else:
                members.extend(_assign_members(statement, in_class=False))
        self.result.members[module] = members
        if functions:
            self.result.owners.append(
                OwnerSpec(scope=module, callables=tuple(functions), source_module=module)
            )
        return self.result

    def _module_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> CallableSpec | None:
        decorator = _find_decorator(node, WITH_DEFAULTS)
        if decorator is None:
            return None
        target = node.name
        try:
            options = _marker_options(
                decorator, target=target, entry_point=self.config.entry_point
            )
            return self._callable(
                node,
                owner=self.module,
                options=options,
                kind=CallableKind.METHOD,
                is_static=True,
                skip_first=False,
            )
        except DefaultsmithError as error:
            self.result.report(error, target)
            return None

    def _parameters(
        self,
        args: ast.arguments,
        *,
        skip_first: bool,
        target: str,
        components: dict[str, DefaultSource] | None = None,
    ) -> tuple[ParameterSpec, ...]:
        if args.vararg is not None or args.kwarg is not None:
            raise _invalid(target, "variadic parameters are not supported")
        positional = [*args.posonlyargs, *args.args]
        if skip_first and positional:
            positional = positional[1:]
        params: list[ParameterSpec] = []
        entries = [(arg, False) for arg in positional]
        entries.extend((arg, True) for arg in args.kwonlyargs)
        for arg, keyword_only in entries:
            text, metadata = _split_annotated(arg.annotation)
            sources = _marker_sources(metadata, target=target)
            source = select_default_source(sources, target=target, parameter=arg.arg)
            if components is not None:
                source = merge_default_sources(source, components.get(arg.arg))
            params.append(
                ParameterSpec(
                    name=arg.arg,
                    type=SemanticType.from_annotation(text),
                    annotation=text,
                    default_source=source,
                    keyword_only=keyword_only,
                )
            )
        return tuple(params)

    def _callable(
        self,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        *,
        owner: str,
        options: MarkerOptions,
        kind: CallableKind,
        is_static: bool,
        skip_first: bool,
        factory_name: str | None = None,
        components: dict[str, DefaultSource] | None = None,
    ) -> CallableSpec:
        owner_simple = owner.rpartition(".")[2]
        target = owner_simple if node.name == "__init__" else f"{owner_simple}.{node.name}"
        return CallableSpec(
            name=node.name,
            kind=kind,
            owner=owner,
            parameters=self._parameters(
                node.args, skip_first=skip_first, target=target, components=components
            ),
            generation_mode=GenerationMode.NAMED if options.named else GenerationMode.OVERLOADED,
            entry_point_name=options.method_name,
            is_static=is_static,
            returns_value=not _returns_void(node),
            return_annotation=_return_text(node),
            visibility=_visibility(node.name),
            factory_name=factory_name,
        )

    def _component_sources(
        self, fields: Sequence[ast.AnnAssign], *, target: str
    ) -> dict[str, DefaultSource]:
        out: dict[str, DefaultSource] = {}
        for statement in fields:
            name = statement.target.id  # type: ignore[union-attr]
            _, metadata = _split_annotated(statement.annotation)
            source = select_default_source(
                _marker_sources(metadata, target=target), target=target, parameter=name
            )
            if source is not None:
                out[name] = source
        return out

    def _canonical_constructor(
        self,
        fields: Sequence[ast.AnnAssign],
        *,
        owner: str,
        options: MarkerOptions,
    ) -> CallableSpec:
        owner_simple = owner.rpartition(".")[2]
        params = []
        for statement in fields:
            name = statement.target.id  # type: ignore[union-attr]
            text, metadata = _split_annotated(statement.annotation)
            source = select_default_source(
                _marker_sources(metadata, target=owner_simple),
                target=owner_simple,
                parameter=name,
            )
            params.append(
                ParameterSpec(
                    name=name,
                    type=SemanticType.from_annotation(text),
                    annotation=text,
                    default_source=source,
                )
            )
        return CallableSpec(
            name="__init__",
            kind=CallableKind.CONSTRUCTOR,
            owner=owner,
            parameters=tuple(params),
            generation_mode=GenerationMode.NAMED if options.named else GenerationMode.OVERLOADED,
            entry_point_name=options.method_name,
            returns_value=True,
            return_annotation=owner_simple,
        )

    def _visit_class(self, node: ast.ClassDef, *, prefix: str) -> None:
        qualified = f"{prefix}.{node.name}"
        bases = _base_names(node)
        is_record = _is_dataclass(node) or "NamedTuple" in bases
        is_protocol = "Protocol" in bases
        members: list[MemberInfo] = []
        fields: list[ast.AnnAssign] = []
        methods: list[ast.FunctionDef | ast.AsyncFunctionDef] = []
        has_abstract = False
        for statement in node.body:
            if isinstance(statement, (ast.FunctionDef, ast.AsyncFunctionDef)):
                methods.append(statement)
                members.append(_function_member(statement, in_class=True))
                if "abstractmethod" in _decorator_names(statement):
                    has_abstract = True
            elif isinstance(statement, ast.ClassDef):
                self._visit_class(statement, prefix=qualified)
            else:
                members.extend(_assign_members(statement, in_class=True))
                if (
                    isinstance(statement, ast.AnnAssign)
                    and isinstance(statement.target, ast.Name)
                    and not _is_classvar(statement.annotation)
                    and not _field_excluded_from_init(statement.value)
                ):
                    fields.append(statement)
        self.result.members[qualified] = members

        class_decorator = _find_decorator(node, WITH_DEFAULTS)
        include_decorator = _find_decorator(node, INCLUDE_DEFAULTS)
        entry_point = self.config.entry_point
        class_options: MarkerOptions | None = None
        callables: list[CallableSpec] = []
        constructors: list[CallableSpec] = []
        try:
            if class_decorator is not None:
                class_options = _marker_options(
                    class_decorator, target=node.name, entry_point=entry_point
                )
            components = self._component_sources(fields, target=node.name) if is_record else None
        except DefaultsmithError as error:
            self.result.report(error, node.name)
            class_options = None
            components = None

        neutral = MarkerOptions(named=False, method_name=entry_point)
        init = next((m for m in methods if m.name == "__init__"), None)
        if init is None and is_record:
            try:
                canonical = self._canonical_constructor(
                    fields, owner=qualified, options=class_options or neutral
                )
                constructors.append(canonical)
                if class_options is not None and any(p.has_default for p in canonical.parameters):
                    callables.append(canonical)
            except DefaultsmithError as error:
                self.result.report(error, node.name)
        elif init is None:
            constructors.append(
                CallableSpec(
                    name="__init__",
                    kind=CallableKind.CONSTRUCTOR,
                    owner=qualified,
                    return_annotation=node.name,
                )
            )

        for method in methods:
            binding = _method_binding(method)
            is_constructor = method.name == "__init__" or (
                binding == "class" and _returns_class(method, node.name)
            )
            own = _find_decorator(method, WITH_DEFAULTS)
            target = node.name if method.name == "__init__" else f"{node.name}.{method.name}"
            try:
                options = (
                    _marker_options(own, target=target, entry_point=entry_point)
                    if own is not None
                    else class_options or neutral
                )
                spec = self._callable(
                    method,
                    owner=qualified,
                    options=options,
                    kind=CallableKind.CONSTRUCTOR if is_constructor else CallableKind.METHOD,
                    is_static=binding != "instance",
                    skip_first=binding != "static",
                    factory_name=method.name if is_constructor and method.name != "__init__" else None,
                    components=components if method.name == "__init__" else None,
                )
            except DefaultsmithError as error:
                if own is not None:
                    self.result.report(error, target)
                continue
            if is_constructor:
                constructors.append(spec)
            if own is not None:
                callables.append(spec)
            elif class_options is not None and any(p.has_default for p in spec.parameters):
                if spec.visibility is Visibility.PUBLIC:
                    callables.append(spec)

        self.result.scopes.append(
            ScopeInfo(
                qualified_name=qualified,
                simple_name=node.name,
                namespace=self.module,
                import_module=self.module,
                kind=ScopeKind.PROTOCOL
                if is_protocol
                else ScopeKind.RECORD
                if is_record
                else ScopeKind.CLASS,
                is_abstract=has_abstract or "ABC" in bases,
                constructors=tuple(constructors),
            )
        )
        if callables:
            self.result.owners.append(
                OwnerSpec(scope=qualified, callables=tuple(callables), source_module=self.module)
            )
        if include_decorator is not None:
            self._include(include_decorator, node, qualified)

    def _include(self, decorator: ast.expr, node: ast.ClassDef, qualified: str) -> None:
        try:
            options = _marker_options(
                decorator, target=node.name, entry_point=self.config.entry_point
            )
            if not isinstance(decorator, ast.Call) or not decorator.args:
                raise _invalid(node.name, "include_defaults requires at least one type")
            targets = []
            for arg in decorator.args:
                if not isinstance(arg, (ast.Name, ast.Attribute)):
                    raise _invalid(node.name, "include_defaults arguments must be class names")
                targets.append(ast.unparse(arg))
        except DefaultsmithError as error:
            self.result.report(error, node.name)
            return
        self.result.includes.append(
            IncludeSpec(
                companion=qualified,
                targets=tuple(targets),
                generation_mode=GenerationMode.NAMED if options.named else GenerationMode.OVERLOADED,
                entry_point_name=options.method_name,
                source_module=self.module,
            )
        )


def ingest_source(
    source: str,
    *,
    module: str,
    path: Path | None = None,
    config: GenerationConfig | None = None,
) -> ModuleIngest:
    """Parse one module; raises ``SyntaxError`` on invalid source."""
    tree = ast.parse(source, filename=str(path) if path else "<string>")
    visitor = _ModuleVisitor(module, path=path, config=config or GenerationConfig())
    return visitor.visit(tree)


def build_symbol_table(modules: Sequence[ModuleIngest]) -> InMemorySymbolTable:
    scopes: list[ScopeInfo] = []
    members: dict[str, list[MemberInfo]] = {}
    aliases: dict[str, dict[str, str]] = {}
    for ingest in modules:
        scopes.extend(ingest.scopes)
        members.update(ingest.members)
        aliases[ingest.module] = dict(ingest.aliases)
    return InMemorySymbolTable.build(scopes, members, aliases)


def ingest_paths(
    paths: Iterable[str | Path],
    *,
    project_root: Path | None = None,
    config: GenerationConfig | None = None,
) -> IngestResult:
    config = config or GenerationConfig()
    modules: list[ModuleIngest] = []
    failures: list[ParseFailureWitness] = []
    locations: dict[str, Path] = {}
    for path in iter_python_paths(paths, config=config):
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            failures.append(ParseFailureWitness(path=path, stage="read", error=str(exc)))
            continue
        name = module_name(path.resolve(), project_root.resolve() if project_root else None)
        try:
            ingest = ingest_source(source, module=name, path=path, config=config)
        except SyntaxError as exc:
            failures.append(ParseFailureWitness(path=path, stage="parse", error=str(exc)))
            continue
        modules.append(ingest)
        locations[name] = path
    result = IngestResult(symbols=build_symbol_table(modules), modules=locations)
    for ingest in modules:
        result.owners.extend(ingest.owners)
        result.includes.extend(ingest.includes)
        result.diagnostics.extend(ingest.diagnostics)
    result.parse_failures = failures
    result.diagnostics.extend(failure.diagnostic() for failure in failures)
    return result
