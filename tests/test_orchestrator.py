from __future__ import annotations

from defaultsmith.config import GenerationConfig
from defaultsmith.engine.model import (
    BuilderSpec,
    FieldSource,
    GenerationMode,
    IncludeSpec,
    OverloadSet,
    OwnerSpec,
    Visibility,
)
from defaultsmith.engine.orchestrator import DefaultsEngine
from defaultsmith.engine.symbols import InMemorySymbolTable, ScopeKind
from defaultsmith.exceptions import Severity
from tests.engine_helpers import (
    make_callable,
    make_method,
    make_param,
    make_scope,
    static_field,
    static_method,
)


def _owner(*callables, scope: str = "app.server.Server") -> OwnerSpec:
    return OwnerSpec(scope=scope, callables=tuple(callables), source_module="app.server")


def _codes(result) -> list[str]:
    return [d.code for d in result.diagnostics]


def test_overloaded_constructor_produces_prefix_variants(
    config_symbols: InMemorySymbolTable,
) -> None:
    target = make_callable(
        make_param("a"), make_param("b", default="1"), make_param("c", default="2")
    )
    result = DefaultsEngine(config_symbols).run([_owner(target)])
    (namespace,) = result.namespaces
    assert namespace.name == "ServerDefaults"
    assert namespace.owner_module == "app.server"
    (plan,) = namespace.plans
    assert isinstance(plan, OverloadSet)
    assert [v.provided_count for v in plan.variants] == [1, 2, 3]
    assert not result.has_errors


def test_non_consecutive_default_fails_only_that_target(
    config_symbols: InMemorySymbolTable,
) -> None:
    broken = make_method(
        make_param("a"), make_param("b", default="1"), make_param("c"), name="connect"
    )
    fine = make_method(make_param("timeout", default="30"), name="wait")
    result = DefaultsEngine(config_symbols).run([_owner(broken, fine)])
    (namespace,) = result.namespaces
    assert [t.ok for t in namespace.targets] == [False, True]
    (diagnostic,) = result.diagnostics
    assert diagnostic.code == "NonConsecutiveDefault"
    assert diagnostic.target == "Server.connect"
    assert result.has_errors
    assert len(namespace.plans) == 1


def test_typo_reference_reports_suggestion(config_symbols: InMemorySymbolTable) -> None:
    target = make_callable(
        make_param("name", "str", source=FieldSource("Defaults.DEFUALT_NAME"))
    )
    result = DefaultsEngine(config_symbols).run([_owner(target)])
    (diagnostic,) = result.diagnostics
    assert diagnostic.severity is Severity.ERROR
    assert diagnostic.code == "NotFound"
    assert diagnostic.parameter == "name"
    assert "Did you mean 'DEFAULT_NAME'?" in diagnostic.message
    assert result.namespaces[0].plans == []


def test_literal_error_on_integer(config_symbols: InMemorySymbolTable) -> None:
    target = make_callable(make_param("port", "int", default="abc"))
    result = DefaultsEngine(config_symbols).run([_owner(target)])
    assert _codes(result) == ["NotParseable"]


def test_named_mode_accepts_any_placement(config_symbols: InMemorySymbolTable) -> None:
    target = make_callable(
        make_param("a", default="1"), make_param("b", "str"), named=True
    )
    result = DefaultsEngine(config_symbols).run([_owner(target)])
    (plan,) = result.namespaces[0].plans
    assert isinstance(plan, BuilderSpec)
    assert plan.builder_name == "ServerBuilder"
    assert [f.required for f in plan.fields] == [False, True]


def test_builder_conflict_and_helper_collision(config_symbols: InMemorySymbolTable) -> None:
    constructor = make_callable(make_param("a", default="1"), named=True, owner="app.server.Send")
    method = make_method(make_param("a", default="1"), name="send", named=True, owner="app.server.Send")
    result = DefaultsEngine(config_symbols).run(
        [_owner(constructor, method, scope="app.server.Send")]
    )
    assert _codes(result) == ["BuilderNameConflict"]

    first = make_method(make_param("a", default="1"), name="create")
    second = make_callable(make_param("a", default="1"))
    collided = DefaultsEngine(config_symbols).run([_owner(first, second)])
    (diagnostic,) = collided.diagnostics
    assert diagnostic.code == "InvalidTarget"
    assert "helper 'create' is already generated for Server.create" in diagnostic.message


def test_private_target_is_rejected(config_symbols: InMemorySymbolTable) -> None:
    target = make_method(make_param("a", default="1"), name="_hidden", visibility=Visibility.PRIVATE)
    result = DefaultsEngine(config_symbols).run([_owner(target)])
    (diagnostic,) = result.diagnostics
    assert diagnostic.code == "PrivateTarget"
    assert "Method '_hidden' is private" in diagnostic.message


def _external_symbols() -> InMemorySymbolTable:
    port_only = make_callable(make_param("port"), owner="ext.net.Client")
    host_port = make_callable(
        make_param("host", "str"), make_param("port"), owner="ext.net.Client", factory_name="connect"
    )
    return InMemorySymbolTable.build(
        [
            make_scope("ext.net.Client", constructors=(port_only, host_port)),
            make_scope("ext.net.Transport", kind=ScopeKind.PROTOCOL),
            make_scope("app.defaults.ClientDefaultsSource"),
        ],
        {
            "app.defaults.ClientDefaultsSource": [
                static_field("DEFAULT_HOST"),
                static_method("default_port", "int"),
            ]
        },
        {"app.defaults": {"Client": "ext.net.Client", "Transport": "ext.net.Transport"}},
    )


def test_include_selects_best_constructor() -> None:
    include = IncludeSpec(
        companion="app.defaults.ClientDefaultsSource",
        targets=("Client",),
        source_module="app.defaults",
    )
    result = DefaultsEngine(_external_symbols()).run(includes=[include])
    (namespace,) = result.namespaces
    assert namespace.name == "ClientDefaults"
    assert namespace.owner == "ext.net.Client"
    assert namespace.owner_module == "ext.net"
    assert namespace.source_module == "app.defaults"
    (plan,) = namespace.plans
    assert isinstance(plan, OverloadSet)
    assert plan.target.factory_name == "connect"
    assert [p.name for p in plan.target.parameters] == ["host", "port"]
    assert [v.provided_count for v in plan.variants] == [0, 1, 2]
    assert result.diagnostics == []


def test_include_named_mode_and_method_name() -> None:
    include = IncludeSpec(
        companion="app.defaults.ClientDefaultsSource",
        targets=("Client",),
        generation_mode=GenerationMode.NAMED,
        entry_point_name="builder",
        source_module="app.defaults",
    )
    result = DefaultsEngine(_external_symbols()).run(includes=[include])
    (plan,) = result.namespaces[0].plans
    assert isinstance(plan, BuilderSpec)
    assert plan.entry_point_name == "builder"


def test_include_reports_bad_targets_per_type() -> None:
    include = IncludeSpec(
        companion="app.defaults.ClientDefaultsSource",
        targets=("Transport", "Missing", "Client"),
        source_module="app.defaults",
    )
    result = DefaultsEngine(_external_symbols()).run(includes=[include])
    assert [ns.name for ns in result.namespaces] == [
        "TransportDefaults",
        "MissingDefaults",
        "ClientDefaults",
    ]
    assert [ns.has_errors for ns in result.namespaces] == [True, True, False]
    assert _codes(result) == ["IncludedTypeNotConcrete", "InvalidTarget"]


def test_parallel_run_keeps_input_order(config_symbols: InMemorySymbolTable) -> None:
    owners = [
        _owner(make_method(make_param("a", default=str(i)), name=f"m{i}"), scope=f"app.server.S{i}")
        for i in range(8)
    ]
    engine = DefaultsEngine(config_symbols, GenerationConfig(jobs=4))
    result = engine.run(owners)
    assert [ns.owner for ns in result.namespaces] == [f"app.server.S{i}" for i in range(8)]
    assert list(result.by_module()) == ["app.server"]
    sequential = DefaultsEngine(config_symbols).run(owners, jobs=1)
    assert [ns.plans for ns in sequential.namespaces] == [ns.plans for ns in result.namespaces]
