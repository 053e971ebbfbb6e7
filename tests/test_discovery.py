from __future__ import annotations

import pytest

from defaultsmith.engine.discovery import (
    candidates_for,
    discover,
    match_defaults,
    normalize,
    score,
    select_best,
    validate_included_type,
)
from defaultsmith.engine.model import FactoryExpression, SourceKind, Visibility
from defaultsmith.engine.symbols import InMemorySymbolTable, ScopeKind
from defaultsmith.exceptions import DiscoveryWarningKind, StructuralError, StructuralErrorKind
from tests.engine_helpers import make_callable, make_param, make_scope, static_field, static_method

COMPANION = "app.net.ClientDefaults"


def _discovered(*members):
    companion = make_scope(COMPANION)
    symbols = InMemorySymbolTable.build([companion], {COMPANION: list(members)})
    return discover(companion, symbols)


def test_normalize_collapses_spelling() -> None:
    assert normalize("HOST_NAME") == normalize("hostName") == normalize("HOSTNAME") == "hostname"


def test_discover_reads_both_shapes() -> None:
    result = _discovered(
        static_field("DEFAULT_HOST"),
        static_field("default_max_size", "int"),
        static_method("defaultTimeout", "int"),
        static_method("default_retries", "int"),
    )
    assert set(result.defaults) == {"host", "maxsize", "timeout", "retries"}
    timeout = result.defaults["timeout"]
    assert timeout.source_kind is SourceKind.FACTORY
    assert timeout.original_name == "defaultTimeout()"
    assert isinstance(timeout.expression, FactoryExpression)
    assert timeout.expression.source == "app.net.ClientDefaults.defaultTimeout()"
    assert result.defaults["host"].source_kind is SourceKind.FIELD


def test_discover_skips_ineligible_members() -> None:
    result = _discovered(
        static_field("DEFAULT_"),
        static_field("DEFAULT_PRIVATE", visibility=Visibility.PRIVATE),
        static_field("DEFAULT_INSTANCE", is_static=False),
        static_method("default", "int"),
        static_method("default_args", "int", parameter_count=1),
        static_method("default_void", None, returns_void=True),
        static_method("default_bound", "int", is_static=False),
        static_field("HOST"),
    )
    assert len(result) == 0


def test_discover_collisions_keep_last_and_remember_shadowed() -> None:
    result = _discovered(static_field("DEFAULT_HOST_NAME"), static_method("defaultHostName"))
    assert len(result) == 1
    assert result.defaults["hostname"].original_name == "defaultHostName()"
    assert result.shadowed["hostname"] == ["DEFAULT_HOST_NAME"]


def test_select_best_prefers_score_then_arity() -> None:
    discovered = _discovered(static_field("DEFAULT_HOST"), static_field("DEFAULT_PORT", "int"))
    port_only = make_callable(make_param("port"))
    host_port = make_callable(make_param("host", "str"), make_param("port"))
    assert score(port_only, discovered) == 1
    assert score(host_port, discovered) == 2
    assert select_best([port_only, host_port], discovered) is host_port

    tied_small = make_callable(make_param("port"))
    tied_large = make_callable(make_param("port"), make_param("verbose", "bool"))
    assert select_best([tied_small, tied_large], discovered) is tied_large


def test_select_best_full_tie_keeps_declaration_order() -> None:
    discovered = _discovered(static_field("DEFAULT_PORT", "int"))
    first = make_callable(make_param("port"), factory_name="a")
    second = make_callable(make_param("port"), factory_name="b")
    assert select_best([first, second], discovered) is first
    assert select_best([], discovered) is None


def test_validate_included_type() -> None:
    with pytest.raises(StructuralError) as excinfo:
        validate_included_type(make_scope("app.Shape", kind=ScopeKind.PROTOCOL))
    assert excinfo.value.kind is StructuralErrorKind.INCLUDED_TYPE_NOT_CONCRETE
    assert "Cannot include protocol 'Shape'" in str(excinfo.value)
    with pytest.raises(StructuralError):
        validate_included_type(make_scope("app.Base", is_abstract=True))
    hidden = make_callable(name="__init__", visibility=Visibility.PRIVATE)
    with pytest.raises(StructuralError) as excinfo:
        validate_included_type(make_scope("app.Hidden", constructors=(hidden,)))
    assert excinfo.value.kind is StructuralErrorKind.NO_PUBLIC_CONSTRUCTOR
    validate_included_type(make_scope("app.Point", kind=ScopeKind.RECORD))


def test_candidates_for_records_use_canonical_constructor() -> None:
    canonical = make_callable(make_param("x"), make_param("y"))
    alternate = make_callable(make_param("x"), factory_name="origin")
    record = make_scope("app.Point", kind=ScopeKind.RECORD, constructors=(canonical, alternate))
    assert candidates_for(record) == (canonical,)
    hidden = make_callable(visibility=Visibility.PRIVATE)
    plain = make_scope("app.Conn", constructors=(hidden, alternate))
    assert candidates_for(plain) == (alternate,)


def test_match_defaults_binds_and_warns() -> None:
    discovered = _discovered(
        static_field("DEFAULT_HOST"),
        static_field("DEFAULT_PORT", "int"),
        static_field("DEFAULT_COLOUR"),
    )
    chosen = make_callable(make_param("host", "str"), make_param("port"), owner="app.net.Client")
    result = match_defaults(chosen, discovered)
    assert result.matched == ["host", "port"]
    assert all(p.default_expression is not None for p in result.target.parameters)
    kinds = [warning.kind for _, warning in result.warnings]
    assert kinds == [DiscoveryWarningKind.UNMATCHED_DEFAULT]
    assert "Default 'DEFAULT_COLOUR' does not match any parameter in Client" in (
        result.warnings[0][1].message()
    )
    quiet = match_defaults(chosen, discovered, warn_unmatched=False)
    assert quiet.warnings == []


def test_match_defaults_without_matches_still_returns_target() -> None:
    discovered = _discovered(static_field("DEFAULT_OTHER"))
    chosen = make_callable(make_param("port"), owner="app.net.Client")
    result = match_defaults(chosen, discovered)
    assert result.target.parameters == chosen.parameters
    kinds = [warning.kind for _, warning in result.warnings]
    assert kinds == [
        DiscoveryWarningKind.NO_DEFAULTS_FOUND,
        DiscoveryWarningKind.UNMATCHED_DEFAULT,
    ]


def test_match_defaults_reports_ambiguous_binding() -> None:
    discovered = _discovered(static_field("DEFAULT_HOST_NAME"), static_field("DEFAULT_HOSTNAME"))
    chosen = make_callable(make_param("host_name", "str"), owner="app.net.Client")
    result = match_defaults(chosen, discovered)
    (parameter, warning), = result.warnings
    assert parameter == "host_name"
    assert warning.kind is DiscoveryWarningKind.AMBIGUOUS_DEFAULT
    assert warning.names == ("DEFAULT_HOST_NAME",)
