from __future__ import annotations

import pytest

from defaultsmith.engine.model import (
    FactorySource,
    FieldExpression,
    FieldSource,
    LiteralExpression,
    LiteralSource,
)
from defaultsmith.engine.parameters import (
    ParameterModel,
    check_consecutive_defaults,
    merge_default_sources,
    select_default_source,
)
from defaultsmith.engine.symbols import InMemorySymbolTable
from defaultsmith.exceptions import (
    DiscoveryWarningKind,
    LiteralError,
    ReferenceResolutionError,
    StructuralError,
    StructuralErrorKind,
)
from tests.engine_helpers import make_callable, make_param


def test_select_default_source_rejects_two_sources() -> None:
    with pytest.raises(StructuralError) as excinfo:
        select_default_source(
            [LiteralSource("1"), FieldSource("X")], target="Server", parameter="port"
        )
    error = excinfo.value
    assert error.kind is StructuralErrorKind.DUPLICATE_DEFAULT_SOURCE
    assert "cannot specify both 'value' and 'field'" in str(error)
    with pytest.raises(StructuralError) as excinfo:
        select_default_source(
            [LiteralSource("1"), FactorySource("make")], target="Server", parameter="port"
        )
    assert "both DefaultValue and DefaultFactory" in str(excinfo.value)


def test_select_default_source_single_and_empty() -> None:
    assert select_default_source([], target="Server", parameter="port") is None
    only = FieldSource("X")
    assert select_default_source([only], target="Server", parameter="port") is only


def test_merge_default_sources_prefers_owner_site() -> None:
    owner = LiteralSource("1")
    component = LiteralSource("2")
    assert merge_default_sources(owner, component) is owner
    assert merge_default_sources(None, component) is component
    assert merge_default_sources(None, None) is None


def test_check_consecutive_defaults_reports_lowest_offender() -> None:
    target = make_callable(
        make_param("a", default="1"),
        make_param("b"),
        make_param("c", default="2"),
        make_param("d"),
    )
    with pytest.raises(StructuralError) as excinfo:
        check_consecutive_defaults(target)
    error = excinfo.value
    assert error.kind is StructuralErrorKind.NON_CONSECUTIVE_DEFAULT
    assert error.at == 1
    assert error.names == ("b", "d")
    assert "[b, d]" in str(error)


def test_check_consecutive_defaults_ignores_named_mode() -> None:
    target = make_callable(make_param("a", default="1"), make_param("b"), named=True)
    check_consecutive_defaults(target)


def test_complete_resolves_every_parameter(config_symbols: InMemorySymbolTable) -> None:
    target = make_callable(
        make_param("host", "str", source=FieldSource("Defaults.HOST")),
        make_param("port", "int", default="8080"),
    )
    completed = ParameterModel(config_symbols).complete(target)
    assert completed.ok
    host, port = completed.target.parameters
    assert isinstance(host.default_expression, FieldExpression)
    assert isinstance(port.default_expression, LiteralExpression)
    assert port.default_expression.value == 8080


def test_complete_collects_all_errors(config_symbols: InMemorySymbolTable) -> None:
    target = make_callable(
        make_param("port", "int", default="abc"),
        make_param("host", "str", source=FieldSource("Defaults.HOTS")),
        make_param("name", "str"),
    )
    completed = ParameterModel(config_symbols).complete(target)
    assert not completed.ok
    assert [issue.parameter for issue in completed.errors] == ["port", "host", None]
    assert isinstance(completed.errors[0].error, LiteralError)
    assert isinstance(completed.errors[1].error, ReferenceResolutionError)
    assert completed.errors[2].error.code == "NonConsecutiveDefault"


def test_complete_flags_multi_character_char(config_symbols: InMemorySymbolTable) -> None:
    target = make_callable(make_param("sep", "char", default="::"))
    completed = ParameterModel(config_symbols).complete(target)
    assert completed.ok
    assert [w.warning.kind for w in completed.warnings] == [
        DiscoveryWarningKind.MULTI_CHARACTER_LITERAL
    ]
