from __future__ import annotations

from pathlib import Path
import sys
import textwrap


def _load():
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from defaultsmith.config import GenerationConfig
    from defaultsmith.ingest.python_ingest import (
        ingest_paths,
        ingest_source,
        iter_python_paths,
        module_name,
    )

    return GenerationConfig, ingest_paths, ingest_source, iter_python_paths, module_name


ORDERS = textwrap.dedent(
    """
    from __future__ import annotations

    from dataclasses import dataclass, field
    from typing import Annotated, ClassVar

    from defaultsmith import DefaultFactory, DefaultValue, with_defaults


    class Settings:
        DEFAULT_CURRENCY: ClassVar[str] = "EUR"
        RETRIES = 3
        label: str

        @staticmethod
        def new_id() -> str:
            return "id"

        def _secret(self) -> None:
            pass


    class Order:
        @with_defaults
        def __init__(
            self,
            sku: str,
            quantity: Annotated[int, DefaultValue("1")],
            currency: Annotated[str, DefaultValue(field="Settings.DEFAULT_CURRENCY")],
        ) -> None:
            self.sku = sku
            self.quantity = quantity
            self.currency = currency

        @with_defaults(named=True)
        def ship(self, address: str, express: Annotated[bool, DefaultValue("false")]) -> str:
            return f"{self.sku}->{address}:{express}"

        @classmethod
        def bulk(cls, sku: str) -> Order:
            return cls(sku, 100, "EUR")


    @with_defaults
    @dataclass
    class Line:
        sku: str
        order_id: Annotated[str, DefaultFactory("Settings.new_id")]
        cache: ClassVar[int] = 0
        note: str = field(init=False, default="")


    @with_defaults
    def total(price: float, tax: Annotated[float, DefaultValue("0.2")]) -> float:
        return price * (1 + tax)
    """
).lstrip()


def _write(root: Path, relative: str, text: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_module_name_strips_src_and_init(tmp_path: Path) -> None:
    _, _, _, _, module_name = _load()
    assert module_name(tmp_path / "src" / "shop" / "orders.py", tmp_path) == "shop.orders"
    assert module_name(tmp_path / "shop" / "__init__.py", tmp_path) == "shop"


def test_iter_python_paths_skips_generated_and_excluded(tmp_path: Path) -> None:
    GenerationConfig, _, _, iter_python_paths, _ = _load()
    _write(tmp_path, "shop/orders.py", "")
    _write(tmp_path, "shop/orders_defaults.py", "")
    _write(tmp_path, "build/skip.py", "")
    _write(tmp_path, "shop/notes.txt", "")
    paths = iter_python_paths([tmp_path], config=GenerationConfig())
    assert [p.relative_to(tmp_path).as_posix() for p in paths] == ["shop/orders.py"]


def test_ingest_builds_scopes_members_and_owners() -> None:
    GenerationConfig, _, ingest_source, _, _ = _load()
    ingest = ingest_source(ORDERS, module="shop.orders")
    assert ingest.diagnostics == []
    scopes = {scope.qualified_name: scope for scope in ingest.scopes}
    assert set(scopes) == {"shop.orders", "shop.orders.Settings", "shop.orders.Order", "shop.orders.Line"}
    assert scopes["shop.orders.Line"].kind.value == "record"

    settings = {m.name: m for m in ingest.members["shop.orders.Settings"]}
    assert settings["DEFAULT_CURRENCY"].is_static
    assert settings["DEFAULT_CURRENCY"].value_type.name == "str"
    assert settings["RETRIES"].value_type.name == "int"
    assert not settings["label"].is_static
    assert settings["new_id"].is_static_no_arg_method
    assert settings["_secret"].returns_void
    assert settings["_secret"].visibility.value == "private"

    owners = {owner.scope: owner for owner in ingest.owners}
    assert list(owners) == ["shop.orders.Order", "shop.orders.Line", "shop.orders"]
    init, ship = owners["shop.orders.Order"].callables
    assert [p.name for p in init.parameters] == ["sku", "quantity", "currency"]
    assert init.kind.value == "constructor"
    assert ship.generation_mode.value == "named"
    assert not ship.is_static

    (canonical,) = owners["shop.orders.Line"].callables
    assert [p.name for p in canonical.parameters] == ["sku", "order_id"]

    constructors = scopes["shop.orders.Order"].constructors
    assert [c.factory_name for c in constructors] == [None, "bulk"]

    (function,) = owners["shop.orders"].callables
    assert function.is_static and function.name == "total"
    assert ingest.aliases["with_defaults"] == "defaultsmith.with_defaults"


def test_ingest_reports_marker_problems() -> None:
    _, _, ingest_source, _, _ = _load()
    source = textwrap.dedent(
        """
        from typing import Annotated
        from defaultsmith import DefaultValue, with_defaults

        class Broken:
            @with_defaults
            def both(self, a: Annotated[str, DefaultValue("x", field="Y")]) -> None: ...

            @with_defaults
            def number(self, a: Annotated[int, DefaultValue(8080)]) -> None: ...

            @with_defaults
            def spread(self, *items: int) -> None: ...

            def unmarked(self, *items: int) -> None: ...
        """
    )
    ingest = ingest_source(source, module="broken")
    assert [d.code for d in ingest.diagnostics] == [
        "DuplicateDefaultSource",
        "InvalidTarget",
        "InvalidTarget",
    ]
    assert [d.target for d in ingest.diagnostics] == [
        "Broken.both",
        "Broken.number",
        "Broken.spread",
    ]
    assert "string literals" in ingest.diagnostics[1].message


def test_class_marker_applies_to_public_defaulted_methods() -> None:
    _, _, ingest_source, _, _ = _load()
    source = textwrap.dedent(
        """
        from typing import Annotated
        from defaultsmith import DefaultValue, with_defaults

        @with_defaults(method_name="make")
        class Client:
            def __init__(self, host: Annotated[str, DefaultValue("localhost")]) -> None: ...

            def ping(self, count: Annotated[int, DefaultValue("1")]) -> int: ...

            def _private(self, count: Annotated[int, DefaultValue("1")]) -> int: ...

            def plain(self, count: int) -> int: ...

            @with_defaults(named=True)
            def send(self, body: Annotated[str, DefaultValue("")]) -> None: ...
        """
    )
    ingest = ingest_source(source, module="client")
    (owner,) = ingest.owners
    assert [c.name for c in owner.callables] == ["__init__", "ping", "send"]
    init, ping, send = owner.callables
    assert init.entry_point_name == "make"
    assert init.helper_name == "make"
    assert send.generation_mode.value == "named"
    assert send.entry_point_name == "create"
    assert not send.returns_value


def test_include_marker_records_request() -> None:
    _, _, ingest_source, _, _ = _load()
    source = textwrap.dedent(
        """
        from defaultsmith import include_defaults
        from ext.net import Client

        @include_defaults(Client, named=True, method_name="builder")
        class ClientDefaultsSource:
            DEFAULT_HOST = "example.org"
        """
    )
    ingest = ingest_source(source, module="app.defaults")
    (include,) = ingest.includes
    assert include.companion == "app.defaults.ClientDefaultsSource"
    assert include.targets == ("Client",)
    assert include.generation_mode.value == "named"
    assert include.entry_point_name == "builder"
    assert ingest.aliases["Client"] == "ext.net.Client"


def test_ingest_paths_collects_parse_failures(tmp_path: Path) -> None:
    GenerationConfig, ingest_paths, _, _, _ = _load()
    _write(tmp_path, "shop/__init__.py", "")
    _write(tmp_path, "shop/orders.py", ORDERS)
    _write(tmp_path, "shop/broken.py", "def nope(:\n")
    result = ingest_paths([tmp_path], project_root=tmp_path, config=GenerationConfig())
    assert set(result.modules) == {"shop", "shop.orders"}
    assert [f.stage for f in result.parse_failures] == ["parse"]
    (diagnostic,) = result.diagnostics
    assert diagnostic.code == "ParseFailure"
    assert diagnostic.path.endswith("broken.py")
    assert result.symbols.lookup_absolute_scope("shop.orders.Settings") is not None
    assert len(result.owners) == 3
