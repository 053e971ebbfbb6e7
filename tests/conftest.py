from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT / "src", ROOT):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from defaultsmith.engine.symbols import InMemorySymbolTable
from tests.engine_helpers import make_scope, static_field, static_method


@pytest.fixture
def config_symbols() -> InMemorySymbolTable:
    """``app.config.Defaults`` plus the ``app.server.Server`` owner scope."""
    return InMemorySymbolTable.build(
        [
            make_scope("app.config.Defaults"),
            make_scope("app.server.Server"),
        ],
        {
            "app.config.Defaults": [
                static_field("HOST"),
                static_field("PORT", "int"),
                static_field("DEFAULT_NAME"),
                static_field("instance_only", is_static=False),
                static_method("make_id"),
                static_method("with_args", parameter_count=1),
                static_method("reset", returns="None", returns_void=True),
                static_method("counter", is_static=False),
            ],
            "app.server.Server": [static_field("LOCAL_HOST")],
        },
        {"app.server": {"Defaults": "app.config.Defaults"}},
    )
