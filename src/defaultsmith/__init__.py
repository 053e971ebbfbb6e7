"""defaultsmith package root."""

from defaultsmith.markers import (
    DefaultFactory,
    DefaultValue,
    RequiredFieldUnset,
    bind_prefix,
    include_defaults,
    with_defaults,
)

__all__ = [
    "DefaultFactory",
    "DefaultValue",
    "RequiredFieldUnset",
    "bind_prefix",
    "include_defaults",
    "with_defaults",
]

__version__ = "0.1.0"
