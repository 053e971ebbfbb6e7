"""Hosts that turn sources or manifests into engine inputs."""

from .manifest import Manifest, load_manifest, plan_payload
from .python_ingest import IngestResult, ParseFailureWitness, ingest_paths, ingest_source

__all__ = [
    "IngestResult",
    "Manifest",
    "ParseFailureWitness",
    "ingest_paths",
    "ingest_source",
    "load_manifest",
    "plan_payload",
]
