from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import List, Optional
import json

import typer
from pydantic import ValidationError

from defaultsmith.config import GenerationConfig
from defaultsmith.emit.writer import ModuleRenderer, output_path, render_module, write_module
from defaultsmith.engine.orchestrator import DefaultsEngine, RunResult
from defaultsmith.exceptions import Diagnostic, Severity
from defaultsmith.ingest.manifest import load_manifest, plan_payload
from defaultsmith.ingest.python_ingest import IngestResult, ingest_paths

app = typer.Typer(add_completion=False)


def _with_path(diagnostics: List[Diagnostic], path: Path | None) -> list[Diagnostic]:
    if path is None:
        return list(diagnostics)
    return [d if d.path else replace(d, path=str(path)) for d in diagnostics]


def _emit_diagnostics(diagnostics: List[Diagnostic]) -> None:
    for diagnostic in diagnostics:
        typer.echo(diagnostic.render(), err=True)


def _summary(diagnostics: List[Diagnostic]) -> tuple[int, int]:
    errors = sum(1 for d in diagnostics if d.severity is Severity.ERROR)
    return errors, len(diagnostics) - errors


def _load_generation_config(root: Path, config: Optional[Path], jobs: Optional[int]) -> GenerationConfig:
    overrides = {"jobs": jobs} if jobs is not None else {}
    return GenerationConfig.load(root=root, config_path=config, overrides=overrides)


def _run_sources(
    paths: List[Path], root: Path, settings: GenerationConfig
) -> tuple[IngestResult, RunResult]:
    ingested = ingest_paths(paths or [root], project_root=root, config=settings)
    engine = DefaultsEngine(ingested.symbols, settings)
    return ingested, engine.run(ingested.owners, ingested.includes)


def _process(
    paths: List[Path],
    *,
    root: Path,
    settings: GenerationConfig,
    write: bool,
    dry_run: bool,
) -> int:
    ingested, run = _run_sources(paths, root, settings)
    diagnostics = list(ingested.diagnostics)
    for module, namespaces in run.by_module().items():
        source_path = ingested.modules.get(module)
        for namespace in namespaces:
            diagnostics.extend(_with_path(namespace.all_diagnostics, source_path))
        if source_path is None or not any(ns.plans for ns in namespaces):
            continue
        renderer = ModuleRenderer()
        code = renderer.render(module, namespaces)
        for warning in renderer.warnings:
            typer.echo(f"{source_path}: warning: {warning}", err=True)
        if not write:
            continue
        target = output_path(source_path, settings.output_suffix)
        if write_module(target, code, dry_run=dry_run):
            prefix = "Would write" if dry_run else "Wrote"
            typer.echo(f"{prefix} {target}")
    _emit_diagnostics(diagnostics)
    errors, warnings = _summary(diagnostics)
    typer.echo(f"{errors} error(s), {warnings} warning(s)", err=True)
    return 1 if errors else 0


@app.command()
def generate(
    paths: List[Path] = typer.Argument(None),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    jobs: Optional[int] = typer.Option(None, "--jobs", min=1),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Report generated modules without writing them."
    ),
) -> None:
    """Generate default helper modules next to annotated sources."""
    settings = _load_generation_config(root, config, jobs)
    exit_code = _process(paths, root=root, settings=settings, write=True, dry_run=dry_run)
    raise typer.Exit(code=exit_code)


@app.command()
def check(
    paths: List[Path] = typer.Argument(None),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    jobs: Optional[int] = typer.Option(None, "--jobs", min=1),
) -> None:
    """Validate annotated sources without writing anything."""
    settings = _load_generation_config(root, config, jobs)
    exit_code = _process(paths, root=root, settings=settings, write=False, dry_run=True)
    raise typer.Exit(code=exit_code)


def _read_manifest(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid JSON in {path}: {exc}") from exc


@app.command()
def plan(
    input_path: Path = typer.Option(..., "--input", help="Manifest JSON file."),
    output: Optional[Path] = typer.Option(None, "--output"),
    render: bool = typer.Option(False, "--render", help="Include generated source."),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Plan a JSON manifest and print the result as JSON."""
    settings = GenerationConfig.load(root=input_path.parent, config_path=config)
    payload = _read_manifest(input_path)
    if not isinstance(payload, dict):
        raise typer.BadParameter("Manifest must be a JSON object.")
    try:
        manifest = load_manifest(payload, config=settings)
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid manifest: {exc}") from exc
    run = DefaultsEngine(manifest.symbols, settings).run(manifest.owners, manifest.includes)
    sources = None
    if render:
        sources = {
            namespace.name: render_module(namespace.source_module, [namespace])
            for namespace in run.namespaces
            if namespace.plans
        }
    result = plan_payload(run, extra=manifest.diagnostics, sources=sources)
    text = json.dumps(result, indent=2, sort_keys=True)
    if output is None:
        typer.echo(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")
    errors, _ = _summary(manifest.diagnostics + run.diagnostics)
    raise typer.Exit(code=1 if errors else 0)


if __name__ == "__main__":  # pragma: no cover
    app()
