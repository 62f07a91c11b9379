from __future__ import annotations

from contextlib import ExitStack, contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional
import json

import typer

from ctorprune.analysis.timeout_context import (
    Deadline,
    TimeoutExceeded,
    deadline_clock_scope,
    deadline_scope,
)
from ctorprune.config import load_prune_config
from ctorprune.deadline_clock import MonotonicClock
from ctorprune.json_types import JSONObject
from ctorprune.refactor.engine import PruneEngine, apply_plan
from ctorprune.refactor.model import PrunePlan
from ctorprune.schema import PruneRequestDTO, PruneResponseDTO

app = typer.Typer(add_completion=False)

_DEFAULT_TIMEOUT_MS = 120_000
_STDOUT_ALIAS = "-"


@app.callback()
def _root() -> None:
    """Remove constructor parameters that the constructor never reads."""


@contextmanager
def _cli_deadline_scope(timeout_ms: int):
    with ExitStack() as stack:
        stack.enter_context(deadline_scope(Deadline.from_timeout_ms(timeout_ms)))
        stack.enter_context(deadline_clock_scope(MonotonicClock()))
        yield


def _load_input_payload(input_path: Optional[Path]) -> JSONObject | None:
    if input_path is None:
        return None
    try:
        loaded = json.loads(input_path.read_text())
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid JSON payload: {exc}") from exc
    if not isinstance(loaded, dict):
        raise typer.BadParameter("Prune payload must be a JSON object.")
    return loaded


def build_prune_payload(
    *,
    input_payload: JSONObject | None,
    paths: Optional[List[Path]],
    root: Optional[Path],
    config_path: Optional[Path],
    apply: bool,
) -> JSONObject:
    payload: JSONObject = dict(input_payload or {})
    if paths:
        payload["paths"] = [str(path) for path in paths]
    if root is not None:
        payload["root_path"] = str(root)
    if config_path is not None:
        payload["config_path"] = str(config_path)
    if apply:
        payload["apply"] = True
    if not payload.get("paths"):
        raise typer.BadParameter("At least one path is required.")
    return payload


def plan_payload(plan: PrunePlan, *, applied: List[str]) -> JSONObject:
    return {
        "edits": [asdict(edit) for edit in plan.edits],
        "rewrite_plans": [asdict(entry) for entry in plan.rewrite_plans],
        "warnings": list(plan.warnings),
        "errors": list(plan.errors),
        "applied": list(applied),
    }


def run_prune(payload: JSONObject) -> JSONObject:
    request = PruneRequestDTO.model_validate(payload)
    root = Path(request.root_path) if request.root_path else Path.cwd()
    config = load_prune_config(
        root=root,
        config_path=Path(request.config_path) if request.config_path else None,
    )
    engine = PruneEngine(project_root=root, config=config)
    plan = engine.plan_paths([Path(path) for path in request.paths])
    applied = apply_plan(plan) if request.apply else []
    return PruneResponseDTO.model_validate(plan_payload(plan, applied=applied)).model_dump()


def _emit(result: JSONObject, output_path: Optional[Path]) -> None:
    output = json.dumps(result, indent=2, sort_keys=True)
    if output_path is None or str(output_path) == _STDOUT_ALIAS:
        typer.echo(output)
        return
    output_path.write_text(output + "\n", encoding="utf-8")


def _run_with_deadline(payload: JSONObject, timeout_ms: int) -> JSONObject:
    with _cli_deadline_scope(timeout_ms):
        try:
            return run_prune(payload)
        except TimeoutExceeded as exc:
            typer.echo(f"Timed out: {json.dumps(exc.context.as_payload())}", err=True)
            raise typer.Exit(code=2) from exc


@app.command("plan")
def plan(
    paths: Optional[List[Path]] = typer.Argument(None, help="Files or directories to scan."),
    input_path: Optional[Path] = typer.Option(
        None, "--input", help="JSON payload describing the prune request."
    ),
    root: Optional[Path] = typer.Option(None, "--root", help="Project root for module names."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to ctorprune.toml."),
    output_path: Optional[Path] = typer.Option(
        None, "--output", help="Write response JSON to this path ('-' for stdout)."
    ),
    apply: bool = typer.Option(False, "--apply/--no-apply", help="Write the edits to disk."),
    timeout_ms: int = typer.Option(_DEFAULT_TIMEOUT_MS, "--timeout-ms"),
) -> None:
    """Plan (and optionally apply) constructor parameter removals."""
    payload = build_prune_payload(
        input_payload=_load_input_payload(input_path),
        paths=paths,
        root=root,
        config_path=config_path,
        apply=apply,
    )
    _emit(_run_with_deadline(payload, timeout_ms), output_path)


@app.command("check")
def check(
    paths: Optional[List[Path]] = typer.Argument(None, help="Files or directories to scan."),
    root: Optional[Path] = typer.Option(None, "--root", help="Project root for module names."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to ctorprune.toml."),
    timeout_ms: int = typer.Option(_DEFAULT_TIMEOUT_MS, "--timeout-ms"),
) -> None:
    """Exit non-zero when any constructor has removable parameters or a file fails to load."""
    payload = build_prune_payload(
        input_payload=None,
        paths=paths,
        root=root,
        config_path=config_path,
        apply=False,
    )
    result = _run_with_deadline(payload, timeout_ms)
    for error in result["errors"]:
        typer.echo(f"error: {error}", err=True)
    rewritten = [entry for entry in result["rewrite_plans"] if entry["status"] == "rewritten"]
    for entry in rewritten:
        typer.echo(f"{entry['target']}: {entry['summary']}")
    if rewritten or result["errors"]:
        raise typer.Exit(code=1)


def main() -> None:
    app()
