"""Entry point for the adaptive document planner."""

import argparse
import json
import logging
import sys
import uuid
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from config import PipelineConfig
from errors import RequestValidationError
from llm.model_client import ModelClient
from observability.langfuse_tracer import flush as flush_traces
from observability.metrics import start_metrics_server
from orchestrator import Orchestrator, build_response, validate_request
from persistence.run_store import create_run, list_runs, update_run
from state import Outcome
from tools.file_writer import OUTPUT_DIR, write_artifacts

DEFAULT_REQUEST = "Build a task management web app with React, FastAPI and PostgreSQL"


def _print_run_summary(state: dict) -> None:
    """Print per-run bookkeeping: sections, tokens, retries."""
    print("\n  Sections:")
    print(f"  {'#':<4} {'Title':<44} {'Chars':>8}")
    print(f"  {'-'*58}")
    for section in sorted(state.get("plan_sections") or [], key=lambda s: s["order"]):
        print(f"  {section['order']:<4} {section['title'][:44]:<44} {len(section['content']):>8,}")
    print(f"  {'-'*58}")
    planned = len(state.get("sections") or [])
    print(f"  {len(state.get('plan_sections') or [])}/{planned} sections generated")

    print(f"\n  Category:   {state.get('project_category') or 'unknown'}")
    print(f"  Complexity: {state.get('project_complexity') or state.get('default_complexity') or 'moderate'}")
    print(f"  Tokens:     {state.get('total_tokens_used', 0):,}")
    print(f"  Steps:      {state.get('step_count', 0)}/{state.get('max_steps', 0)}")
    print(f"  Retries:    {state.get('retry_count', 0)}")
    if state.get("model_used"):
        print(f"  Model:      {state['model_used']}")


def _print_run_history(status: str | None = None) -> None:
    """Print recent run history as a table."""
    runs = list_runs(status=status)
    if not runs:
        print("No runs found.")
        return

    print(f"\n{'='*90}")
    print(f"  {'Run ID':<10} {'Status':<14} {'Sections':>9} {'Tokens':>10} {'Model':<16} {'Created':<20}")
    print(f"  {'-'*86}")
    for run in runs:
        created = run.created_at.strftime("%Y-%m-%d %H:%M") if run.created_at else "-"
        model = run.model_used or "-"
        print(
            f"  {run.id:<10} {run.status:<14} {run.sections_generated:>9} "
            f"{run.total_tokens:>10,} {model:<16} {created:<20}"
        )
    print(f"{'='*90}")
    print(f"  {len(runs)} run(s) shown\n")


def _load_history(path: str | None) -> list[dict]:
    if not path:
        return []
    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        data = data.get("history", [])
    return data


def run_interactive(prompt: str, history: list[dict], config: PipelineConfig, output_dir: Path) -> int:
    """Run one request and print the outcome. Returns the process exit code."""
    try:
        request = validate_request({"prompt": prompt, "history": history})
    except RequestValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    orchestrator = Orchestrator(ModelClient(), config=config)

    print(f"\n{'='*60}")
    print("Adaptive Planner")
    print(f"{'='*60}")
    print(f"Request: {request.prompt}")
    if request.history:
        print(f"History: {len(request.history)} message(s)")

    run_id = str(uuid.uuid4())[:8]
    create_run(run_id, request.prompt)
    result = orchestrator.execute(
        request.prompt,
        [m.model_dump(exclude_none=True) for m in request.history],
        run_id=run_id,
    )
    update_run(run_id, result.outcome.value, result.state)
    response = build_response(result.state, result.outcome)

    print(f"Run ID:  {result.run_id}\n")
    if result.outcome is Outcome.CLARIFICATION:
        print(response.message)
        return 0

    print(f"{'='*60}")
    print(f"Finished in {result.duration:.1f}s: {result.outcome.value}")
    _print_run_summary(result.state)
    print(f"{'='*60}")
    if response.message:
        print(f"\n{response.message}")

    if result.state.get("plan_sections"):
        run_dir = write_artifacts(result.state, result.run_id, output_dir)
        print(f"\nArtifacts written to {run_dir}")
    return 0 if response.success else 1


def main():
    parser = argparse.ArgumentParser(description="Adaptive document planner")
    parser.add_argument("request", nargs="*", default=[], help="What to plan")
    parser.add_argument("--history", help="JSON file with prior conversation messages")
    parser.add_argument("--max-steps", type=int, help="Step budget for the run")
    parser.add_argument("--max-retries", type=int, help="Retry budget for the run")
    parser.add_argument("--output-dir", default=str(OUTPUT_DIR), help="Where to write plan artifacts")
    parser.add_argument("--list-runs", action="store_true", help="List recent run history")
    parser.add_argument("--status", help="Filter --list-runs by outcome")
    parser.add_argument("--metrics-port", type=int, default=9090, help="Prometheus metrics port")
    parser.add_argument("--no-metrics", action="store_true", help="Do not start the metrics server")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_runs:
        _print_run_history(status=args.status)
        return

    if not args.no_metrics:
        start_metrics_server(args.metrics_port)

    config = PipelineConfig.from_env()
    overrides = {
        k: v for k, v in (("max_steps", args.max_steps), ("max_retries", args.max_retries))
        if v is not None
    }
    if overrides:
        config = config.model_copy(update=overrides)

    prompt = " ".join(args.request) if args.request else DEFAULT_REQUEST
    try:
        code = run_interactive(prompt, _load_history(args.history), config, Path(args.output_dir))
    finally:
        flush_traces()
    sys.exit(code)


if __name__ == "__main__":
    main()
