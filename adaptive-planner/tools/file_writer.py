"""Writes the finished plan and its sections to the output/ directory."""

import logging
import re
from pathlib import Path

from state import PipelineState

logger = logging.getLogger(__name__)

OUTPUT_DIR = Path(__file__).parent.parent / "output"


def sandbox_file_path(filepath: str, root: Path = OUTPUT_DIR) -> Path:
    """Resolve *filepath* and assert it falls under *root*.

    Raises ValueError on path-traversal attempts.
    """
    resolved = (root / filepath).resolve()
    if not resolved.is_relative_to(root.resolve()):
        raise ValueError(f"Path traversal blocked: {filepath!r} resolves outside {root}")
    return resolved


def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:60] or "section"


def write_artifacts(state: PipelineState, run_id: str, output_dir: Path = OUTPUT_DIR) -> Path:
    """Write plan.md, summary.md and sections/NN-<slug>.md under output/<run_id>/."""
    run_dir = sandbox_file_path(run_id, output_dir)

    sections = sorted(state.get("plan_sections") or [], key=lambda s: s["order"])
    for section in sections:
        dest = sandbox_file_path(
            f"{run_id}/sections/{section['order']:02d}-{slugify(section['title'])}.md", output_dir
        )
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(f"## {section['title']}\n\n{section['content']}\n")

    run_dir.mkdir(parents=True, exist_ok=True)
    if state.get("final_plan"):
        sandbox_file_path(f"{run_id}/plan.md", output_dir).write_text(state["final_plan"])
    if state.get("plan_summary"):
        sandbox_file_path(f"{run_id}/summary.md", output_dir).write_text(state["plan_summary"] + "\n")

    logger.info(f"[file_writer] Artifacts written to {run_dir} ({len(sections)} sections)")
    return run_dir
