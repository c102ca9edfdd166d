"""Tests for plan artifact writing."""

import pytest

from tools.file_writer import sandbox_file_path, slugify, write_artifacts


def test_writes_plan_summary_and_sections(tmp_path):
    state = {
        "final_plan": "# Plan",
        "plan_summary": "Short.",
        "plan_sections": [
            {"title": "Data Model", "content": "tables", "order": 2},
            {"title": "Project Overview", "content": "goals", "order": 1},
        ],
    }
    run_dir = write_artifacts(state, "run1", tmp_path)

    assert run_dir == (tmp_path / "run1").resolve()
    assert (run_dir / "plan.md").read_text() == "# Plan"
    assert (run_dir / "summary.md").read_text() == "Short.\n"
    files = sorted(p.name for p in (run_dir / "sections").iterdir())
    assert files == ["01-project-overview.md", "02-data-model.md"]
    assert (run_dir / "sections" / "02-data-model.md").read_text() == "## Data Model\n\ntables\n"


def test_partial_state_writes_sections_only(tmp_path):
    state = {"plan_sections": [{"title": "A", "content": "x", "order": 1}]}
    run_dir = write_artifacts(state, "run2", tmp_path)
    assert not (run_dir / "plan.md").exists()
    assert (run_dir / "sections" / "01-a.md").exists()


def test_path_traversal_blocked(tmp_path):
    with pytest.raises(ValueError):
        sandbox_file_path("../outside.md", tmp_path)


def test_slugify():
    assert slugify("API & Integrations (v2)") == "api-integrations-v2"
    assert slugify("!!!") == "section"
