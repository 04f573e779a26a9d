"""Tests for repository list parsing and active repository selection."""

import logging
import os
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from vault_sync.repos import parse_repository_list, select_active


def test_parse_repository_list_strips_and_drops_empty() -> None:
    assert parse_repository_list(" /a ; ;/b;") == ["/a", "/b"]
    assert parse_repository_list("") == []


def test_select_active_skips_candidates_without_git(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Verifies the `/a;/b` scenario where only `/b/.git` exists."""
    caplog.set_level(logging.INFO)
    existing = {os.path.join("/b", ".git")}

    active = select_active("/a;/b", exists=existing.__contains__)

    assert active == Path("/b")
    assert "SKIPPED /a" in caplog.text


def test_select_active_with_real_filesystem(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    third = tmp_path / "third"
    for d in (first, second, third):
        d.mkdir()
    (second / ".git").mkdir()
    (third / ".git").mkdir()

    active = select_active(f"{first};{second};{third}")

    assert active == second


def test_select_active_none_when_nothing_qualifies(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.WARNING)

    assert select_active("/x;/y", exists=lambda _: False) is None
    assert "No git repository among 2 candidate(s)" in caplog.text


def test_select_active_empty_list() -> None:
    assert select_active("", exists=lambda _: True) is None


segment = st.text(alphabet="abcdefgh", min_size=1, max_size=6)


@settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(
    candidates=st.lists(segment, min_size=0, max_size=8, unique=True),
    flags=st.lists(st.booleans(), min_size=8, max_size=8),
)
def test_select_active_returns_first_qualifying(
    candidates: list[str], flags: list[bool]
) -> None:
    """
    Property: the selected repository is the first candidate, in list order,
    whose `.git` marker exists, regardless of how many candidates surround it.
    """
    paths = [f"/{c}" for c in candidates]
    qualifying = [p for p, ok in zip(paths, flags) if ok]
    existing = {os.path.join(p, ".git") for p in qualifying}

    active = select_active(";".join(paths), exists=existing.__contains__)

    if qualifying:
        assert active == Path(qualifying[0])
    else:
        assert active is None


def test_select_active_returns_absolute_path_for_relative_entry(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verifies that a relative candidate is anchored to the cwd it was found from."""
    (tmp_path / "notes" / ".git").mkdir(parents=True)
    monkeypatch.chdir(tmp_path)

    active = select_active("missing;notes")

    assert active is not None
    assert active.is_absolute()
    assert active.resolve() == (tmp_path / "notes").resolve()
