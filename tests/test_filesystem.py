from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from jirapub.exceptions import IssueFormatError, IssueNotFoundError, IssueStoreError
from jirapub.filesystem import (
    IssueStore,
    collect_file_stat,
    enforce_file_size,
    get_max_file_size,
    issue_sort_key,
    read_issue_file,
    read_text_file,
    safe_read,
)


def _write_issue(store: Path, issue_id: str, key: str, labels: list[str], **fields) -> Path:
    target = store / "issue" / f"{issue_id}.json"
    target.parent.mkdir(parents=True, exist_ok=True)
    document = {"key": key, "fields": {"labels": labels, "summary": f"summary {key}", **fields}}
    target.write_text(json.dumps(document), encoding="utf-8")
    return target


@pytest.fixture()
def store_dir(tmp_path: Path) -> Path:
    _write_issue(tmp_path, "100", "OS-2", ["public"])
    _write_issue(tmp_path, "101", "OS-10", ["public"], resolution={"name": "Fixed"})
    _write_issue(tmp_path, "102", "OS-3", ["internal"])
    _write_issue(tmp_path, "103", "TRITON-1", ["public", "triton"])
    return tmp_path


def test_get_max_file_size_defaults(monkeypatch):
    monkeypatch.delenv("JIRAPUB_MAX_FILE_SIZE", raising=False)

    assert get_max_file_size(default=123) == 123


def test_get_max_file_size_reads_environment(monkeypatch):
    monkeypatch.setenv("JIRAPUB_MAX_FILE_SIZE", "2048")

    assert get_max_file_size() == 2048


@pytest.mark.parametrize("value", ["invalid", "0", "-5"])
def test_get_max_file_size_rejects_bad_values(monkeypatch, value):
    monkeypatch.setenv("JIRAPUB_MAX_FILE_SIZE", value)

    with pytest.raises(ValueError):
        get_max_file_size()


def test_collect_file_stat_rejects_directories(tmp_path: Path):
    with pytest.raises(IOError, match="not a regular file"):
        collect_file_stat(tmp_path)


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="Symlink support is required")
def test_collect_file_stat_rejects_symlinks(tmp_path: Path):
    source = tmp_path / "source.txt"
    source.write_text("x", encoding="utf-8")
    link = tmp_path / "alias.txt"
    try:
        os.symlink(source, link)
    except OSError as error:  # pragma: no cover - platform dependent
        pytest.skip(f"Unable to create symlink: {error}")

    with pytest.raises(IOError, match="Symlinks"):
        collect_file_stat(link)


def test_enforce_file_size(tmp_path: Path):
    target = tmp_path / "big.txt"
    target.write_text("x" * 10, encoding="utf-8")

    enforce_file_size(collect_file_stat(target), 10, target)
    with pytest.raises(IOError, match="maximum allowed size"):
        enforce_file_size(collect_file_stat(target), 9, target)


def test_safe_read_missing_file(tmp_path: Path):
    with pytest.raises(IOError, match="Error accessing"):
        safe_read(tmp_path / "missing.txt")


def test_read_text_file(tmp_path: Path):
    target = tmp_path / "body.txt"
    target.write_text("h1. Title\n", encoding="utf-8")

    assert read_text_file(target) == "h1. Title\n"


def test_read_issue_file_errors(tmp_path: Path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    binary = tmp_path / "binary.json"
    binary.write_bytes(b"\xff\xfe\x00")

    with pytest.raises(IssueStoreError, match="could not parse"):
        read_issue_file(broken)
    with pytest.raises(IssueStoreError, match="Invalid UTF-8"):
        read_issue_file(binary)
    with pytest.raises(IssueStoreError):
        read_issue_file(tmp_path / "missing.json")


def test_issue_sort_key():
    assert sorted(["OS-10", "OS-2", "ABC-7"], key=issue_sort_key) == ["ABC-7", "OS-2", "OS-10"]


def test_issue_store_index(store_dir: Path):
    store = IssueStore(store_dir)

    assert len(store) == 4
    assert store.keys() == ["TRITON-1", "OS-10", "OS-3", "OS-2"]


def test_issue_store_list_filters_by_every_label(store_dir: Path):
    store = IssueStore(store_dir)

    page = store.list(["public"])
    assert page.total == 3
    assert [entry["key"] for entry in page.issues] == ["TRITON-1", "OS-10", "OS-2"]
    assert page.issues[1]["fields"]["resolution"] == {"name": "Fixed"}

    page = store.list(["public", "triton"])
    assert [entry["key"] for entry in page.issues] == ["TRITON-1"]


def test_issue_store_list_paginates(tmp_path: Path):
    for number in range(1, 61):
        _write_issue(tmp_path, str(1000 + number), f"OS-{number}", ["public"])
    store = IssueStore(tmp_path)

    first = store.list(["public"])
    second = store.list(["public"], offset=50)

    assert first.total == second.total == 60
    assert len(first.issues) == 50
    assert [entry["key"] for entry in second.issues][:2] == ["OS-10", "OS-9"]
    assert len(second.issues) == 10

    with pytest.raises(ValueError):
        store.list(["public"], offset=-1)


def test_issue_store_get(store_dir: Path):
    store = IssueStore(store_dir)

    issue = store.get("OS-10")
    assert issue["fields"]["summary"] == "summary OS-10"

    with pytest.raises(IssueNotFoundError):
        store.get("OS-999")
    with pytest.raises(IssueNotFoundError):
        store.get("../issue/100")


def test_issue_store_get_detects_removed_file(store_dir: Path):
    store = IssueStore(store_dir)
    (store_dir / "issue" / "100.json").unlink()

    with pytest.raises(IssueNotFoundError):
        store.get("OS-2")


def test_issue_store_requires_issue_directory(tmp_path: Path):
    with pytest.raises(IssueStoreError):
        IssueStore(tmp_path / "missing")


def test_issue_store_rejects_issue_without_key(tmp_path: Path):
    target = tmp_path / "issue" / "1.json"
    target.parent.mkdir()
    target.write_text(json.dumps({"fields": {}}), encoding="utf-8")

    with pytest.raises(IssueFormatError):
        IssueStore(tmp_path)


def test_issue_store_remote_links(store_dir: Path):
    store = IssueStore(store_dir)
    links_dir = store_dir / "remotelink"
    links_dir.mkdir()
    (links_dir / "100.json").write_text(json.dumps([{"id": 1}]), encoding="utf-8")
    (links_dir / "101.json").write_text(json.dumps({"id": 1}), encoding="utf-8")

    assert store.remote_links("100") == [{"id": 1}]
    assert store.remote_links("102") == []
    with pytest.raises(IssueStoreError):
        store.remote_links("101")
