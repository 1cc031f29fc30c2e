# tests/test_reconcile.py
from datetime import datetime

import pytest

from sasspipe.core.reconcile import file_push, handle_error, remap_sources
from sasspipe.core.sourcemap import decode_mappings
from sasspipe.errors import CompileError, PluginError
from sasspipe.models import CompileResult, File, FileStat


def push(file, result):
    calls = []
    file_push(file, result, lambda *args: calls.append(args))
    return calls

# --- Test 1: Source path remapping ---

def test_remap_nested_source_file():
    file = File(path="/proj/css/main.scss", contents=b"", base="/proj")
    source_map = {
        "version": 3,
        "file": "stdout",
        "sources": ["stdin", "_vars.scss", "file:///proj/lib/_mixins.scss"],
        "sourcesContent": ["main", "vars", "mixins"],
        "mappings": "AAAA",
    }

    calls = push(file, CompileResult(css="a{}", source_map=source_map))

    assert calls == [(None, file)]
    assert file.path == "/proj/css/main.css"
    assert file.source_map["sources"] == ["css/_vars.scss", "lib/_mixins.scss"]
    assert file.source_map["sourcesContent"] == ["vars", "mixins"]
    assert file.source_map["file"] == "css/main.css"

def test_remap_keeps_bare_self_entry():
    sources = ["main.scss", "_a.scss", "../shared/_b.scss"]
    assert remap_sources(sources, "main.scss", "css/main.css", "/proj/") == [
        "main.scss",
        "css/_a.scss",
        "shared/_b.scss",
    ]

def test_remap_file_scheme_entries_relative_to_base():
    sources = ["file:///proj/css/main.scss", "_a.scss", "file:///proj/vendor/_reset.scss"]
    assert remap_sources(sources, "/proj/css/main.scss", "css/main.css", "/proj/") == [
        "css/main.scss",
        "css/_a.scss",
        "vendor/_reset.scss",
    ]

def test_remap_is_noop_for_sources_already_relative_to_base():
    file = File(path="/proj/main.scss", contents=b"", base="/proj")
    sources = ["main.scss", "_vars.scss", "partials/_buttons.scss"]
    source_map = {"version": 3, "file": "main.scss", "sources": list(sources), "mappings": "AAAA"}

    push(file, CompileResult(css="a{}", source_map=source_map))

    assert file.source_map["sources"] == sources
    assert file.source_map["file"] == "main.css"

def test_missing_map_file_defaults_to_output_path():
    file = File(path="/proj/styles/app.scss", contents=b"", base="/proj")
    source_map = {"version": 3, "sources": ["_base.scss", "_grid.scss"], "mappings": "AAAA"}

    push(file, CompileResult(css="a{}", source_map=source_map))

    # No self entry, so every bare source is joined on the source directory
    assert file.source_map["sources"] == ["styles/_base.scss", "styles/_grid.scss"]
    assert file.source_map["file"] == "styles/app.css"

def test_base_when_output_path_does_not_end_with_relative_path():
    # A base that is not an ancestor makes the relative path climb ("../"),
    # so the suffix strip does not apply and base stays the whole path.
    file = File(path="/build/main.scss", contents=b"", base="/build/nested")
    source_map = {
        "version": 3,
        "file": "stdin",
        "sources": ["stdin", "file:///build/lib/_x.scss"],
        "mappings": "AAAA",
    }

    push(file, CompileResult(css="a{}", source_map=source_map))

    assert file.source_map["sources"] == ["../lib/_x.scss"]
    assert file.source_map["file"] == "../main.css"

def test_source_map_json_string_is_accepted():
    file = File(path="/proj/main.scss", contents=b"", base="/proj")
    payload = '{"version": 3, "file": "main.scss", "sources": ["main.scss"], "mappings": "AAAA"}'

    push(file, CompileResult(css="a{}", source_map=payload))

    assert file.source_map["sources"] == ["main.scss"]

def test_no_source_map_leaves_request_untouched():
    request = {"version": 3, "file": "main.scss", "sources": ["main.scss"], "mappings": ""}
    file = File(path="/proj/main.scss", contents=b"", base="/proj", source_map=request)

    push(file, CompileResult(css=b"a{}"))

    assert file.contents == b"a{}"
    assert file.source_map is request

def test_stat_times_are_refreshed():
    old = datetime(2000, 1, 1)
    file = File(path="/proj/main.scss", contents=b"", base="/proj", stat=FileStat(old, old, old))

    push(file, CompileResult(css="a{}"))

    assert file.stat.atime > old
    assert file.stat.atime == file.stat.mtime == file.stat.ctime

def test_map_chains_through_existing_map():
    existing = {
        "version": 3,
        "file": "main.scss",
        "sources": ["main.src.scss"],
        "sourcesContent": ["original"],
        "names": [],
        "mappings": "AAAA;AACA",
    }
    file = File(path="/proj/main.scss", contents=b"", base="/proj", source_map=existing)
    compiled = {"version": 3, "file": "main.scss", "sources": ["main.scss"], "names": [], "mappings": "AACA"}

    push(file, CompileResult(css="a{}", source_map=compiled))

    assert file.source_map["file"] == "main.css"
    assert file.source_map["sources"] == ["main.src.scss"]
    assert file.source_map["sourcesContent"] == ["original"]
    assert file.source_map["mappings"] == "AACA"

def test_dropped_sources_are_removed_from_mappings():
    file = File(path="/proj/css/main.scss", contents=b"", base="/proj")
    source_map = {
        "version": 3,
        "file": "stdout",
        "sources": ["stdin", "", "_vars.scss"],
        "sourcesContent": ["main", "", "vars"],
        "names": [],
        # One segment per source: (0, 0), (1, 1), (2, 2)
        "mappings": "AAAA,CCAA,CCAA",
    }

    push(file, CompileResult(css="a{}", source_map=source_map))

    assert file.source_map["sources"] == ["css/_vars.scss"]
    assert file.source_map["sourcesContent"] == ["vars"]
    assert decode_mappings(file.source_map["mappings"]) == [[(2, 0, 0, 0)]]

def test_empty_source_entry_is_dropped():
    file = File(path="/proj/main.scss", contents=b"", base="/proj")
    source_map = {
        "version": 3,
        "file": "main.scss",
        "sources": ["main.scss", ""],
        "sourcesContent": ["a {}", ""],
        "mappings": "AAAA",
    }

    push(file, CompileResult(css="a{}", source_map=source_map))

    assert file.source_map["sources"] == ["main.scss"]
    assert file.source_map["sourcesContent"] == ["a {}"]
    assert file.source_map["mappings"] == "AAAA"

# --- Test 2: Error enrichment ---

@pytest.fixture
def in_project(tmp_path, monkeypatch):
    root = tmp_path.resolve()
    monkeypatch.chdir(root)
    return root

def fail(error, file):
    calls = []
    handle_error(error, file, lambda *args: calls.append(args))
    return calls

def test_stdin_error_reports_input_path(in_project):
    file = File(path=str(in_project / "styles" / "main.scss"), contents=b"a {")
    error = CompileError("Error: expected \"}\".", file="stdin")

    calls = fail(error, file)

    assert len(calls) == 1
    wrapped = calls[0][0]
    assert isinstance(wrapped, PluginError)
    assert wrapped.plugin == "sasspipe"
    assert wrapped.error is error
    assert error.relative_path == "styles/main.scss"
    assert error.message_original == "Error: expected \"}\"."
    assert error.message == "styles/main.scss\nError: expected \"}\"."
    assert "\x1b[4m" in error.message_formatted
    assert "\x1b[" not in error.message

def test_error_file_used_when_present(in_project):
    file = File(path=str(in_project / "main.scss"), contents=b"@import 'a';")
    error = CompileError("Undefined mixin.", file=str(in_project / "lib" / "_a.scss"))

    fail(error, file)

    assert error.relative_path == "lib/_a.scss"

def test_plain_exception_is_enriched(in_project):
    file = File(path=str(in_project / "main.scss"), contents=b"a {}")
    error = ValueError("boom")

    calls = fail(error, file)

    assert error.relative_path == "main.scss"
    assert error.message_original == "boom"
    assert calls[0][0].message == "main.scss\nboom"
