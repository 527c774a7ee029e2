import pytest

from refactor_gateway.errors import NotFoundError
from refactor_gateway.references import ReferenceEntry, find_references, references_report
from refactor_gateway.resolver import resolve_by_name, resolve_by_position

from .conftest import write

SOURCE = "def foo():\n    pass\n\n\nfoo()\n"


def test_declaration_and_call_site(model, project_root):
    write(project_root, "mod.py", SOURCE)
    symbol = resolve_by_position(model, "mod.py", 4)

    entries = find_references(model, symbol)

    assert entries == [
        ReferenceEntry("mod.py", 1, 4),
        ReferenceEntry("mod.py", 5, SOURCE.rindex("foo")),
    ]


def test_call_site_resolves_same_references(model, project_root):
    write(project_root, "mod.py", SOURCE)
    from_decl = find_references(model, resolve_by_position(model, "mod.py", 4))
    from_call = find_references(model, resolve_by_position(model, "mod.py", SOURCE.rindex("foo")))
    assert from_decl == from_call


def test_references_across_files_are_sorted(model, package):
    symbol = resolve_by_name(model, "pkg/core.py", "helper")

    entries = find_references(model, symbol)

    assert [(e.file, e.line) for e in entries] == [
        ("pkg/app.py", 1),
        ("pkg/app.py", 5),
        ("pkg/core.py", 1),
    ]
    assert entries == sorted(entries)


def test_repeated_queries_are_identical(model, package):
    symbol = resolve_by_name(model, "pkg/app.py", "helper")
    assert find_references(model, symbol) == find_references(model, symbol)


def test_picks_up_edits_made_on_disk(model, project_root):
    write(project_root, "mod.py", SOURCE)
    symbol = resolve_by_position(model, "mod.py", 4)
    assert len(find_references(model, symbol)) == 2

    write(project_root, "mod.py", SOURCE + "foo()\n")
    symbol = resolve_by_position(model, "mod.py", 4)
    assert len(find_references(model, symbol)) == 3


def test_report_shape(model, package):
    symbol = resolve_by_name(model, "pkg/core.py", "helper")
    entries = find_references(model, symbol)

    report = references_report(symbol, entries, "pkg/core.py")

    assert report["symbol"] == {"name": "helper", "file": "pkg/core.py", "line": 1, "offset": 4}
    assert report["count"] == 3
    assert report["files"] == ["pkg/app.py", "pkg/core.py"]
    assert report["references"][0] == {"file": "pkg/app.py", "line": 1, "offset": entries[0].offset}


def test_renamed_away_name_is_not_found(model, package):
    write(package, "pkg/core.py", "def other():\n    return 42\n")
    with pytest.raises(NotFoundError):
        resolve_by_name(model, "pkg/core.py", "helper")
