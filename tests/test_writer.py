"""Tests for writing edits to disk."""

from pathlib import Path

from cppmove.edits import Edit, EditSet
from cppmove.writer import ChangeWriter


def _edits(temp_dir):
    old = temp_dir / "old.h"
    old.write_text("class Foo {};\nclass Bar {};\n")
    new = temp_dir / "out" / "new.h"
    return old, new, {
        str(old): EditSet(str(old), [Edit(0, len("class Foo {};\n"))]),
        str(new): EditSet(str(new), [Edit(0, 0, "class Foo {};\n")]),
    }


def test_apply_writes_files_and_backs_up(temp_dir):
    old, new, edits = _edits(temp_dir)
    writer = ChangeWriter(backup_dir=temp_dir / "backups")

    result = writer.apply(edits)

    assert result.success
    assert sorted(result.files_changed) == sorted(edits)
    assert old.read_text() == "class Bar {};\n"
    assert new.read_text() == "class Foo {};\n"
    backups = writer.list_backups()
    assert [b["backup_id"] for b in backups] == [result.backup_id]


def test_rollback_restores_and_removes_created_files(temp_dir):
    old, new, edits = _edits(temp_dir)
    writer = ChangeWriter(backup_dir=temp_dir / "backups")
    result = writer.apply(edits)

    assert writer.rollback(result.backup_id)
    assert old.read_text() == "class Foo {};\nclass Bar {};\n"
    assert not new.exists()


def test_rollback_unknown_backup(temp_dir):
    assert not ChangeWriter(backup_dir=temp_dir / "backups").rollback("nope")


def test_no_backup(temp_dir):
    _, _, edits = _edits(temp_dir)
    writer = ChangeWriter(backup_dir=temp_dir / "backups")
    result = writer.apply(edits, backup=False)
    assert result.backup_id is None
    assert writer.list_backups() == []


def test_line_endings_are_preserved(temp_dir):
    path = temp_dir / "crlf.h"
    path.write_bytes(b"int a;\r\nint b;\r\n")
    edits = {str(path): EditSet(str(path), [Edit(0, len("int a;\r\n"))])}
    ChangeWriter(backup_dir=temp_dir / "backups").apply(edits, backup=False)
    assert path.read_bytes() == b"int b;\r\n"
