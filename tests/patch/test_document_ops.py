from pathlib import Path

import pytest

from voedit.patch import (
    BufferedDocumentOps,
    EditError,
    EditRequest,
    FileSystemDocumentOps,
    edit_document,
    make_code_block,
)
from voedit.settings import EngineSettings


def test_filesystem_ops_read_write_and_changes(tmp_path: Path):
    (tmp_path / "a.txt").write_text("old", encoding="utf-8")
    ops = FileSystemDocumentOps(tmp_path)

    assert ops.open("a.txt") == "old"
    assert ops.open("missing.txt") is None

    ops.write("a.txt", "new")
    ops.write("sub/dir/b.txt", "created")
    ops.write("sub/dir/b.txt", "created again")

    assert (tmp_path / "a.txt").read_text(encoding="utf-8") == "new"
    assert (tmp_path / "sub/dir/b.txt").read_text(encoding="utf-8") == "created again"
    assert ops.changes_map == {"a.txt": "updated", "sub/dir/b.txt": "created"}


def test_filesystem_ops_preserves_crlf(tmp_path: Path):
    (tmp_path / "w.txt").write_bytes(b"a\r\nb\r\n")
    ops = FileSystemDocumentOps(tmp_path)
    assert ops.open("w.txt") == "a\r\nb\r\n"
    ops.write("w.txt", "a\r\nc\r\n")
    assert (tmp_path / "w.txt").read_bytes() == b"a\r\nc\r\n"


@pytest.mark.parametrize("rel", ["/etc/passwd", "~/x", "../outside.txt", "a/../../x", ""])
def test_filesystem_ops_reject_unsafe_paths(tmp_path: Path, rel: str):
    ops = FileSystemDocumentOps(tmp_path / "root")
    with pytest.raises(EditError):
        ops.open(rel)


def test_filesystem_ops_reject_binary(tmp_path: Path):
    (tmp_path / "bin.dat").write_bytes(b"\xff\xfe\x00\x81")
    with pytest.raises(EditError):
        FileSystemDocumentOps(tmp_path).open("bin.dat")


def test_buffer_takes_precedence_over_disk(tmp_path: Path):
    (tmp_path / "f.py").write_text("disk = 1\n", encoding="utf-8")
    buffers = {"f.py": "buffer = 1\n"}
    ops = BufferedDocumentOps(FileSystemDocumentOps(tmp_path), buffers)

    outcome = edit_document("f.py", [EditRequest(original="1", replacement="2")], ops)

    assert outcome.written
    assert buffers["f.py"] == "buffer = 2\n"
    assert (tmp_path / "f.py").read_text(encoding="utf-8") == "disk = 1\n"
    assert ops.changes_map == {"f.py": "updated"}


def test_buffer_lookup_normalises_paths(tmp_path: Path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "f.txt").write_text("disk\n", encoding="utf-8")
    buffers = {"src/f.txt": "buffer\n"}
    ops = BufferedDocumentOps(FileSystemDocumentOps(tmp_path), buffers)

    assert ops.open("./src/f.txt") == "buffer\n"
    assert ops.open("src//f.txt") == "buffer\n"

    edit_document("./src/f.txt", [EditRequest(original="buffer", replacement="memory")], ops)

    assert buffers == {"src/f.txt": "memory\n"}
    assert (tmp_path / "src" / "f.txt").read_text(encoding="utf-8") == "disk\n"
    assert ops.changes_map == {"src/f.txt": "updated"}


def test_edit_document_creates_missing_file(tmp_path: Path):
    ops = FileSystemDocumentOps(tmp_path)
    outcome = edit_document("new/file.txt", [EditRequest(original="", replacement="hello")], ops)

    assert outcome.written
    assert outcome.summary.startswith("Applied edits to new/file.txt.")
    assert "Edits summary: applied 1, skipped 0 (already applied)" in outcome.summary
    assert (tmp_path / "new/file.txt").read_text(encoding="utf-8") == "hello"
    assert ops.changes_map == {"new/file.txt": "created"}


def test_edit_document_already_applied_does_not_write(tmp_path: Path):
    path = tmp_path / "f.txt"
    path.write_text("value = 2\n", encoding="utf-8")
    ops = FileSystemDocumentOps(tmp_path)

    outcome = edit_document("f.txt", [EditRequest(original="value = 1", replacement="value = 2")], ops)

    assert not outcome.written
    assert outcome.summary == "No changes needed in f.txt (1 edit(s) already applied)."
    assert ops.changes_map == {}


def test_edit_document_reports_unapplied_with_preview(tmp_path: Path):
    path = tmp_path / "f.txt"
    path.write_text("alpha\nbeta\n", encoding="utf-8")
    ops = FileSystemDocumentOps(tmp_path)
    edits = [
        EditRequest(original="alpha", replacement="ALPHA"),
        EditRequest(original="gamma", replacement="delta"),
    ]

    outcome = edit_document("f.txt", edits, ops)

    assert outcome.written
    assert path.read_text(encoding="utf-8") == "ALPHA\nbeta\n"
    assert "Edits summary: applied 1, skipped 0" in outcome.summary
    assert "Some edits could not be applied after multiple passes." in outcome.summary
    assert "Unapplied edits remaining: 1" in outcome.summary
    assert "```\ngamma\n```" in outcome.summary
    assert "```\ndelta\n```" in outcome.summary


def test_edit_document_nothing_applied(tmp_path: Path):
    (tmp_path / "f.txt").write_text("x\n", encoding="utf-8")
    ops = FileSystemDocumentOps(tmp_path)
    outcome = edit_document("f.txt", [EditRequest(original="y", replacement="z")], ops)
    assert not outcome.written
    assert outcome.summary.startswith("No replacements made in f.txt.")
    assert outcome.result.unapplied_count == 1


def test_preview_is_truncated(tmp_path: Path):
    (tmp_path / "f.txt").write_text("x\n", encoding="utf-8")
    ops = FileSystemDocumentOps(tmp_path)
    settings = EngineSettings(preview_max_chars=5)
    outcome = edit_document(
        "f.txt", [EditRequest(original="abcdefghij", replacement="k")], ops, settings
    )
    assert "abcde ... (truncated)" in outcome.summary


def test_make_code_block_extends_fence():
    assert make_code_block("a") == "```\na\n```"
    assert make_code_block("x```y", lang="md") == "````md\nx```y\n````"
