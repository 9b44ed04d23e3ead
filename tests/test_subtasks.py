# tests/test_subtasks.py
from datetime import datetime

import pytest

from errors import ValidationError
from models.file_attachment import FileAttachment
from models.schemas import SubtaskIn
from utils.files import fetch_subtask_files
from utils.subtasks import fetch_subtasks, insert_subtasks, reconcile_subtasks, validate_subtasks


def _attach(session, subtask_id, name, uploader, size=10, mime="text/plain"):
    f = FileAttachment(
        filename=name, original_filename=name, file_path=f"/uploads/{name}",
        file_size=size, mime_type=mime, subtask_id=subtask_id, uploaded_by=uploader,
        created_at=datetime(2025, 1, 1, 12, 0),
    )
    session.add(f)
    session.commit()
    return f


def _seed(session, task_id, *titles):
    rows = insert_subtasks(session, task_id, [SubtaskIn(title=t) for t in titles])
    session.commit()
    return rows


def test_validate_subtasks():
    out = validate_subtasks([SubtaskIn(title="  draft  "), SubtaskIn(title="send", status="completed")])
    assert [(s.title, s.status) for s in out] == [("draft", "not_started"), ("send", "completed")]
    with pytest.raises(ValidationError, match="Subtask title is required"):
        validate_subtasks([SubtaskIn(title="  ")])
    with pytest.raises(ValidationError):
        validate_subtasks([SubtaskIn(title="x", status="in_progress")])
    assert validate_subtasks(None) == []


def test_files_follow_title(session, people, task42):
    draft, review = _seed(session, 42, "Draft", "Review")
    _attach(session, draft.id, "a.txt", people.alice.id)
    _attach(session, review.id, "b.txt", people.alice.id)

    rec = reconcile_subtasks(session, 42, [SubtaskIn(title="Draft", status="completed"),
                                           SubtaskIn(title="Publish")])
    session.commit()

    assert [s.title for s in rec.added] == ["Publish"]
    assert rec.preserved_files == 1
    assert rec.removed_paths == ("/uploads/b.txt",)

    subs = fetch_subtasks(session, 42)
    assert [(s.title, s.status) for s in subs] == [("Draft", "completed"), ("Publish", "not_started")]
    files = fetch_subtask_files(session, [s.id for s in subs])
    kept = files[subs[0].id]
    assert [f.filename for f in kept] == ["a.txt"]
    assert kept[0].uploaded_by == people.alice.id
    assert kept[0].created_at == datetime(2025, 1, 1, 12, 0)
    assert files[subs[1].id] == []


def test_duplicate_titles_first_match_wins(session, people, task42):
    (old,) = _seed(session, 42, "Check")
    _attach(session, old.id, "c.txt", people.bob.id)

    rec = reconcile_subtasks(session, 42, [SubtaskIn(title="Check"), SubtaskIn(title="Check")])
    session.commit()

    first, second = rec.subtasks
    files = fetch_subtask_files(session, [first.id, second.id])
    assert len(files[first.id]) == 1
    assert files[second.id] == []
    assert rec.added == ()


def test_id_match_survives_rename(session, people, task42):
    (old,) = _seed(session, 42, "Collect receipts")
    _attach(session, old.id, "r.pdf", people.alice.id)

    rec = reconcile_subtasks(session, 42, [SubtaskIn(id=old.id, title="Collect all receipts")])
    session.commit()

    (row,) = rec.subtasks
    assert rec.added == ()
    assert [f.filename for f in fetch_subtask_files(session, [row.id])[row.id]] == ["r.pdf"]
    assert rec.removed_paths == ()


def test_preserved_file_counts_match(session, people, task42):
    subs = _seed(session, 42, "One", "Two")
    for s in subs:
        _attach(session, s.id, f"{s.title}.txt", people.alice.id)
    before = sum(len(v) for v in fetch_subtask_files(session, [s.id for s in subs]).values())

    rec = reconcile_subtasks(session, 42, [SubtaskIn(title="Two"), SubtaskIn(title="One")])
    session.commit()

    after = sum(len(v) for v in fetch_subtask_files(session, [s.id for s in rec.subtasks]).values())
    assert before == after == rec.preserved_files == 2


def test_empty_list_drops_everything(session, people, task42):
    (old,) = _seed(session, 42, "Gone")
    _attach(session, old.id, "g.txt", people.alice.id)

    rec = reconcile_subtasks(session, 42, [])
    session.commit()

    assert fetch_subtasks(session, 42) == []
    assert rec.removed_paths == ("/uploads/g.txt",)


def test_id_match_beats_earlier_title_match(session, people, task42):
    (old,) = _seed(session, 42, "Draft")
    _attach(session, old.id, "d.txt", people.alice.id)

    rec = reconcile_subtasks(session, 42, [SubtaskIn(title="Draft"),
                                           SubtaskIn(id=old.id, title="Draft v2")])
    session.commit()

    same_title, renamed = rec.subtasks
    files = fetch_subtask_files(session, [same_title.id, renamed.id])
    assert files[same_title.id] == []
    assert [f.filename for f in files[renamed.id]] == ["d.txt"]
    assert rec.removed_paths == ()


def test_title_match_skips_files_claimed_by_id(session, people, task42):
    a, b = _seed(session, 42, "Alpha", "Beta")
    _attach(session, a.id, "a.txt", people.alice.id)
    _attach(session, b.id, "b.txt", people.alice.id)

    rec = reconcile_subtasks(session, 42, [SubtaskIn(title="Alpha"), SubtaskIn(title="Beta"),
                                           SubtaskIn(id=a.id, title="Alpha again")])
    session.commit()

    alpha, beta, again = rec.subtasks
    files = fetch_subtask_files(session, [alpha.id, beta.id, again.id])
    assert files[alpha.id] == []
    assert [f.filename for f in files[beta.id]] == ["b.txt"]
    assert [f.filename for f in files[again.id]] == ["a.txt"]
    assert rec.preserved_files == 2


def test_preserved_file_keeps_size_and_type(session, people, task42):
    (old,) = _seed(session, 42, "Scan")
    _attach(session, old.id, "scan.pdf", people.bob.id, size=2048, mime="application/pdf")

    rec = reconcile_subtasks(session, 42, [SubtaskIn(title="Scan")])
    session.commit()

    (row,) = rec.subtasks
    (f,) = fetch_subtask_files(session, [row.id])[row.id]
    assert (f.filename, f.original_filename, f.file_path) == ("scan.pdf", "scan.pdf", "/uploads/scan.pdf")
    assert f.file_size == 2048
    assert f.mime_type == "application/pdf"
    assert f.uploaded_by == people.bob.id
