# tests/test_files.py
import pytest

from errors import AuthorizationError, NotFoundError, ValidationError
from models.file_attachment import FileAttachment
from models.schemas import SubtaskIn
from utils.files import FileStorage, delete_file, fetch_task_files, record_upload
from utils.subtasks import insert_subtasks


def _upload(session, who, storage, name="notes.txt", **owner):
    path = storage.root / name
    path.write_text("hello")
    return record_upload(
        session, who, filename=name, original_filename=name, file_path=str(path),
        file_size=5, mime_type="text/plain", **owner,
    ), path


def test_record_upload_on_task(session, actor, task42, storage):
    out, _ = _upload(session, actor("alice"), storage, task_id=42)
    assert out["original_filename"] == "notes.txt"
    assert [f.id for f in fetch_task_files(session, 42)] == [out["id"]]


def test_record_upload_on_subtask(session, actor, task42, storage):
    (sub,) = insert_subtasks(session, 42, [SubtaskIn(title="Scan")])
    session.commit()
    out, _ = _upload(session, actor("alice"), storage, subtask_id=sub.id)
    assert session.get(FileAttachment, out["id"]).subtask_id == sub.id


def test_record_upload_validation(session, actor, task42, storage):
    who = actor("manager")
    common = dict(filename="a", original_filename="a", file_path="a", file_size=1)
    with pytest.raises(ValidationError, match="Exactly one"):
        record_upload(session, who, mime_type="text/plain", **common)
    with pytest.raises(ValidationError, match="Exactly one"):
        record_upload(session, who, mime_type="text/plain", task_id=42, subtask_id=1, **common)
    with pytest.raises(ValidationError, match="Invalid file type"):
        record_upload(session, who, mime_type="application/x-msdownload", task_id=42, **common)
    with pytest.raises(ValidationError, match="byte limit"):
        record_upload(session, who, mime_type="text/plain", task_id=42, max_bytes=0, **common)


def test_record_upload_access(session, actor, task42, storage):
    with pytest.raises(AuthorizationError):
        _upload(session, actor("bob"), storage, task_id=42)
    with pytest.raises(NotFoundError, match="Subtask not found"):
        _upload(session, actor("admin"), storage, subtask_id=404)


def test_delete_file_removes_stored_copy(session, actor, task42, storage):
    out, path = _upload(session, actor("alice"), storage, task_id=42)
    delete_file(session, actor("alice"), out["id"], storage=storage)
    assert session.get(FileAttachment, out["id"]) is None
    assert not path.exists()


def test_delete_file_permissions(session, actor, task42, storage):
    out, path = _upload(session, actor("manager"), storage, task_id=42)
    with pytest.raises(AuthorizationError):
        delete_file(session, actor("bob"), out["id"], storage=storage)
    assert path.exists()
    # the assignee may remove files on their task
    delete_file(session, actor("alice"), out["id"], storage=storage)
    with pytest.raises(NotFoundError):
        delete_file(session, actor("alice"), out["id"], storage=storage)


def test_storage_relative_paths_and_missing_files(tmp_path):
    storage = FileStorage(tmp_path)
    (tmp_path / "rel.txt").write_text("x")
    assert storage.resolve("rel.txt") == tmp_path / "rel.txt"
    assert storage.remove("rel.txt")
    assert storage.remove("rel.txt")
    assert storage.remove_many(["gone-1", "gone-2"]) == 2
