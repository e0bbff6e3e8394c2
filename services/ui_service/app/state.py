# services/ui_service/app/state.py
"""
Reducers for the client upload state.

UploadState snapshots are frozen; every function here returns a new snapshot
and leaves its input untouched. Files are addressed by their generated id, so
removing one file never shifts another file's progress entry.
"""
import mimetypes
import os
import uuid
from typing import Iterable, Optional

from core.models import UploadState, SelectedFile, FileRecord


def new_file_id() -> str:
    return uuid.uuid4().hex[:9]


def selected_file_from_bytes(name: str, content: bytes, content_type: Optional[str] = None, preview: Optional[str] = None) -> SelectedFile:
    """Wraps raw bytes as a SelectedFile with a fresh id. Guesses the MIME type from the name when not given."""
    content_type = content_type or mimetypes.guess_type(name)[0] or "application/octet-stream"
    return SelectedFile(
        id=new_file_id(),
        name=name,
        size=len(content),
        content_type=content_type,
        content=content,
        preview=preview,
    )


def selected_file_from_path(path: str, display_name: Optional[str] = None) -> SelectedFile:
    """Reads a local file into memory. Images keep their path as the preview reference."""
    name = display_name or os.path.basename(path)
    with open(path, "rb") as f:
        content = f.read()
    content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
    preview = path if content_type.startswith("image/") else None
    return selected_file_from_bytes(name, content, content_type, preview)


def add_files(state: UploadState, files: Iterable[SelectedFile]) -> UploadState:
    return state.model_copy(update={"files": state.files + tuple(files)})


def remove_file(state: UploadState, file_id: str) -> UploadState:
    progress = {k: v for k, v in state.progress.items() if k != file_id}
    files = tuple(f for f in state.files if f.id != file_id)
    return state.model_copy(update={"files": files, "progress": progress})


def set_progress(state: UploadState, file_id: str, value: int) -> UploadState:
    return state.model_copy(update={"progress": {**state.progress, file_id: value}})


def record_uploaded(state: UploadState, record: FileRecord) -> UploadState:
    """Puts a freshly recorded file at the front of the uploaded list (newest first)."""
    return state.model_copy(update={"uploaded": (record,) + state.uploaded})


def set_uploaded_list(state: UploadState, records: Iterable[FileRecord]) -> UploadState:
    return state.model_copy(update={"uploaded": tuple(records)})


def set_uploading(state: UploadState, is_uploading: bool) -> UploadState:
    return state.model_copy(update={"is_uploading": is_uploading})


def clear_files(state: UploadState) -> UploadState:
    return state.model_copy(update={"files": (), "progress": {}})
