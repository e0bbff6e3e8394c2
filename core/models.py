# core/models.py
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any, Tuple
from enum import Enum
import datetime

# --- Core Data Models ---

class FileRecord(BaseModel):
    """A row in the files table. Written once after the bytes are stored, never updated."""
    id: Any = Field(..., description="Identifier assigned by the database")
    file_name: str = Field(..., description="Original file name (not unique)")
    file_url: str = Field(..., description="Public, token-free URL of the stored object")
    file_size: Optional[int] = Field(None, description="Byte count, best effort")
    created_at: Optional[datetime.datetime] = Field(None, description="Insertion timestamp assigned by the database")

    class Config:
        from_attributes = True
        extra = 'allow'

class UploadTarget(BaseModel):
    """Signed write destination plus the stable public URL of the object it will create."""
    signed_url: str = Field(..., alias="signedUrl")
    path: str
    public_url: str = Field(..., alias="publicUrl")

    class Config:
        populate_by_name = True

class InlineUploadResult(BaseModel):
    """Response of the inline variant: the server already stored the bytes."""
    success: bool = True
    path: str
    public_url: str = Field(..., alias="publicUrl")

    class Config:
        populate_by_name = True


# --- File Service Request/Response Models ---

class UploadUrlRequest(BaseModel):
    """Body of POST /upload-url. Fields are optional here so missing values surface as a 400, not a 422."""
    file_name: Optional[str] = Field(None, alias="fileName")
    # Inline variant only
    file_data: Optional[str] = Field(None, alias="fileData", description="Base64 file content, optionally as a data: URL")
    file_type: Optional[str] = Field(None, alias="fileType")

    class Config:
        populate_by_name = True

class FileSaveRequest(BaseModel):
    """Body of POST /files."""
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)

class FileSaveResponse(BaseModel):
    message: str
    data: Dict[str, Any]

class FileListResponse(BaseModel):
    files: List[Dict[str, Any]] = Field(default_factory=list)
    count: int = 0


# --- Client-side Models (UI / Orchestrator) ---

class SelectedFile(BaseModel):
    """A file picked by the user, held in memory until uploaded or removed."""
    id: str = Field(..., description="Generated per selection; state is keyed by this, never by position")
    name: str
    size: int
    content_type: str = "application/octet-stream"
    content: bytes = Field(default=b"", repr=False)
    preview: Optional[str] = Field(None, description="Local preview reference for images")

    class Config:
        frozen = True

class UploadStatus(str, Enum):
    RECORDED = "recorded"
    UPLOADED_NOT_RECORDED = "uploaded_not_recorded"
    FAILED = "failed"

class UploadOutcome(BaseModel):
    """Where a single file ended up after the orchestrator ran."""
    file_id: str
    file_name: str
    status: UploadStatus
    path: Optional[str] = None
    public_url: Optional[str] = None
    record: Optional[FileRecord] = None
    error: Optional[str] = None
    warning: Optional[str] = None

    @property
    def uploaded(self) -> bool:
        return self.status != UploadStatus.FAILED

class UploadState(BaseModel):
    """Immutable snapshot of the client upload state. Change it only through the ui_service state reducers."""
    files: Tuple[SelectedFile, ...] = ()
    progress: Dict[str, int] = Field(default_factory=dict)
    uploaded: Tuple[FileRecord, ...] = ()
    is_uploading: bool = False

    class Config:
        frozen = True
