# services/ui_service/app/orchestrator.py
"""
Client upload orchestrator.

For each selected file, strictly one after another:
    1. ask the file service for an upload target (progress 10)
    2. PUT the bytes to the signed URL (progress 30 -> 100)
    3. record the public URL in the files table

A failure in steps 1-2 resets that file's progress to 0 and moves on to the
next file. A failure in step 3 only produces a warning: the bytes are already
stored, so the file counts as uploaded. Nothing is retried or resumed.
"""
import base64
import httpx
from typing import Any, Callable, Dict, List, Optional, Tuple
from pydantic import ValidationError

from core.config import settings, logger as core_logger
from core.models import (
    SelectedFile, UploadState, UploadOutcome, UploadStatus,
    UploadTarget, InlineUploadResult, FileRecord, FileSaveResponse, FileListResponse
)
from . import state as upload_state

logger = core_logger.getChild("UIService").getChild("Orchestrator")

PROGRESS_STARTED = 10
PROGRESS_TARGET_ISSUED = 30
PROGRESS_COMPLETE = 100
PROGRESS_FAILED = 0


class UploadStepError(Exception):
    """A single call in the upload sequence failed. The message is safe to show to the user."""
    pass


def _error_message(response: httpx.Response) -> str:
    """Prefers the server-reported {error} message, falling back to the status line."""
    try:
        body = response.json()
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
    except ValueError:
        pass
    text = response.text.strip()
    return text or f"HTTP {response.status_code}: {response.reason_phrase}"


class FileServiceClient:
    """Thin async wrapper over the file service endpoints and the signed-URL transfer."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._http = http_client

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Network error calling {method} {url}: {e}")
            raise UploadStepError(f"Cannot reach {url}: {e}") from e

    async def request_upload_target(self, file: SelectedFile, strategy: str) -> UploadTarget | InlineUploadResult:
        payload: Dict[str, Any] = {"fileName": file.name}
        if strategy == "inline":
            payload["fileData"] = base64.b64encode(file.content).decode("ascii")
            payload["fileType"] = file.content_type

        response = await self._send("POST", "/upload-url", json=payload)
        if response.is_error:
            raise UploadStepError(_error_message(response))
        try:
            data = response.json()
            if strategy == "inline":
                return InlineUploadResult(**data)
            return UploadTarget(**data)
        except (ValueError, ValidationError) as e:
            raise UploadStepError(f"Invalid upload-url response: {e}") from e

    async def transfer(self, signed_url: str, file: SelectedFile) -> None:
        """PUTs the raw bytes to the signed URL. Any non-2xx response is a failure."""
        response = await self._send(
            "PUT", signed_url,
            content=file.content,
            headers={"Content-Type": file.content_type or "application/octet-stream"},
        )
        if response.is_error:
            raise UploadStepError(f"Upload failed: {response.status_code} {response.reason_phrase}")

    async def record_file(self, file_url: str, file_name: str, file_size: Optional[int] = None) -> FileRecord:
        payload = {"file_url": file_url, "file_name": file_name, "file_size": file_size}
        response = await self._send("POST", "/files", json=payload)
        if response.is_error:
            raise UploadStepError(_error_message(response))
        try:
            return FileRecord(**FileSaveResponse(**response.json()).data)
        except (ValueError, ValidationError) as e:
            raise UploadStepError(f"Invalid /files response: {e}") from e

    async def list_files(self) -> List[FileRecord]:
        response = await self._send("GET", "/files")
        if response.is_error:
            raise UploadStepError(_error_message(response))
        try:
            listing = FileListResponse(**response.json())
            return [FileRecord(**row) for row in listing.files]
        except (ValueError, ValidationError) as e:
            raise UploadStepError(f"Invalid /files response: {e}") from e


def create_http_client(base_url: Optional[str] = None, **kwargs) -> httpx.AsyncClient:
    """httpx client pointed at the file service. No timeout unless ORCHESTRATOR_TIMEOUT_SECONDS is set."""
    return httpx.AsyncClient(
        base_url=base_url or settings.FILE_SERVICE_URL,
        timeout=settings.ORCHESTRATOR_TIMEOUT_SECONDS,
        **kwargs
    )


class UploadOrchestrator:
    """
    Drives a batch of uploads to completion, one file at a time.

    Usage:
        async with create_http_client() as http:
            orchestrator = UploadOrchestrator(FileServiceClient(http))
            final_state, outcomes = await orchestrator.upload_all(state)

    Every intermediate UploadState is passed to on_state, if given.
    """

    def __init__(
        self,
        client: FileServiceClient,
        strategy: Optional[str] = None,
        on_state: Optional[Callable[[UploadState], None]] = None,
    ):
        self._client = client
        self._strategy = strategy or settings.UPLOAD_STRATEGY
        self._on_state = on_state

    def _emit(self, state: UploadState) -> UploadState:
        if self._on_state:
            self._on_state(state)
        return state

    async def upload_all(self, state: UploadState) -> Tuple[UploadState, List[UploadOutcome]]:
        outcomes: List[UploadOutcome] = []
        if not state.files:
            return state, outcomes

        logger.info(f"Starting upload of {len(state.files)} file(s) (strategy: {self._strategy}).")
        state = self._emit(upload_state.set_uploading(state, True))
        try:
            for file in state.files:
                state, outcome = await self.upload_one(state, file)
                outcomes.append(outcome)
        finally:
            state = self._emit(upload_state.set_uploading(state, False))

        summary = {s.value: sum(1 for o in outcomes if o.status == s) for s in UploadStatus}
        logger.info(f"Upload batch finished: {summary}")
        return state, outcomes

    async def upload_one(self, state: UploadState, file: SelectedFile) -> Tuple[UploadState, UploadOutcome]:
        job_prefix = f"[{file.id}:{file.name}]"
        state = self._emit(upload_state.set_progress(state, file.id, PROGRESS_STARTED))

        # --- Steps 1-2: get a target and move the bytes ---
        try:
            target = await self._client.request_upload_target(file, self._strategy)
            logger.info(f"{job_prefix} Upload target issued for path '{target.path}'.")
            state = self._emit(upload_state.set_progress(state, file.id, PROGRESS_TARGET_ISSUED))

            if isinstance(target, UploadTarget):
                await self._client.transfer(target.signed_url, file)
        except UploadStepError as e:
            logger.error(f"{job_prefix} Upload failed: {e}")
            return self._failed(state, file, str(e))
        except Exception as e:
            logger.error(f"{job_prefix} Unexpected error during upload: {e}", exc_info=True)
            return self._failed(state, file, str(e))

        state = self._emit(upload_state.set_progress(state, file.id, PROGRESS_COMPLETE))
        logger.info(f"{job_prefix} Bytes stored. Public URL: {target.public_url}")

        # --- Step 3: record metadata; failure here does not undo the upload ---
        try:
            record = await self._client.record_file(target.public_url, file.name, file.size)
        except Exception as e:
            logger.warning(f"{job_prefix} File uploaded but saving its URL to the database failed: {e}")
            return state, UploadOutcome(
                file_id=file.id,
                file_name=file.name,
                status=UploadStatus.UPLOADED_NOT_RECORDED,
                path=target.path,
                public_url=target.public_url,
                warning=f"Database save failed: {e}",
            )

        state = self._emit(upload_state.record_uploaded(state, record))
        return state, UploadOutcome(
            file_id=file.id,
            file_name=file.name,
            status=UploadStatus.RECORDED,
            path=target.path,
            public_url=target.public_url,
            record=record,
        )

    def _failed(self, state: UploadState, file: SelectedFile, message: str) -> Tuple[UploadState, UploadOutcome]:
        state = self._emit(upload_state.set_progress(state, file.id, PROGRESS_FAILED))
        return state, UploadOutcome(
            file_id=file.id,
            file_name=file.name,
            status=UploadStatus.FAILED,
            error=f"Failed to upload {file.name}: {message}",
        )
