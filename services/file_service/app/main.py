# services/file_service/app/main.py
from fastapi import FastAPI, Request, Body, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from core.models import UploadUrlRequest, FileSaveRequest, FileSaveResponse, FileListResponse
from core.config import settings, logger as core_logger # Use core logger
from core.errors import FileDropError, ClientInputError
from core.supabase_client import get_supabase_client, supabase_configured
from core import storage
from . import crud
import traceback

logger = core_logger.getChild("FileService")

app = FastAPI(
    title="File Service",
    description="Issues signed upload URLs for Supabase Storage and records uploaded files.",
    version="1.0.0"
)


# --- Error Responses ---

def error_response(err: FileDropError) -> JSONResponse:
    return JSONResponse(status_code=err.status_code, content=err.to_body())

def unexpected_error_response(err: Exception) -> JSONResponse:
    """500 for anything outside the taxonomy. Stack traces are only echoed when DEBUG is on."""
    body = {"error": f"Server error: {err}"}
    if settings.DEBUG:
        body["stack"] = "".join(traceback.format_exception(type(err), err, err.__traceback__))
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies are client input errors, reported in the same {error} shape
    logger.warning(f"Invalid request body for {request.url.path}: {exc.errors()}")
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid request body: {field + ': ' if field else ''}{first.get('msg', 'malformed input')}"
    return error_response(ClientInputError(message))


# --- API Endpoints ---

@app.post("/upload-url")
async def create_upload_url(payload: UploadUrlRequest = Body(...)):
    """
    Issues a write target for a new object.

    signed strategy: returns {signedUrl, path, publicUrl}; the caller PUTs the bytes.
    inline strategy: decodes fileData, stores it, returns {success, path, publicUrl}.
    """
    logger.info(f"Received upload-url request: fileName='{payload.file_name}', strategy={settings.UPLOAD_STRATEGY}")
    try:
        supabase = await get_supabase_client()

        if not payload.file_name or not payload.file_name.strip():
            raise ClientInputError("fileName is required")

        if settings.UPLOAD_STRATEGY == "inline":
            if not payload.file_data:
                raise ClientInputError("fileData is required")
            mime, _ = storage.split_data_url(payload.file_data)
            content = storage.decode_inline_payload(payload.file_data)
            result = await storage.upload_inline(supabase, payload.file_name, content, payload.file_type or mime)
            return result.model_dump(by_alias=True)

        target = await storage.create_upload_target(supabase, payload.file_name)
        return target.model_dump(by_alias=True)

    except FileDropError as e:
        logger.error(f"Upload URL request for '{payload.file_name}' failed ({e.status_code}): {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Unexpected error issuing upload URL for '{payload.file_name}': {e}", exc_info=True)
        return unexpected_error_response(e)


@app.post("/files", response_model=FileSaveResponse)
async def save_file(payload: FileSaveRequest = Body(...)):
    """Records an uploaded file. Always inserts a new row."""
    logger.info(f"Received file record: file_name='{payload.file_name}', file_url='{payload.file_url}'")
    try:
        if not (payload.file_url or "").strip() or not (payload.file_name or "").strip():
            raise ClientInputError("file_url and file_name are required")

        supabase = await get_supabase_client()
        row = await crud.insert_file_record(supabase, payload.file_url, payload.file_name, payload.file_size)
        return FileSaveResponse(message="File URL saved successfully", data=row)

    except FileDropError as e:
        logger.error(f"Saving file record for '{payload.file_name}' failed ({e.status_code}): {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Unexpected error saving file record: {e}", exc_info=True)
        return unexpected_error_response(e)


@app.get("/files", response_model=FileListResponse)
async def list_files():
    """Lists every recorded file, most recent first."""
    logger.info("Received request to list files.")
    try:
        supabase = await get_supabase_client()
        rows = await crud.list_file_records(supabase)
        return FileListResponse(files=rows, count=len(rows))

    except FileDropError as e:
        logger.error(f"Listing files failed ({e.status_code}): {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Unexpected error listing files: {e}", exc_info=True)
        return unexpected_error_response(e)


@app.get("/health")
async def health_check():
    logger.debug("Health check endpoint called")
    if not supabase_configured():
        db_status = "not_configured"
    else:
        try:
            await get_supabase_client() # Quick check if client can init
            db_status = "connected"
        except Exception:
            db_status = "error"
    return {
        "status": "ok",
        "dependencies": {"supabase": db_status},
        "upload_strategy": settings.UPLOAD_STRATEGY,
        "bucket": settings.FILE_STORAGE_BUCKET,
    }
