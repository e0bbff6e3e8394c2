# services/file_service/app/crud.py
import asyncio
from core.config import logger as core_logger
from core.supabase_client import FILES_TABLE
from core.errors import BackendOperationError
from typing import Any, Dict, List, Optional
from supabase import PostgrestAPIError
from postgrest import APIResponse

logger = core_logger.getChild("FileService").getChild("CRUD")

CREATED_AT_COLUMN = "created_at"


def _postgrest_details(e: PostgrestAPIError) -> Dict[str, Any]:
    """Provider error payload, passed through verbatim for diagnostics."""
    return {"message": e.message, "code": e.code, "details": e.details, "hint": e.hint}


async def insert_file_record(supabase, file_url: str, file_name: str, file_size: Optional[int] = None) -> Dict[str, Any]:
    """
    Inserts exactly one row into the files table and returns it as stored.

    There is no idempotency key: calling this twice with the same input
    creates two rows.
    """
    row = {"file_url": file_url, "file_name": file_name}
    if file_size is not None:
        row["file_size"] = file_size
    logger.debug(f"Attempting insert into '{FILES_TABLE}': {row}")

    def db_call():
        return supabase.table(FILES_TABLE)\
            .insert(row)\
            .execute()

    try:
        response: APIResponse = await asyncio.to_thread(db_call)
    except PostgrestAPIError as e:
        logger.error(f"Supabase API error inserting file record: {e.message} (Code: {e.code}, Details: {e.details})", exc_info=False)
        raise BackendOperationError(f"Insert failed: {e.message}", details=_postgrest_details(e)) from e

    if not response.data:
        logger.error(f"Insert into '{FILES_TABLE}' returned no rows.")
        raise BackendOperationError("Insert failed: no row returned", details=None)

    logger.info(f"Saved file record for '{file_name}' (id={response.data[0].get('id')}).")
    return response.data[0]


async def list_file_records(supabase) -> List[Dict[str, Any]]:
    """Returns every row in the files table, most recent first. An empty table is an empty list."""
    def db_call():
        return supabase.table(FILES_TABLE)\
            .select("*")\
            .order(CREATED_AT_COLUMN, desc=True)\
            .execute()

    try:
        response: APIResponse = await asyncio.to_thread(db_call)
    except PostgrestAPIError as e:
        logger.error(f"Supabase API error listing file records: {e.message} (Code: {e.code}, Details: {e.details})", exc_info=False)
        raise BackendOperationError(f"Fetch failed: {e.message}", details=_postgrest_details(e)) from e

    rows = response.data or []
    logger.info(f"Fetched {len(rows)} file record(s).")
    return rows
