# services/ui_service/app/main.py

import gradio as gr
import fastapi
import logging
import os
from core.config import settings
from core.models import UploadState, UploadOutcome, UploadStatus, FileRecord, SelectedFile
from core.utils import format_file_size
from typing import Any, List, Optional, Tuple
from . import state as upload_state
from .orchestrator import FileServiceClient, UploadOrchestrator, UploadStepError, create_http_client

# Setup logger
logger = logging.getLogger("FileDrop_Core").getChild("UIService")

FILE_TABLE_HEADERS = ["File Name", "Size", "Uploaded At", "URL"]


# --- Helper Functions ---

def _path_and_name(file_obj: Any) -> Tuple[str, str]:
    """Gradio hands back plain paths (type='filepath') or temp file wrappers depending on version."""
    if isinstance(file_obj, str):
        return file_obj, os.path.basename(file_obj)
    file_path = getattr(file_obj, "name", str(file_obj))
    return file_path, getattr(file_obj, "orig_name", os.path.basename(file_path))

def files_to_rows(records: List[FileRecord]) -> List[List[str]]:
    rows = []
    for record in records:
        uploaded_at = record.created_at.strftime("%Y-%m-%d %H:%M:%S") if record.created_at else "-"
        rows.append([record.file_name, format_file_size(record.file_size), uploaded_at, record.file_url])
    return rows

def format_outcomes(outcomes: List[UploadOutcome]) -> str:
    """One status line per file, in upload order."""
    if not outcomes:
        return "No files were uploaded."
    lines = []
    for outcome in outcomes:
        if outcome.status == UploadStatus.RECORDED:
            lines.append(f"✅ **{outcome.file_name}** uploaded: {outcome.public_url}")
        elif outcome.status == UploadStatus.UPLOADED_NOT_RECORDED:
            lines.append(f"⚠️ **{outcome.file_name}** uploaded, but not listed. {outcome.warning}")
        else:
            lines.append(f"❌ {outcome.error}")
    return "\n\n".join(lines)

def _overall_progress(current: UploadState) -> float:
    if not current.files:
        return 0.0
    return sum(current.progress.get(f.id, 0) for f in current.files) / (100.0 * len(current.files))

def read_selection(file_objs) -> Tuple[List[SelectedFile], List[UploadOutcome]]:
    """Reads each picked file. A file that cannot be read becomes a failed outcome; the rest are kept."""
    selection, failures = [], []
    for file_obj in file_objs or []:
        file_path, original_name = _path_and_name(file_obj)
        try:
            selection.append(upload_state.selected_file_from_path(file_path, original_name))
        except OSError as e:
            logger.error(f"Could not read selected file '{original_name}' at {file_path}: {e}")
            failures.append(UploadOutcome(
                file_id=upload_state.new_file_id(),
                file_name=original_name,
                status=UploadStatus.FAILED,
                error=f"Failed to upload {original_name}: could not read file ({e})",
            ))
    return selection, failures

def _selection_updates(current: UploadState):
    """Gallery of image previews plus the remove-by-id choices for the current selection."""
    previews = [(f.preview, f.name) for f in current.files if f.preview]
    choices = [(f"{f.name} ({format_file_size(f.size)})", f.id) for f in current.files]
    return gr.update(value=previews), gr.update(choices=choices, value=None)

def _selection_summary(current: UploadState) -> str:
    if not current.files:
        return "No files selected."
    return f"{len(current.files)} file(s) selected, {format_file_size(sum(f.size for f in current.files))} in total."

async def fetch_file_records() -> Tuple[List[FileRecord], Optional[str]]:
    async with create_http_client() as http:
        try:
            return await FileServiceClient(http).list_files(), None
        except UploadStepError as e:
            logger.error(f"Failed to fetch uploaded files: {e}")
            return [], str(e)


# --- Gradio Interface Functions ---

def select_files_ui(file_objs, current: UploadState):
    """Replaces the selection with the picked files. Unreadable files are reported and left out."""
    if file_objs is not None and not isinstance(file_objs, list):
        file_objs = [file_objs]
    selection, failures = read_selection(file_objs)
    current = upload_state.add_files(upload_state.clear_files(current), selection)
    logger.info(f"Selected {len(selection)} file(s): {[f.name for f in selection]}")

    summary = _selection_summary(current)
    if failures:
        summary = format_outcomes(failures) + "\n\n" + summary
    gallery, choices = _selection_updates(current)
    return current, gallery, choices, summary

def remove_file_ui(file_id: Optional[str], current: UploadState):
    if file_id:
        current = upload_state.remove_file(current, file_id)
    gallery, choices = _selection_updates(current)
    return current, gallery, choices, _selection_summary(current)

async def upload_files_ui(current: UploadState, progress=gr.Progress()):
    """Uploads the selected files one by one, then refreshes the uploaded list."""
    if not current.files:
        return current, "Please select at least one file.", gr.update(), gr.update()
    logger.info(f"Uploading {len(current.files)} file(s): {[f.name for f in current.files]}")

    def on_state(snapshot: UploadState):
        progress(_overall_progress(snapshot), desc=f"Uploading {len(snapshot.files)} file(s)...")

    async with create_http_client() as http:
        orchestrator = UploadOrchestrator(FileServiceClient(http), on_state=on_state)
        current, outcomes = await orchestrator.upload_all(current)

    status = format_outcomes(outcomes)
    records, list_error = await fetch_file_records()
    if list_error:
        # Keep what this session recorded so the table is not emptied
        status += f"\n\nCould not refresh the file list: {list_error}"
    else:
        current = upload_state.set_uploaded_list(current, records)
    current = upload_state.clear_files(current)
    progress(1, desc="Done.")
    return current, status, gr.update(value=files_to_rows(current.uploaded)), gr.update(value=None)

async def refresh_files_ui(current: UploadState):
    records, list_error = await fetch_file_records()
    if list_error:
        return current, gr.update(value=files_to_rows(current.uploaded)), f"Error loading files: {list_error}"
    current = upload_state.set_uploaded_list(current, records)
    return current, gr.update(value=files_to_rows(current.uploaded)), f"{len(records)} file(s) uploaded."


# --- Build Gradio Interface ---
def build_demo() -> gr.Blocks:
    with gr.Blocks(title="FileDrop") as demo:
        session = gr.State(UploadState())
        gr.Markdown("# FileDrop")
        gr.Markdown("Select files to upload. Each file is stored in Supabase Storage and listed below with a download link.")
        with gr.Row():
            with gr.Column(scale=2):
                file_input = gr.File(label="Select Files", file_count="multiple", type="filepath")
                preview_gallery = gr.Gallery(label="Image Previews", columns=4, height="auto")
                with gr.Row():
                    remove_choice = gr.Dropdown(label="Selected Files", choices=[], value=None)
                    remove_button = gr.Button("🗑️ Remove")
                selection_status = gr.Markdown(value="No files selected.")
                upload_button = gr.Button("⬆️ Upload Files", variant="primary")
            with gr.Column(scale=3):
                upload_status = gr.Markdown(value="Upload status...")
        with gr.Row():
            refresh_button = gr.Button("🔄 Refresh List")
            list_status = gr.Markdown(value="")
        files_table = gr.Dataframe(headers=FILE_TABLE_HEADERS, value=[], interactive=False, wrap=True)

        selection_outputs = [session, preview_gallery, remove_choice, selection_status]
        file_input.change(select_files_ui, inputs=[file_input, session], outputs=selection_outputs)
        remove_button.click(remove_file_ui, inputs=[remove_choice, session], outputs=selection_outputs)
        upload_button.click(upload_files_ui, inputs=[session], outputs=[session, upload_status, files_table, file_input])
        refresh_button.click(refresh_files_ui, inputs=[session], outputs=[session, files_table, list_status])
        demo.load(refresh_files_ui, inputs=[session], outputs=[session, files_table, list_status])
    return demo

demo = build_demo()


# --- Mount Gradio app within FastAPI ---
app = fastapi.FastAPI()
@app.get("/")
async def root():
    return {"message": "FileDrop UI Service is running. Access the Gradio interface at /ui"}
app = gr.mount_gradio_app(app, demo, path="/ui")
logger.info(f"UI Service Ready. Gradio interface available at /ui (file service: {settings.FILE_SERVICE_URL})")
