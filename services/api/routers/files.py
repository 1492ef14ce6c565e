"""File endpoints: multipart upload, metadata, download and delete."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse

from services import files as file_service
from services.api.deps import authenticated, get_store, page_params, parse_id
from utils import responses
from utils.db import Store
from utils.errors import ValidationError
from utils.query import PageRequest
from utils.security import Identity

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("/upload")
def upload_file(
    file: Optional[UploadFile] = File(default=None),
    category: str = Form(default="general"),
    description: str = Form(default=""),
    store: Store = Depends(get_store),
    identity: Identity = Depends(authenticated),
):
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")
    try:
        record = file_service.save_upload(
            store,
            file.file,
            original_name=file.filename,
            mime_type=file.content_type,
            uploaded_by=identity.id,
            category=category,
            description=description,
        )
    finally:
        file.file.close()
    return responses.created(record, "File uploaded successfully")


@router.get("")
def list_files(
    category: Optional[str] = Query(default=None),
    uploaded_by: Optional[str] = Query(default=None, alias="uploadedBy"),
    search: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    page: PageRequest = Depends(page_params),
    store: Store = Depends(get_store),
):
    criteria = {
        "category": category,
        "uploaded_by": parse_id(uploaded_by, "uploader ID") if uploaded_by else None,
        "search": search,
    }
    rows, info = file_service.list_files(store, criteria, page, sort_by, sort_order)
    return responses.paginated("files", rows, info, "Files retrieved successfully")


@router.get("/stats")
def file_stats(store: Store = Depends(get_store)):
    return responses.success(file_service.file_stats(store), "File statistics retrieved successfully")


@router.get("/{file_id}")
def get_file(file_id: str, store: Store = Depends(get_store)):
    record = file_service.get_file(store, parse_id(file_id, "file ID"))
    return responses.success(record, "File retrieved successfully")


@router.get("/{file_id}/download")
def download_file(file_id: str, store: Store = Depends(get_store)):
    record, path = file_service.resolve_download(store, parse_id(file_id, "file ID"))
    return FileResponse(path, media_type=record["mime_type"], filename=record["original_name"])


@router.delete("/{file_id}")
def delete_file(file_id: str, store: Store = Depends(get_store), identity: Identity = Depends(authenticated)):
    file_service.delete_file(store, parse_id(file_id, "file ID"), identity)
    return responses.success(None, "File deleted successfully")
