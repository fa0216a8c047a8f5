from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from server.dependencies.auth import get_current_profile, get_organization_id, verify_api_key
from server.models.requests import CreateFolderRequest
from server.models.responses import FolderResponse, UploadResponse
from services.sop_upload.FolderService import FolderService
from services.sop_upload.UploadPipeline import UploadPipeline
from shared.models.sop import UploadCandidate
from shared.models.user import UserProfile

router = APIRouter(tags=["upload"])


@router.post("/documents", status_code=201)
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    title: str = Form(""),
    category_name: str = Form(""),
    subcategory: str | None = Form(None),
    folder_id: str | None = Form(None),
    category_id: str | None = Form(None),
    staff_title: str | None = Form(None),
    profile: UserProfile = Depends(get_current_profile),
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> UploadResponse:
    """Upload an SOP PDF and record it in the caller's library.

    Returns:
        UploadResponse: The id of the new document record.
    """
    pipeline = UploadPipeline(
        helper_config=request.app.state.helper_config,
        repository=request.app.state.repository,
        blob_client=request.app.state.blob_client,
        organization_id=organization_id,
        user_id=profile.id,
    )
    # rejected before the body is read
    pipeline.select_file(UploadCandidate(filename=file.filename or "", content_type=file.content_type, content=b""))
    candidate = UploadCandidate(filename=file.filename or "", content_type=file.content_type, content=await file.read())

    document_id = await pipeline.do_upload(
        title=title,
        category_name=category_name,
        subcategory=subcategory,
        folder_id=folder_id,
        category_id=category_id,
        staff_title=staff_title,
        file=candidate,
    )
    # next library read reloads from the store
    request.app.state.library_registry.mark_stale(organization_id)
    return UploadResponse(id=document_id, progress=pipeline.progress)


@router.post("/folders", status_code=201)
async def create_folder(
    request: Request,
    body: CreateFolderRequest,
    profile: UserProfile = Depends(get_current_profile),
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> FolderResponse:
    folder_service = FolderService(
        helper_config=request.app.state.helper_config,
        repository=request.app.state.repository,
        organization_id=organization_id,
        user_id=profile.id,
    )
    folder_id = await folder_service.do_create_folder(body.name)
    request.app.state.library_registry.mark_stale(organization_id)
    return FolderResponse(id=folder_id, name=body.name.strip() if folder_service.get_policy().trim_whitespace else body.name)
