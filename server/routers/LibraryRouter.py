from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_organization_id, verify_api_key
from server.models.responses import DeleteResponse, GroupsResponse
from shared.errors.exceptions import LoadFailedError
from shared.models.sop import GroupingMode, LibrarySnapshot

router = APIRouter(prefix="/library", tags=["library"])


@router.get("")
async def get_library(
    request: Request,
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> LibrarySnapshot:
    """Return the caller's SOP library, loading it on first access.

    Returns:
        LibrarySnapshot: Categories, folders and documents of the organization.
    """
    view_model = await request.app.state.library_registry.do_get_loaded(organization_id)
    return view_model.get_snapshot()


@router.post("/refresh")
async def refresh_library(
    request: Request,
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> LibrarySnapshot:
    """Reload the caller's SOP library.

    A failed reload of an already loaded library still answers with the previous
    snapshot; its error field carries the failure. Without a previous snapshot the
    failure is returned as an error response.
    """
    view_model = request.app.state.library_registry.get_view_model(organization_id)
    try:
        await view_model.do_refresh()
    except LoadFailedError:
        if not view_model.is_loaded:
            raise
    return view_model.get_snapshot()


@router.get("/groups")
async def get_library_groups(
    request: Request,
    mode: GroupingMode = GroupingMode.CATEGORY,
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> GroupsResponse:
    view_model = await request.app.state.library_registry.do_get_loaded(organization_id)
    return GroupsResponse(mode=mode, groups=view_model.group_documents(mode))


@router.delete("/documents/{document_id}")
async def delete_document(
    request: Request,
    document_id: str,
    organization_id: str = Depends(get_organization_id),
    _: None = Depends(verify_api_key),
) -> DeleteResponse:
    """Delete a document's file and its record.

    Args:
        document_id (str): Id of a document in the caller's loaded library.

    Returns:
        DeleteResponse: Acknowledgement with the deleted id.
    """
    view_model = await request.app.state.library_registry.do_get_loaded(organization_id)
    await view_model.do_delete_document(document_id)
    return DeleteResponse(id=document_id)
