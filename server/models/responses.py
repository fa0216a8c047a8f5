from pydantic import BaseModel

from shared.models.sop import DocumentGroup, GroupingMode


class GroupsResponse(BaseModel):
    mode: GroupingMode
    groups: list[DocumentGroup]


class UploadResponse(BaseModel):
    id: str
    progress: int


class FolderResponse(BaseModel):
    id: str
    name: str


class DeleteResponse(BaseModel):
    id: str
    status: str = "deleted"


class ErrorResponse(BaseModel):
    error: str
    detail: str
