from pydantic import BaseModel, Field

from app.schemas.common import ChangeOut


class ListingPostOut(BaseModel):
    id: int
    title: str
    status: str


class CreateListingOut(BaseModel):
    success: bool = True
    post: ListingPostOut
    edit_url: str
    changes: list[ChangeOut] = Field(default_factory=list)


class UpdateListingOut(BaseModel):
    success: bool = True
    post_id: int
    updates: list[ChangeOut] = Field(default_factory=list)
