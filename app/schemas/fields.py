from pydantic import BaseModel, Field


class FieldOut(BaseModel):
    id: int
    shortname: str
    label: str
    association: str
    field_type: str
    validators: str


class FieldEventIn(BaseModel):
    event: str = Field(..., max_length=40)  # "field_saved" | "field_deleted"
    field_id: int | None = None


class FieldEventOut(BaseModel):
    event: str
    fields: int
