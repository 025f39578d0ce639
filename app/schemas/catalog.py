from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CourseIn(BaseModel):
    title: str
    instructor_name: str = ""
    description: str = ""


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    instructor_name: str
    description: str


class UnitIn(BaseModel):
    title: str
    storage_key: str | None = None
    duration_seconds: int = Field(0, ge=0)
    free_preview: bool = False
    order_index: int | None = Field(None, ge=0)


class DraftVersionIn(BaseModel):
    units: list[UnitIn]
    change_log: str | None = None
    created_by: str = "admin"


class VersionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    course_id: str
    version_number: int
    status: str
    change_log: str | None = None
    created_at: datetime
    published_at: datetime | None = None
    archived_at: datetime | None = None
