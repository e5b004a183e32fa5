"""Activity schemas for API validation and service DTOs."""

from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.activity import get_difficulty_value

SortKey = Literal["created", "title", "category", "duration", "difficulty"]
SortDirection = Literal["asc", "desc", "ascending", "descending", 1, -1]


class NumberRange(BaseModel):
    """Inclusive range; at least one bound is required."""
    min: Optional[int] = None
    max: Optional[int] = None

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min is None and self.max is None:
            raise ValueError("A range needs a min or a max")
        return self


# Either an exact value or an inclusive range
NumberOrRange = Union[int, NumberRange]


class SortBy(BaseModel):
    key: SortKey
    direction: SortDirection = "asc"

    @property
    def ascending(self) -> bool:
        return self.direction in ("asc", "ascending", 1)


class ActivityQuery(BaseModel):
    """Filter, search, sort and paginate request for activity listings."""
    # Keywords; group words with double quotes, e.g. `"fitness first" for men`
    search_term: Optional[str] = None
    category: Optional[Union[str, List[str]]] = None
    duration: Optional[NumberOrRange] = None
    difficulty: Optional[NumberOrRange] = None
    # Highest precedence first
    sort_by: Optional[Union[SortBy, List[SortBy]]] = None
    page: Optional[int] = None
    page_size: Optional[int] = None

    @property
    def sort_keys(self) -> List[SortBy]:
        if self.sort_by is None:
            return []
        if isinstance(self.sort_by, SortBy):
            return [self.sort_by]
        return list(self.sort_by)


class ActivityCreate(BaseModel):
    """Schema for creating an activity."""
    title: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    duration: int = Field(ge=0)
    difficulty: int
    content: str = Field(min_length=1)

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value):
        """Accept a difficulty label as well as its integer value."""
        if value is None:
            return value
        return get_difficulty_value(value)


class ActivityUpdate(BaseModel):
    """Schema for partially updating an activity."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    duration: Optional[int] = Field(None, ge=0)
    difficulty: Optional[int] = None
    content: Optional[str] = Field(None, min_length=1)

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value):
        """Accept a difficulty label as well as its integer value."""
        if value is None:
            return value
        return get_difficulty_value(value)

    def changes(self) -> dict:
        """Fields explicitly provided with a value."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ActivityResponse(BaseModel):
    """Schema for activity response."""
    id: str
    created: datetime
    title: str
    category: str
    description: str
    duration: int
    difficulty: int
    content: str

    class Config:
        from_attributes = True


class ActivityDetailResponse(ActivityResponse):
    """Activity as seen by one user, with their completion state."""
    completed: bool


class ActivityListResponse(BaseModel):
    """Schema for paginated activity list response."""
    activities: List[ActivityResponse]
    total: int
    page: int
    page_size: int


class ActivityCreatedResponse(BaseModel):
    id: str


class CompletionUpdate(BaseModel):
    completed: bool


class CategoryResponse(BaseModel):
    name: str
    count: int


class CategoryListResponse(BaseModel):
    """Schema for paginated category list response."""
    categories: List[CategoryResponse]
    total: int
    page: int
    page_size: int


class CategoryRename(BaseModel):
    new_name: str = Field(min_length=1, max_length=255)
