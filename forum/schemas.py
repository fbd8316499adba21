from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case attributes in Python, camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- User ---

class LoginRequest(CamelModel):
    username: str = Field(max_length=100)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        # Length is checked on the name as stored.
        return value.strip() if isinstance(value, str) else value


class UserResponse(CamelModel):
    id: int
    username: str
    is_moderator: bool


# --- Topic ---

class TopicResponse(CamelModel):
    id: int
    title: str
    description: str | None = None


# --- Post ---

class PostCreate(CamelModel):
    topic_id: int = Field(gt=0)
    user_id: int = Field(gt=0)
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)


class PostUpdate(CamelModel):
    id: int = Field(gt=0)
    user_id: int = Field(gt=0)
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)


class PostDelete(CamelModel):
    id: int = Field(gt=0)
    user_id: int = Field(gt=0)


class PostResponse(CamelModel):
    id: int
    topic_id: int
    title: str
    content: str
    author: str


# --- Comment ---

class CommentCreate(CamelModel):
    post_id: int = Field(gt=0)
    user_id: int = Field(gt=0)
    content: str = Field(min_length=1)


class CommentUpdate(CamelModel):
    id: int = Field(gt=0)
    user_id: int = Field(gt=0)
    content: str = Field(min_length=1)


class CommentDelete(CamelModel):
    id: int = Field(gt=0)
    user_id: int = Field(gt=0)


class CommentResponse(CamelModel):
    id: int
    post_id: int
    content: str
    author: str


# --- Health ---

class HealthResponse(BaseModel):
    status: str
    version: str
    cache: dict = {}
