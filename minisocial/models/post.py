from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime


class CamelModel(BaseModel):
    # Python side is snake_case, JSON side is camelCase (userId, createdAt, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Model for a like embedded in a post
class LikeResponse(CamelModel):
    user_id: str
    username: Optional[str] = None
    created_at: Optional[datetime] = None


# Model for a comment embedded in a post
class CommentResponse(CamelModel):
    id: str
    user_id: str
    username: Optional[str] = None
    text: str
    created_at: datetime


# Body of PUT /posts/{id}/comment
class CommentCreate(BaseModel):
    text: Optional[str] = Field(default=None, description="Comment text")


# Model for responding to a post request (what client sees)
class PostResponse(CamelModel):
    id: str
    user_id: str
    username: Optional[str] = None
    text: Optional[str] = None
    image: Optional[str] = None
    likes: List[LikeResponse] = []
    comments: List[CommentResponse] = []
    created_at: datetime
    like_count: int = 0
    comment_count: int = 0
    liked: bool = Field(default=False, description="Whether the requesting user likes this post")


class PostPage(CamelModel):
    posts: List[PostResponse]
    current_page: int
    total_pages: int
    total_posts: int


class MessageResponse(BaseModel):
    message: str
