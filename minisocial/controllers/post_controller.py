import logging
import math
from typing import Optional

from fastapi import UploadFile

from minisocial.errors import (
    AuthorizationError,
    ConfigurationError,
    NotFoundError,
    ValidationError,
)
from minisocial.image_store import ImageStore
from minisocial.image_urls import is_absolute_url, normalize_image_url
from minisocial.models.post import PostPage, PostResponse

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# (page - 1) * limit must fit in the database's signed 64-bit integers
MAX_PAGE = (2**63 - 1) // MAX_LIMIT


def coerce_positive_int(value, default: int, maximum: Optional[int] = None) -> int:
    """Parse a query value, falling back to ``default`` for junk or non-positive input.

    Values above ``maximum`` are clamped to it.
    """
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number <= 0:
        return default
    if maximum is not None and number > maximum:
        return maximum
    return number


def to_response(post: dict, origin: str, viewer_id: Optional[str] = None) -> PostResponse:
    likes = post.get("likes", [])
    comments = post.get("comments", [])
    return PostResponse(
        id=post["id"],
        user_id=post["user_id"],
        username=post.get("username"),
        text=post.get("text"),
        image=normalize_image_url(post.get("image"), origin),
        likes=likes,
        comments=comments,
        created_at=post["created_at"],
        like_count=len(likes),
        comment_count=len(comments),
        liked=viewer_id is not None and any(like["user_id"] == viewer_id for like in likes),
    )


def _viewer_id(viewer: Optional[dict]) -> Optional[str]:
    return viewer["user_id"] if viewer else None


# ========================================
# ✅ CREATE POST (Authenticated)
# ========================================
async def create_post(
    text: Optional[str],
    image: Optional[UploadFile],
    current_user: dict,
    posts,
    image_store: ImageStore,
    origin: str,
) -> PostResponse:
    text = text.strip() if text else None

    image_url = None
    if image is not None and image.filename:
        image_url = await image_store.ingest(image)
        if not is_absolute_url(image_url):
            # never store a path the clients cannot load
            logger.error("Image store returned a non-URL reference: %r", image_url)
            raise ConfigurationError("Image storage is misconfigured: upload did not produce a URL")

    if not text and not image_url:
        raise ValidationError("Post must have either text or an image.")

    post = posts.create(
        user_id=current_user["user_id"],
        username=current_user.get("username"),
        text=text,
        image=image_url,
    )
    return to_response(post, origin, current_user["user_id"])


# ========================================
# ✅ GET POSTS (Public, paginated)
# ========================================
def get_posts(page, limit, posts, origin: str, viewer: Optional[dict] = None) -> PostPage:
    page = coerce_positive_int(page, DEFAULT_PAGE, MAX_PAGE)
    limit = coerce_positive_int(limit, DEFAULT_LIMIT, MAX_LIMIT)

    total_posts = posts.count()
    items = posts.list_recent(skip=(page - 1) * limit, limit=limit)

    viewer_id = _viewer_id(viewer)
    return PostPage(
        posts=[to_response(post, origin, viewer_id) for post in items[:limit]],
        current_page=page,
        total_pages=math.ceil(total_posts / limit),
        total_posts=total_posts,
    )


# ========================================
# ✅ GET POST BY ID (Public)
# ========================================
def get_post(post_id: str, posts, origin: str, viewer: Optional[dict] = None) -> PostResponse:
    post = posts.get(post_id)
    if not post:
        raise NotFoundError("Post not found")
    return to_response(post, origin, _viewer_id(viewer))


# ========================================
# ✅ LIKE / UNLIKE (Authenticated)
# ========================================
def toggle_like(post_id: str, current_user: dict, posts, origin: str) -> PostResponse:
    liked = posts.toggle_like(post_id, current_user["user_id"], current_user.get("username"))
    if liked is None:
        raise NotFoundError("Post not found")

    post = posts.get(post_id)
    if post is None:
        raise NotFoundError("Post not found")

    response = to_response(post, origin, current_user["user_id"])
    # the toggle's own outcome wins over a read that raced another toggle
    response.liked = liked
    return response


# ========================================
# ✅ COMMENT (Authenticated)
# ========================================
def add_comment(post_id: str, text: Optional[str], current_user: dict, posts, origin: str) -> PostResponse:
    text = text.strip() if text else ""
    if not text:
        raise ValidationError("Comment text is required")

    comment = posts.add_comment(post_id, current_user["user_id"], current_user.get("username"), text)
    if comment is None:
        raise NotFoundError("Post not found")

    post = posts.get(post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return to_response(post, origin, current_user["user_id"])


# ========================================
# ✅ DELETE POST (Authenticated + Ownership Check)
# ========================================
def delete_post(post_id: str, current_user: dict, posts) -> dict:
    post = posts.get(post_id)
    if not post:
        raise NotFoundError("Post not found")

    if post["user_id"] != current_user["user_id"]:
        raise AuthorizationError("User not authorized to delete this post")

    if not posts.delete(post_id):
        raise NotFoundError("Post not found")

    logger.info("Post %s deleted by %s", post_id, current_user["user_id"])
    return {"message": "Post removed successfully"}
