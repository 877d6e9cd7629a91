from fastapi import (
    APIRouter,
    Depends,
    Request,
    status,
    Form,
    UploadFile,
    File
)
from typing import Optional

from minisocial.auth import get_current_user, get_optional_user
from minisocial.controllers import post_controller
from minisocial.dependencies import get_image_store, get_post_store
from minisocial.models.post import CommentCreate, MessageResponse, PostPage, PostResponse

router = APIRouter(tags=["Posts"])


def request_origin(request: Request) -> str:
    return str(request.base_url).rstrip("/")


# ============================================
# ✅ CREATE POST (Authenticated)
# ============================================
@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    request: Request,
    text: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
    posts=Depends(get_post_store),
    image_store=Depends(get_image_store),
):
    """
    ✅ Create a post (authenticated users only).
    Needs text, an image, or both.
    """
    return await post_controller.create_post(
        text, image, current_user, posts, image_store, request_origin(request)
    )


# ============================================
# ✅ GET POSTS (Public, paginated)
# ============================================
@router.get("", response_model=PostPage, status_code=status.HTTP_200_OK)
def get_posts(
    request: Request,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    viewer: Optional[dict] = Depends(get_optional_user),
    posts=Depends(get_post_store),
):
    """✅ Newest posts first; page and limit default to 1 and 10."""
    return post_controller.get_posts(page, limit, posts, request_origin(request), viewer)


# ============================================
# ✅ GET POST BY ID (Public)
# ============================================
@router.get("/{post_id}", response_model=PostResponse, status_code=status.HTTP_200_OK)
def get_post(
    post_id: str,
    request: Request,
    viewer: Optional[dict] = Depends(get_optional_user),
    posts=Depends(get_post_store),
):
    return post_controller.get_post(post_id, posts, request_origin(request), viewer)


# ============================================
# ✅ LIKE / UNLIKE (Authenticated)
# ============================================
@router.put("/{post_id}/like", response_model=PostResponse, status_code=status.HTTP_200_OK)
def like_post(
    post_id: str,
    request: Request,
    current_user: dict = Depends(get_current_user),
    posts=Depends(get_post_store),
):
    """✅ Toggle the current user's like; `liked` in the response is the new state."""
    return post_controller.toggle_like(post_id, current_user, posts, request_origin(request))


# ============================================
# ✅ COMMENT (Authenticated)
# ============================================
@router.put("/{post_id}/comment", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def comment_on_post(
    post_id: str,
    data: CommentCreate,
    request: Request,
    current_user: dict = Depends(get_current_user),
    posts=Depends(get_post_store),
):
    return post_controller.add_comment(post_id, data.text, current_user, posts, request_origin(request))


# ============================================
# ✅ DELETE POST (Authenticated + Ownership Check)
# ============================================
@router.delete("/{post_id}", response_model=MessageResponse, status_code=status.HTTP_200_OK)
def delete_post(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    posts=Depends(get_post_store),
):
    """✅ Delete a post by ID (authenticated & must own the post)."""
    return post_controller.delete_post(post_id, current_user, posts)
