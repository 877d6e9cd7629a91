"""HTTP client for the MiniSocial API plus a small feed state holder.

``Session`` carries the token explicitly; nothing is read from global state.
``FeedController`` applies likes and comments optimistically and then either
adopts the server's copy of the post or rolls back to what it had before.
"""
import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


@dataclass
class Session:
    token: Optional[str] = None
    user: Dict = field(default_factory=dict)

    @classmethod
    def from_auth(cls, payload: dict) -> "Session":
        return cls(
            token=payload["token"],
            user={key: payload[key] for key in ("id", "username", "email") if key in payload},
        )

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.get("id")

    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def clear(self):
        self.token = None
        self.user = {}


class ApiClient:
    def __init__(self, http: httpx.Client, session: Optional[Session] = None):
        self.http = http
        self.session = session or Session()

    def _request(self, method: str, url: str, **kwargs) -> dict:
        headers = {**self.session.headers(), **kwargs.pop("headers", {})}
        response = self.http.request(method, url, headers=headers, **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(response.status_code, message or response.reason_phrase)
        return body

    # Auth
    def signup(self, username: str, email: str, password: str) -> Session:
        payload = self._request(
            "POST", "/auth/signup", json={"username": username, "email": email, "password": password}
        )
        self.session = Session.from_auth(payload)
        return self.session

    def login(self, email: str, password: str) -> Session:
        payload = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.session = Session.from_auth(payload)
        return self.session

    def logout(self):
        self.session.clear()

    # Posts
    def get_posts(self, page: int = 1, limit: int = 10) -> dict:
        return self._request("GET", "/posts", params={"page": page, "limit": limit})

    def create_post(self, text: Optional[str] = None, image: Optional[tuple] = None) -> dict:
        """``image`` is an httpx file tuple, e.g. ``("cat.png", data, "image/png")``."""
        data = {"text": text} if text else {}
        files = {"image": image} if image else None
        return self._request("POST", "/posts", data=data, files=files)

    def like_post(self, post_id: str) -> dict:
        return self._request("PUT", f"/posts/{post_id}/like")

    def comment_post(self, post_id: str, text: str) -> dict:
        return self._request("PUT", f"/posts/{post_id}/comment", json={"text": text})

    def delete_post(self, post_id: str) -> dict:
        return self._request("DELETE", f"/posts/{post_id}")


class FeedController:
    def __init__(self, api: ApiClient):
        self.api = api
        self.posts: Dict[str, dict] = {}
        self.order: List[str] = []
        self.current_page = 0
        self.total_pages = 0

    @property
    def feed(self) -> List[dict]:
        return [self.posts[post_id] for post_id in self.order if post_id in self.posts]

    def load(self, page: int = 1, limit: int = 10) -> List[dict]:
        result = self.api.get_posts(page, limit)
        self.posts = {post["id"]: post for post in result["posts"]}
        self.order = [post["id"] for post in result["posts"]]
        self.current_page = result["currentPage"]
        self.total_pages = result["totalPages"]
        return self.feed

    def create(self, text: Optional[str] = None, image: Optional[tuple] = None) -> dict:
        post = self.api.create_post(text, image)
        self.posts[post["id"]] = post
        self.order.insert(0, post["id"])
        return post

    def toggle_like(self, post_id: str) -> dict:
        previous = copy.deepcopy(self.posts[post_id])
        self.posts[post_id] = self._flip_like(previous)
        try:
            updated = self.api.like_post(post_id)
        except (ApiError, httpx.HTTPError):
            logger.info("Like on %s failed, reverting", post_id)
            self.posts[post_id] = previous
            raise
        self.posts[post_id] = updated
        return updated

    def add_comment(self, post_id: str, text: str) -> dict:
        previous = copy.deepcopy(self.posts[post_id])
        pending = copy.deepcopy(previous)
        pending["comments"].append({
            "id": f"pending-{uuid.uuid4().hex}",
            "userId": self.api.session.user_id,
            "username": self.api.session.user.get("username"),
            "text": text,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        })
        pending["commentCount"] = len(pending["comments"])
        self.posts[post_id] = pending
        try:
            updated = self.api.comment_post(post_id, text)
        except (ApiError, httpx.HTTPError):
            logger.info("Comment on %s failed, reverting", post_id)
            self.posts[post_id] = previous
            raise
        self.posts[post_id] = updated
        return updated

    def delete(self, post_id: str):
        self.api.delete_post(post_id)
        self.posts.pop(post_id, None)
        self.order = [existing for existing in self.order if existing != post_id]

    def _flip_like(self, post: dict) -> dict:
        post = copy.deepcopy(post)
        user_id = self.api.session.user_id
        if post.get("liked"):
            post["likes"] = [like for like in post["likes"] if like["userId"] != user_id]
        else:
            post["likes"].append({"userId": user_id, "username": self.api.session.user.get("username")})
        post["liked"] = not post.get("liked")
        post["likeCount"] = len(post["likes"])
        return post
