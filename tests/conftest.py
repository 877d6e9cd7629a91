import copy
import itertools
import os
import tempfile
import uuid
from datetime import datetime, timezone

# configuration is read at import time, so pin it before importing the app
os.environ["SECRET_KEY"] = "test-secret"
os.environ["IMAGE_STORE"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="minisocial-uploads-")
os.environ.pop("PUBLIC_BASE_URL", None)

import pytest
from fastapi.testclient import TestClient

from minisocial.dependencies import get_image_store, get_post_store, get_user_store
from minisocial.image_store import ImageStore, read_image
from minisocial.main import app


class InMemoryUserStore:
    def __init__(self):
        self.users = {}

    def find_by_email(self, email):
        user = self.users.get(email)
        return dict(user) if user else None

    def create(self, username, email, password_hash):
        user = {
            "user_id": str(uuid.uuid4()),
            "username": username,
            "email": email,
            "password": password_hash,
        }
        self.users[email] = user
        return dict(user)


class InMemoryPostStore:
    def __init__(self):
        self.posts = {}
        self._sequence = itertools.count()

    def _now(self):
        return datetime.now(timezone.utc)

    def create(self, user_id, username, text, image):
        post = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "username": username,
            "text": text,
            "image": image,
            "created_at": self._now(),
            "likes": [],
            "comments": [],
            "_seq": next(self._sequence),
        }
        self.posts[post["id"]] = post
        return self._public(post)

    def _public(self, post):
        post = copy.deepcopy(post)
        post.pop("_seq", None)
        return post

    def get(self, post_id):
        post = self.posts.get(post_id)
        return self._public(post) if post else None

    def list_recent(self, skip, limit):
        ordered = sorted(
            self.posts.values(),
            key=lambda post: (post["created_at"], post["_seq"]),
            reverse=True,
        )
        return [self._public(post) for post in ordered[skip:skip + limit]]

    def count(self):
        return len(self.posts)

    def toggle_like(self, post_id, user_id, username):
        post = self.posts.get(post_id)
        if post is None:
            return None
        remaining = [like for like in post["likes"] if like["user_id"] != user_id]
        if len(remaining) != len(post["likes"]):
            post["likes"] = remaining
            return False
        post["likes"].append({"user_id": user_id, "username": username, "created_at": self._now()})
        return True

    def add_comment(self, post_id, user_id, username, text):
        post = self.posts.get(post_id)
        if post is None:
            return None
        comment = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "username": username,
            "text": text,
            "created_at": self._now(),
        }
        post["comments"].append(comment)
        return dict(comment)

    def delete(self, post_id):
        return self.posts.pop(post_id, None) is not None


class FakeImageStore(ImageStore):
    def __init__(self, url="https://res.cloudinary.com/demo/image/upload/minisocial_posts/cat.png"):
        self.url = url
        self.uploads = []

    async def ingest(self, file):
        contents = await read_image(file)
        self.uploads.append((file.filename, len(contents)))
        return self.url


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def post_store():
    return InMemoryPostStore()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def client(user_store, post_store, image_store):
    app.dependency_overrides[get_user_store] = lambda: user_store
    app.dependency_overrides[get_post_store] = lambda: post_store
    app.dependency_overrides[get_image_store] = lambda: image_store
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user_payload(prefix):
    return {
        "username": prefix,
        "email": f"{prefix}@example.com",
        "password": f"{prefix}-Secret1",
    }


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client):
    def _signup(prefix):
        response = client.post("/auth/signup", json=make_user_payload(prefix))
        assert response.status_code == 201, response.text
        return response.json()

    return _signup
