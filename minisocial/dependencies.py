from functools import lru_cache

from minisocial.db import get_db
from minisocial.image_store import ImageStore, build_image_store
from minisocial.repositories.post_repository import Neo4jPostStore
from minisocial.repositories.user_repository import Neo4jUserStore


def get_user_store() -> Neo4jUserStore:
    return Neo4jUserStore(get_db())


def get_post_store() -> Neo4jPostStore:
    return Neo4jPostStore(get_db())


@lru_cache
def get_image_store() -> ImageStore:
    return build_image_store()
