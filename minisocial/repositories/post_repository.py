from datetime import datetime
from typing import Optional

from minisocial import config

# Every read returns the post together with its likes and comments so callers
# always get one self-contained document.
POST_DOCUMENT = """
RETURN p,
    [(liker:User)-[l:LIKED]->(p) | {
        user_id: liker.user_id,
        username: l.username,
        created_at: l.created_at
    }] AS likes,
    [(c:Comment)-[:ON]->(p) | c] AS comments
"""


def to_native(value):
    """Convert a Neo4j temporal value to a Python datetime."""
    if value is None or isinstance(value, datetime):
        return value
    if hasattr(value, "to_native"):
        return value.to_native()
    return value


def _sort_key(item: dict):
    return (item.get("created_at") is None, item.get("created_at") or 0)


def record_to_post(record) -> dict:
    node = record["p"]
    likes = [
        {
            "user_id": like["user_id"],
            "username": like.get("username"),
            "created_at": to_native(like.get("created_at")),
        }
        for like in record["likes"]
    ]
    comments = [
        {
            "id": comment["id"],
            "user_id": comment.get("author_id"),
            "username": comment.get("username"),
            "text": comment.get("text"),
            "created_at": to_native(comment.get("created_at")),
        }
        for comment in record["comments"]
    ]
    likes.sort(key=_sort_key)
    comments.sort(key=_sort_key)

    return {
        "id": node["id"],
        "user_id": node.get("author_id"),
        "username": node.get("username"),
        "text": node.get("text"),
        "image": node.get("image_url"),
        "created_at": to_native(node.get("created_at")),
        "likes": likes,
        "comments": comments,
    }


class Neo4jPostStore:
    """Post store backed by ``(:Post)`` nodes.

    Likes are ``(:User)-[:LIKED]->(:Post)`` relationships and comments are
    ``(:Comment)-[:ON]->(:Post)`` nodes. Like toggles and comment appends are
    single statements, so concurrent writers on the same post never overwrite
    each other.
    """

    def __init__(self, driver, database: str | None = None):
        self.driver = driver
        self.database = database or config.NEO4J_DATABASE

    def _query(self, query: str, **params):
        records, _, _ = self.driver.execute_query(query, params, database_=self.database)
        return records

    # ========================================
    # ✅ CREATE
    # ========================================
    def create(self, user_id: str, username: str, text: Optional[str], image: Optional[str]) -> dict:
        query = """
        CREATE (p:Post {
            id: randomUUID(),
            author_id: $user_id,
            username: $username,
            text: $text,
            image_url: $image,
            created_at: datetime()
        })
        WITH p
        OPTIONAL MATCH (u:User {user_id: $user_id})
        FOREACH (_ IN CASE WHEN u IS NULL THEN [] ELSE [1] END |
            CREATE (u)-[:CREATED]->(p))
        """ + POST_DOCUMENT
        records = self._query(query, user_id=user_id, username=username, text=text, image=image)
        return record_to_post(records[0])

    # ========================================
    # ✅ READ
    # ========================================
    def get(self, post_id: str) -> Optional[dict]:
        query = "MATCH (p:Post {id: $post_id})" + POST_DOCUMENT
        records = self._query(query, post_id=post_id)
        if not records:
            return None
        return record_to_post(records[0])

    def list_recent(self, skip: int, limit: int) -> list:
        query = """
        MATCH (p:Post)
        WITH p
        ORDER BY p.created_at DESC, p.id DESC
        SKIP $skip
        LIMIT $limit
        """ + POST_DOCUMENT
        records = self._query(query, skip=skip, limit=limit)
        return [record_to_post(record) for record in records]

    def count(self) -> int:
        records = self._query("MATCH (p:Post) RETURN count(p) AS total")
        return records[0]["total"] if records else 0

    # ========================================
    # ✅ LIKE TOGGLE
    # ========================================
    def toggle_like(self, post_id: str, user_id: str, username: Optional[str]) -> Optional[bool]:
        """Flip the user's like on a post.

        Returns True if the post is now liked, False if the like was removed,
        and None if the post does not exist. The user is keyed by id alone.
        """
        query = """
        MATCH (p:Post {id: $post_id})
        MERGE (u:User {user_id: $user_id})
        OPTIONAL MATCH (u)-[existing:LIKED]->(p)
        WITH p, u, existing, existing IS NULL AS liked
        FOREACH (_ IN CASE WHEN liked THEN [1] ELSE [] END |
            MERGE (u)-[l:LIKED]->(p)
            ON CREATE SET l.username = $username, l.created_at = datetime())
        FOREACH (_ IN CASE WHEN liked THEN [] ELSE [1] END |
            DELETE existing)
        RETURN liked
        """
        records = self._query(query, post_id=post_id, user_id=user_id, username=username)
        if not records:
            return None
        return records[0]["liked"]

    # ========================================
    # ✅ COMMENT APPEND
    # ========================================
    def add_comment(self, post_id: str, user_id: str, username: Optional[str], text: str) -> Optional[dict]:
        query = """
        MATCH (p:Post {id: $post_id})
        CREATE (c:Comment {
            id: randomUUID(),
            author_id: $user_id,
            username: $username,
            text: $text,
            created_at: datetime()
        })-[:ON]->(p)
        RETURN c
        """
        records = self._query(query, post_id=post_id, user_id=user_id, username=username, text=text)
        if not records:
            return None
        comment = records[0]["c"]
        return {
            "id": comment["id"],
            "user_id": comment["author_id"],
            "username": comment.get("username"),
            "text": comment["text"],
            "created_at": to_native(comment["created_at"]),
        }

    # ========================================
    # ✅ DELETE
    # ========================================
    def delete(self, post_id: str) -> bool:
        query = """
        MATCH (p:Post {id: $post_id})
        OPTIONAL MATCH (c:Comment)-[:ON]->(p)
        WITH p, collect(c) AS comments
        FOREACH (c IN comments | DETACH DELETE c)
        DETACH DELETE p
        RETURN $post_id AS id
        """
        records = self._query(query, post_id=post_id)
        return bool(records)
