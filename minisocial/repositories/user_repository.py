import uuid
from typing import Optional

from neo4j.exceptions import ConstraintError

from minisocial import config
from minisocial.errors import ConflictError


class Neo4jUserStore:
    """Credential store backed by ``(:User)`` nodes."""

    def __init__(self, driver, database: str | None = None):
        self.driver = driver
        self.database = database or config.NEO4J_DATABASE

    def find_by_email(self, email: str) -> Optional[dict]:
        with self.driver.session(database=self.database) as session:
            query = "MATCH (u:User {email: $email}) RETURN u"
            record = session.run(query, email=email).single()
            if not record:
                return None
            return dict(record["u"])

    def create(self, username: str, email: str, password_hash: str) -> dict:
        user_id = str(uuid.uuid4())
        query = """
        CREATE (u:User {
            user_id: $user_id,
            username: $username,
            email: $email,
            password: $password,
            created_at: datetime()
        })
        RETURN u
        """
        with self.driver.session(database=self.database) as session:
            try:
                record = session.run(
                    query,
                    user_id=user_id,
                    username=username,
                    email=email,
                    password=password_hash,
                ).single()
            except ConstraintError:
                # lost a race with a concurrent signup for the same email
                raise ConflictError("User already exists")
            return dict(record["u"])
