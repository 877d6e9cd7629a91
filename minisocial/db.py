import logging

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError
from passlib.context import CryptContext

from minisocial import config
from minisocial.errors import ConfigurationError

logger = logging.getLogger(__name__)

_driver = None

CONSTRAINTS = [
    "CREATE CONSTRAINT user_email_unique IF NOT EXISTS FOR (u:User) REQUIRE u.email IS UNIQUE",
    "CREATE CONSTRAINT user_id_unique IF NOT EXISTS FOR (u:User) REQUIRE u.user_id IS UNIQUE",
    "CREATE CONSTRAINT post_id_unique IF NOT EXISTS FOR (p:Post) REQUIRE p.id IS UNIQUE",
    "CREATE CONSTRAINT comment_id_unique IF NOT EXISTS FOR (c:Comment) REQUIRE c.id IS UNIQUE",
]


def get_db():
    """Return the process-wide Neo4j driver, creating it on first use."""
    global _driver
    if _driver is None:
        if not config.neo4j_configured():
            raise ConfigurationError("Database is not configured")
        _driver = GraphDatabase.driver(
            config.NEO4J_URI,
            auth=(config.NEO4J_USER, config.NEO4J_PASSWORD),
            keep_alive=True,
        )
    return _driver


def init_db():
    """Verify connectivity and create uniqueness constraints.

    Failures are logged and swallowed so the API can still start (and answer
    with a clear error later) when the database is unreachable, e.g. during
    local development without network access.
    """
    if not config.neo4j_configured():
        logger.warning("Neo4j settings missing; skipping database initialisation")
        return False

    try:
        driver = get_db()
        driver.verify_connectivity()
        for statement in CONSTRAINTS:
            driver.execute_query(statement, database_=config.NEO4J_DATABASE)
    except (Neo4jError, DriverError, OSError, ValueError) as e:
        logger.error("Failed to initialise Neo4j: %s", e)
        return False

    logger.info("Connected to Neo4j at %s", config.NEO4J_URI)
    return True


def close_db():
    global _driver
    if _driver is not None:
        _driver.close()
        _driver = None


# Password hashing setup
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

MAX_PASSWORD_LENGTH = 500


def hash_password(password: str) -> str:
    if len(password) > MAX_PASSWORD_LENGTH:
        password = password[:MAX_PASSWORD_LENGTH]
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if len(plain_password) > MAX_PASSWORD_LENGTH:
        plain_password = plain_password[:MAX_PASSWORD_LENGTH]
    return pwd_context.verify(plain_password, hashed_password)
