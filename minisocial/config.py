import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Neo4j
NEO4J_URI = os.getenv("NEO4J_URI")
NEO4J_USER = os.getenv("NEO4J_USER")
NEO4J_PASSWORD = os.getenv("NEO4J_PASSWORD")
NEO4J_DATABASE = os.getenv("NEO4J_DATABASE", "neo4j")

# JWT
DEFAULT_SECRET_KEY = "dev-secret-change-me"
SECRET_KEY = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "30"))

# Image storage: "local" or "cloudinary"
IMAGE_STORE = os.getenv("IMAGE_STORE", "local").strip().lower()
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
# Absolute origin the local store prefixes to /uploads/<name>, e.g. http://localhost:8000
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL")
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))

CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "minisocial_posts")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    ).split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def neo4j_configured() -> bool:
    return all([NEO4J_URI, NEO4J_USER, NEO4J_PASSWORD])
