import os
import tempfile
import uuid

import pytest
import pytest_asyncio
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

# Must be set before app.config is imported
os.environ.setdefault("UPLOAD_TEMP_DIR", tempfile.mkdtemp(prefix="chirp-uploads-"))

from app.core import db as db_module
from app.main import app
from app.services import media as media_module


TEST_DB_URL = "sqlite://:memory:"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class FakeS3Client:
    """
    In-memory stand-in for the boto3 S3 client used by the media delegate.
    `fail_on_upload` makes uploads fail from the n-th (1-based) on, raising
    S3UploadFailedError like the managed transfer of the real client does;
    `fail_deletes` makes every delete raise.
    """

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.uploads = 0
        self.fail_on_upload: int | None = None
        self.fail_deletes = False
        self.deleted: list[str] = []

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        self.uploads += 1
        if self.fail_on_upload is not None and self.uploads >= self.fail_on_upload:
            raise S3UploadFailedError(
                f"Failed to upload {filename} to {bucket}/{key}: An error occurred (NoSuchBucket) "
                "when calling the PutObject operation"
            )
        with open(filename, "rb") as f:
            self.objects[key] = f.read()

    def delete_object(self, Bucket, Key):
        if self.fail_deletes:
            raise ClientError({"Error": {"Code": "500", "Message": "delete failed"}}, "DeleteObject")
        self.deleted.append(Key)
        self.objects.pop(Key, None)


@pytest.fixture(autouse=True)
def storage(monkeypatch):
    """Route every media upload/delete to an in-memory fake bucket."""
    fake = FakeS3Client()
    monkeypatch.setattr(media_module, "get_s3_client", lambda: fake)
    return fake


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def client():
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    https so that the `secure` auth cookies are stored and sent back.
    """
    await _init_test_db()
    # Use ASGITransport without lifespan parameter (not supported in all httpx versions)
    try:
        transport = ASGITransport(app=app, lifespan="off")
    except TypeError:
        # Fallback for httpx versions that don't support lifespan parameter
        transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://testserver") as async_client:
        yield async_client
    await Tortoise.close_connections()


async def _register(client, username: str | None = None, password: str = "UserPass!23", **overrides):
    """POST /auth/register with a PNG avatar; returns the raw response."""
    username = username or f"user_{uuid.uuid4().hex[:6]}"
    data = {
        "fullName": overrides.pop("fullName", username.title()),
        "username": username,
        "email": overrides.pop("email", f"{username}@example.com"),
        "password": password,
        "bio": overrides.pop("bio", "hello there"),
    }
    files = overrides.pop("files", {"avatar": ("avatar.png", PNG_BYTES, "image/png")})
    return await client.post("/api/v1/auth/register", data=data, files=files)


@pytest_asyncio.fixture
async def make_user(client):
    """
    Factory fixture registering a user through the API.
    Returns (username, Authorization headers).
    """

    async def _make_user(username: str | None = None) -> tuple[str, dict[str, str]]:
        username = username or f"user_{uuid.uuid4().hex[:6]}"
        resp = await _register(client, username)
        assert resp.status_code == 201, resp.text
        token = resp.json()["data"]["accessToken"]
        return username, {"Authorization": f"Bearer {token}"}

    return _make_user


@pytest_asyncio.fixture
async def post_chirp(client):
    """Factory fixture creating a chirp; returns its id."""

    async def _post_chirp(headers: dict[str, str], content: str = "hello", files=None) -> str:
        resp = await client.post("/api/v1/chirps", data={"content": content}, files=files, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["id"]

    return _post_chirp


@pytest_asyncio.fixture
async def register_user(client):
    """Factory fixture returning the raw /auth/register response."""

    async def _register_user(username: str | None = None, password: str = "UserPass!23", **overrides):
        return await _register(client, username, password, **overrides)

    return _register_user
