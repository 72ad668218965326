"""AuthService tests with deterministic hasher and signer fakes."""

from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.exc import DataError
from sqlalchemy.ext.asyncio import AsyncSession

from core import (
    AuthError,
    ConflictError,
    InternalError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
    get_settings,
)
from models.user import USERNAME_MAX_LENGTH
from services import MediaUploadError, UploadedMedia
from services.auth import AuthService, TokenService, hash_refresh_token
from services.auth.identity_resolution import get_user_by_id


class FakeHasher:
    def hash(self, password: str) -> str:
        return f"fake${password}"

    def verify(self, password: str, password_hash: str) -> bool:
        return password_hash == f"fake${password}"


class FakeSigner:
    """Issues sequential opaque tokens and remembers their claims."""

    def __init__(self) -> None:
        self.issued: dict[str, tuple[str, dict[str, Any]]] = {}

    def sign(self, claims, secret: str, expires_in: timedelta) -> str:
        token = f"token-{len(self.issued) + 1}"
        self.issued[token] = (secret, dict(claims))
        return token

    def verify(self, token: str, secret: str) -> dict[str, Any]:
        issued = self.issued.get(token)
        if issued is None or issued[0] != secret:
            raise InvalidTokenError()
        return dict(issued[1])


class FailingCoverMediaHost:
    """Accepts the first upload and fails every later one."""

    def __init__(self) -> None:
        self.uploads: list[UploadedMedia] = []
        self.deleted: list[str] = []

    async def upload(self, local_path: Path, *, folder: str) -> UploadedMedia:
        if self.uploads:
            raise MediaUploadError("bucket unavailable")
        media = UploadedMedia(uri=f"https://media.test/{folder}/a.png", key=f"{folder}/a.png")
        self.uploads.append(media)
        return media

    async def delete(self, uri: str) -> None:
        self.deleted.append(uri)


@pytest.fixture()
def image_path(tmp_path: Path, png_bytes: bytes) -> Path:
    path = tmp_path / "avatar.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture()
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture()
def auth_service(db_session: AsyncSession, media_host, signer: FakeSigner) -> AuthService:
    return AuthService(
        db_session,
        tokens=TokenService(get_settings(), signer=signer),
        hasher=FakeHasher(),
        media_host=media_host,
    )


async def _register(auth_service: AuthService, image_path: Path):
    return await auth_service.register(
        fullname="Ada Lovelace",
        username="ada",
        email="ada@x.com",
        password="s3cret!",
        avatar=image_path,
    )


@pytest.mark.asyncio
async def test_register_stores_hash_from_injected_hasher(
    auth_service: AuthService, image_path: Path, db_session: AsyncSession
):
    user = await _register(auth_service, image_path)

    stored = await get_user_by_id(db_session, user.id)
    assert stored is not None
    assert stored.password_hash == "fake$s3cret!"


@pytest.mark.asyncio
async def test_register_conflict_raises(auth_service: AuthService, image_path: Path, tmp_path: Path, png_bytes: bytes):
    await _register(auth_service, image_path)
    second = tmp_path / "second.png"
    second.write_bytes(png_bytes)

    with pytest.raises(ConflictError):
        await auth_service.register(
            fullname="Other",
            username="ADA",
            email="other@x.com",
            password="pw",
            avatar=second,
        )


@pytest.mark.asyncio
async def test_failed_cover_upload_discards_avatar(
    db_session: AsyncSession, image_path: Path, tmp_path: Path, png_bytes: bytes, signer: FakeSigner
):
    media_host = FailingCoverMediaHost()
    service = AuthService(
        db_session,
        tokens=TokenService(get_settings(), signer=signer),
        hasher=FakeHasher(),
        media_host=media_host,
    )
    cover = tmp_path / "cover.png"
    cover.write_bytes(png_bytes)

    with pytest.raises(InternalError):
        await service.register(
            fullname="Ada",
            username="ada",
            email="ada@x.com",
            password="pw",
            avatar=image_path,
            cover_image=cover,
        )

    assert media_host.deleted == [media_host.uploads[0].uri]


@pytest.mark.asyncio
async def test_login_issues_tokens_and_persists_digest(
    auth_service: AuthService, image_path: Path, db_session: AsyncSession
):
    registered = await _register(auth_service, image_path)

    result = await auth_service.login(username=None, email="ada@x.com", password="s3cret!")

    assert result.user.id == registered.id
    assert (result.access_token, result.refresh_token) == ("token-1", "token-2")
    db_session.expire_all()
    stored = await get_user_by_id(db_session, registered.id)
    assert stored is not None
    assert stored.refresh_token_hash == hash_refresh_token("token-2")


@pytest.mark.asyncio
async def test_login_failures(auth_service: AuthService, image_path: Path):
    await _register(auth_service, image_path)

    with pytest.raises(NotFoundError):
        await auth_service.login(username="grace", email=None, password="s3cret!")
    with pytest.raises(AuthError):
        await auth_service.login(username="ada", email=None, password="wrong")


@pytest.mark.asyncio
async def test_refresh_rotates_once(auth_service: AuthService, image_path: Path):
    await _register(auth_service, image_path)
    session = await auth_service.login(username="ada", email=None, password="s3cret!")

    rotated = await auth_service.refresh(session.refresh_token)

    assert rotated.refresh_token not in (session.access_token, session.refresh_token)
    with pytest.raises(AuthError):
        await auth_service.refresh(session.refresh_token)
    again = await auth_service.refresh(rotated.refresh_token)
    assert again.refresh_token != rotated.refresh_token


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(auth_service: AuthService, image_path: Path):
    await _register(auth_service, image_path)
    session = await auth_service.login(username="ada", email=None, password="s3cret!")

    with pytest.raises(AuthError):
        await auth_service.refresh(session.access_token)


@pytest.mark.asyncio
async def test_logout_is_idempotent(auth_service: AuthService, image_path: Path):
    user = await _register(auth_service, image_path)
    session = await auth_service.login(username="ada", email=None, password="s3cret!")

    await auth_service.logout(user.id)
    await auth_service.logout(user.id)

    with pytest.raises(AuthError):
        await auth_service.refresh(session.refresh_token)


@pytest.mark.asyncio
async def test_change_password(auth_service: AuthService, image_path: Path):
    user = await _register(auth_service, image_path)

    with pytest.raises(AuthError):
        await auth_service.change_password(user.id, old_password="nope", new_password="n3w")
    await auth_service.change_password(user.id, old_password="s3cret!", new_password="n3w")

    result = await auth_service.login(username="ada", email=None, password="n3w")
    assert result.user.id == user.id


@pytest.mark.asyncio
async def test_failed_commit_discards_uploaded_media(
    auth_service: AuthService,
    image_path: Path,
    db_session: AsyncSession,
    media_host,
    monkeypatch: pytest.MonkeyPatch,
):
    async def failing_commit() -> None:
        raise DataError("INSERT INTO users", None, Exception("value too long"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(InternalError):
        await _register(auth_service, image_path)

    assert media_host.deleted == [media_host.uploads[0].uri]


@pytest.mark.asyncio
async def test_register_checks_lengths_before_uploading(
    auth_service: AuthService, image_path: Path, media_host
):
    with pytest.raises(ValidationError):
        await auth_service.register(
            fullname="Ada",
            username="a" * (USERNAME_MAX_LENGTH + 1),
            email="ada@x.com",
            password="s3cret!",
            avatar=image_path,
        )

    assert media_host.uploads == []
