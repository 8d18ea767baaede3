"""Tests for profile updates and profile image handling."""

import base64
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import PASSWORD, add_token, add_users
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import StorageError
from app.models.user import User
from app.services.files import JPEG_SIGNATURE, PNG_SIGNATURE
from app.services.users import UserService

TWO_MB = 2 * 1024 * 1024


def encode(data: bytes) -> str:
    return base64.b64encode(data).decode()


def png(size: int = 64) -> bytes:
    return PNG_SIGNATURE + b"\x00" * (size - len(PNG_SIGNATURE))


def jpeg(size: int = 64) -> bytes:
    return JPEG_SIGNATURE + b"\x00" * (size - len(JPEG_SIGNATURE))


def put_user(client: TestClient, user_id, body: dict | None, headers: dict | None = None, language: str | None = None):
    headers = dict(headers or {})
    if language:
        headers["Accept-Language"] = language
    return client.put(f"/api/1.0/users/{user_id}", json=body, headers=headers)


class TestUpdateAuthorization:
    """Only the account owner may update it."""

    def test_anonymous_update_forbidden(self, client: TestClient, active_user: User):
        response = put_user(client, active_user.id, {"username": "user1-updated"})
        assert response.status_code == 403

    @pytest.mark.parametrize(
        "language,message",
        [("tr", "Kullanıcıyı güncelleme yetkiniz yok"), ("en", "You are not authorized to update user")],
    )
    def test_forbidden_message(self, client: TestClient, active_user: User, language: str, message: str):
        response = put_user(client, active_user.id, {"username": "user1-updated"}, language=language)
        body = response.json()
        assert body["message"] == message
        assert body["path"] == f"/api/1.0/users/{active_user.id}"
        assert "validationErrors" not in body

    def test_unknown_token_forbidden(self, client: TestClient, active_user: User):
        response = put_user(
            client, active_user.id, {"username": "user1-updated"}, headers={"Authorization": "Bearer 123a"}
        )
        assert response.status_code == 403

    def test_other_users_account_forbidden(self, client: TestClient, db_session: Session, auth_header: dict):
        other = add_users(db_session, 1, first=2)[0]
        response = put_user(client, other.id, {"username": "user2-updated"}, headers=auth_header)
        assert response.status_code == 403
        db_session.refresh(other)
        assert other.username == "user2"

    def test_non_numeric_id_forbidden(self, client: TestClient, auth_header: dict):
        response = put_user(client, "abc", {"username": "user1-updated"}, headers=auth_header)
        assert response.status_code == 403

    def test_out_of_range_id_forbidden(self, client: TestClient, auth_header: dict):
        response = put_user(client, "99999999999999999999999", {"username": "user1-updated"}, headers=auth_header)
        assert response.status_code == 403

    def test_guard_runs_before_validation(self, client: TestClient, active_user: User):
        response = put_user(client, active_user.id, {"username": None})
        assert response.status_code == 403

    def test_inactive_owner_can_update_with_token(self, client: TestClient, db_session: Session, inactive_user):
        add_token(db_session, inactive_user.id)
        response = put_user(
            client, inactive_user.id, {"username": "user1-updated"}, headers={"Authorization": "Bearer test-token"}
        )
        assert response.status_code == 200


class TestUpdateUser:
    """Tests for successful and rejected updates by the owner."""

    def test_update_username(self, client: TestClient, db_session: Session, active_user: User, auth_header: dict):
        response = put_user(client, active_user.id, {"username": "user1-updated"}, headers=auth_header)
        assert response.status_code == 200
        db_session.refresh(active_user)
        assert active_user.username == "user1-updated"

    def test_response_body(self, client: TestClient, active_user: User, auth_header: dict):
        body = put_user(client, active_user.id, {"username": "user1-updated"}, headers=auth_header).json()
        assert body == {"id": active_user.id, "username": "user1-updated", "email": "user1@mail.com", "image": None}

    def test_password_unchanged(self, client: TestClient, active_user: User, auth_header: dict):
        put_user(client, active_user.id, {"username": "user1-updated"}, headers=auth_header)
        response = client.post("/api/1.0/auth", json={"email": "user1@mail.com", "password": PASSWORD})
        assert response.status_code == 200

    @pytest.mark.parametrize(
        "username,message",
        [
            (None, "Username cannot be null"),
            ("usr", "Must have min 4 and max 32 characters"),
            ("a" * 33, "Must have min 4 and max 32 characters"),
        ],
    )
    def test_invalid_username(self, client: TestClient, active_user: User, auth_header: dict, username, message):
        response = put_user(client, active_user.id, {"username": username}, headers=auth_header)
        assert response.status_code == 400
        assert response.json()["validationErrors"]["username"] == message

    def test_empty_body(self, client: TestClient, active_user: User, auth_header: dict):
        response = client.put(f"/api/1.0/users/{active_user.id}", headers=auth_header)
        assert response.status_code == 400
        assert response.json()["validationErrors"]["username"] == "Username cannot be null"


class TestProfileImage:
    """Tests for profile image upload on update."""

    def test_image_is_saved(
        self, client: TestClient, db_session: Session, active_user: User, auth_header: dict, upload_dir: Path
    ):
        data = png()
        response = put_user(client, active_user.id, {"username": "user1", "image": encode(data)}, headers=auth_header)
        assert response.status_code == 200
        db_session.refresh(active_user)
        stored = upload_dir / active_user.image
        assert stored.read_bytes() == data
        assert response.json()["image"] == active_user.image

    def test_jpeg_accepted(self, client: TestClient, active_user: User, auth_header: dict, upload_dir: Path):
        response = put_user(client, active_user.id, {"username": "user1", "image": encode(jpeg())}, headers=auth_header)
        assert response.status_code == 200

    def test_random_file_name(self, client: TestClient, active_user: User, auth_header: dict, upload_dir: Path):
        body = put_user(client, active_user.id, {"username": "user1", "image": encode(png())}, headers=auth_header).json()
        assert len(body["image"]) == 32
        assert body["image"].isalnum()

    def test_old_image_removed_on_replace(
        self, client: TestClient, db_session: Session, active_user: User, auth_header: dict, upload_dir: Path
    ):
        put_user(client, active_user.id, {"username": "user1", "image": encode(png())}, headers=auth_header)
        db_session.refresh(active_user)
        first = active_user.image

        put_user(client, active_user.id, {"username": "user1", "image": encode(jpeg())}, headers=auth_header)
        db_session.refresh(active_user)
        assert active_user.image != first
        assert not (upload_dir / first).exists()
        assert (upload_dir / active_user.image).exists()

    def test_image_kept_when_not_sent(
        self, client: TestClient, db_session: Session, active_user: User, auth_header: dict, upload_dir: Path
    ):
        put_user(client, active_user.id, {"username": "user1", "image": encode(png())}, headers=auth_header)
        db_session.refresh(active_user)
        image = active_user.image

        put_user(client, active_user.id, {"username": "user1-updated"}, headers=auth_header)
        db_session.refresh(active_user)
        assert active_user.image == image
        assert (upload_dir / image).exists()

    def test_image_at_size_limit_accepted(
        self, client: TestClient, active_user: User, auth_header: dict, upload_dir: Path
    ):
        response = put_user(
            client, active_user.id, {"username": "user1", "image": encode(png(TWO_MB))}, headers=auth_header
        )
        assert response.status_code == 200

    @pytest.mark.parametrize(
        "language,message",
        [("en", "Your profile image cannot be bigger than 2MB"), ("tr", "Profil resminiz 2MB'den büyük olamaz")],
    )
    def test_image_over_size_limit(
        self, client: TestClient, active_user: User, auth_header: dict, upload_dir: Path, language, message
    ):
        response = put_user(
            client,
            active_user.id,
            {"username": "user1", "image": encode(png(TWO_MB + 1))},
            headers=auth_header,
            language=language,
        )
        assert response.status_code == 400
        assert response.json()["validationErrors"]["image"] == message

    @pytest.mark.parametrize(
        "data",
        [
            b"GIF89a" + b"\x00" * 32,
            b"%PDF-1.4" + b"\x00" * 32,
            b"just some text",
        ],
    )
    def test_unsupported_image_types(
        self, client: TestClient, active_user: User, auth_header: dict, upload_dir: Path, data: bytes
    ):
        response = put_user(client, active_user.id, {"username": "user1", "image": encode(data)}, headers=auth_header)
        assert response.status_code == 400
        assert response.json()["validationErrors"]["image"] == "Only JPEG or PNG files are allowed"

    def test_invalid_base64(self, client: TestClient, active_user: User, auth_header: dict, upload_dir: Path):
        response = put_user(client, active_user.id, {"username": "user1", "image": "not base64!"}, headers=auth_header)
        assert response.status_code == 400
        assert "image" in response.json()["validationErrors"]

    def test_rejected_image_not_stored(
        self, client: TestClient, db_session: Session, active_user: User, auth_header: dict, upload_dir: Path
    ):
        put_user(client, active_user.id, {"username": "user1", "image": encode(b"GIF89a")}, headers=auth_header)
        db_session.refresh(active_user)
        assert active_user.image is None
        assert list(upload_dir.iterdir()) == []

    def test_username_and_image_errors_together(
        self, client: TestClient, active_user: User, auth_header: dict, upload_dir: Path
    ):
        response = put_user(client, active_user.id, {"username": "usr", "image": encode(b"GIF89a")}, headers=auth_header)
        assert list(response.json()["validationErrors"]) == ["username", "image"]

    def test_new_image_removed_when_commit_fails(self, db_session: Session, active_user: User, upload_dir: Path):
        with patch.object(db_session, "commit", side_effect=SQLAlchemyError("database is locked")):
            with pytest.raises(StorageError):
                UserService().update_user(db_session, active_user.id, "user1-updated", png())
        assert list(upload_dir.iterdir()) == []
        db_session.refresh(active_user)
        assert active_user.image is None
        assert active_user.username == "user1"
