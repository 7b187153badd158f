"""Login, registration and profile maintenance on top of the session store."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from ..clients import ApiClient, parse_payload
from ..errors import ClientError, PersistenceFailure, ValidationFailed
from ..results import Result
from ..schemas import AuthResponse, LoginRequest, ProfileUpdate, RegisterRequest, UserIdentity
from .notification_channel import NotificationChannel
from .session_store import SessionStore

logger = logging.getLogger(__name__)


def _validate(model: type[BaseModel], **values: Any) -> BaseModel:
    try:
        return model.model_validate(values)
    except ValidationError as exc:
        errors = exc.errors()
        fields = [".".join(str(part) for part in error["loc"]) for error in errors]
        detail = f"Invalid {fields[0]}" if fields else "Invalid input"
        raise ValidationFailed(detail, fields=fields) from exc


class AuthService:
    def __init__(self, *, session: SessionStore, api: ApiClient, notifications: NotificationChannel) -> None:
        self._session = session
        self._api = api
        self._notifications = notifications

    async def login(self, email: str, password: str) -> Result[UserIdentity]:
        """Authenticate with email and password and store the resulting session."""

        try:
            request = _validate(LoginRequest, email=email, password=password)
        except ValidationFailed as exc:
            return self._fail(exc)
        return await self._authenticate("/users/login", request, "Failed to sign in")

    async def register(self, email: str, password: str, name: str) -> Result[UserIdentity]:
        """Create an account and sign in with it."""

        try:
            request = _validate(RegisterRequest, email=email, password=password, name=name)
        except ValidationFailed as exc:
            return self._fail(exc)
        return await self._authenticate("/users/register", request, "Failed to register")

    async def refresh_user(self) -> Result[UserIdentity]:
        """Re-read the signed-in user's profile and rewrite the persisted session."""

        try:
            token = self._session.require_token()
            user = self._session.require_user()
            fresh = await self._read_user(token, user.id)
        except ClientError as exc:
            return self._fail(exc)
        return await self._store_user(token, fresh)

    async def update_profile(self, name: str, phone: str) -> Result[UserIdentity]:
        """Save the user's name and phone, then store the profile as the server now has it."""

        try:
            token = self._session.require_token()
            user = self._session.require_user()
            request = _validate(ProfileUpdate, name=name, phone=phone)
            await self._api.put(
                f"/users/{quote(user.id, safe='')}",
                token=token,
                json=request.model_dump(mode="json", by_alias=True),
                error_message="Failed to update profile",
            )
            fresh = await self._read_user(token, user.id)
        except ClientError as exc:
            return self._fail(exc)

        result = await self._store_user(token, fresh)
        if result.ok:
            self._notifications.success("Profile updated")
        return result

    async def _read_user(self, token: str, user_id: str) -> UserIdentity:
        data = await self._api.get(
            f"/users/{quote(user_id, safe='')}",
            token=token,
            error_message="Failed to load user profile",
        )
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            data = data["user"]
        return parse_payload(UserIdentity, data, context="user profile")

    async def _store_user(self, token: str, fresh: UserIdentity) -> Result[UserIdentity]:
        if self._session.token != token:
            logger.debug("Session changed while reading the profile; dropping result")
            return Result.discarded()
        if not await self._session.set_auth_data(token, fresh):
            return self._fail(PersistenceFailure("Unable to save the session, please sign in again"))
        return Result.success(fresh)

    async def _authenticate(self, path: str, request: BaseModel, error_message: str) -> Result[UserIdentity]:
        try:
            data = await self._api.post(
                path,
                json=request.model_dump(mode="json", by_alias=True),
                error_message=error_message,
            )
            response = parse_payload(AuthResponse, data, context="auth response")
        except ClientError as exc:
            return self._fail(exc)

        if not await self._session.set_auth_data(response.token, response.user):
            return self._fail(PersistenceFailure("Unable to save the session, please sign in again"))
        logger.info("Signed in as user %s", response.user.id)
        return Result.success(response.user)

    def _fail(self, exc: ClientError) -> Result[UserIdentity]:
        logger.warning("Authentication step failed: %s", exc)
        self._notifications.error(str(exc))
        return Result.failure(exc)


__all__ = ["AuthService"]
