"""One-shot authenticated server mutations (delete, restore, approve, refund, ...).

Each concrete action is described by an :class:`ActionSpec`; :class:`AsyncAction`
runs it with the same sequence every time: preconditions, ``is_loading``, request,
exactly one notification, then a quiet refresh of the dependent stores.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from ..clients import ApiClient, parse_payload
from ..constants import FORBIDDEN_DETAIL
from ..errors import ClientError, Unauthenticated, ValidationFailed
from ..results import Result
from ..schemas import UserIdentity, UserRole
from .notification_channel import NotificationChannel
from .resource_store import ResourceStore
from .session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionSpec:
    name: str
    method: str
    path: str
    success_message: str
    error_message: str
    # Adds ``creatorId`` (the session user) to the body; the server checks ownership
    creator_scoped: bool = False
    payload_model: type[BaseModel] | None = None
    response_model: Any = None
    # Key of the response body holding the object to return, e.g. "product"
    result_key: str | None = None
    required_roles: frozenset[UserRole] = field(default_factory=frozenset)

    @property
    def targeted(self) -> bool:
        return "{target_id}" in self.path


def _validation_message(exc: ValidationError) -> tuple[str, list[str]]:
    fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
    first = exc.errors()[0]["msg"] if exc.errors() else "Invalid input"
    return first, fields


class AsyncAction:
    """Runs one :class:`ActionSpec`; no state is carried from one call to the next."""

    def __init__(
        self,
        spec: ActionSpec,
        *,
        session: SessionStore,
        api: ApiClient,
        notifications: NotificationChannel,
        refresh: Sequence[ResourceStore[Any]] = (),
    ) -> None:
        self.spec = spec
        self._session = session
        self._api = api
        self._notifications = notifications
        self._refresh = tuple(refresh)
        self._pending = 0
        self.error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    async def run(self, target_id: str | None = None, **payload: Any) -> Result[Any]:
        spec = self.spec
        try:
            token, user = self._check_session()
            body = self._build_body(user, payload)
            path = self._build_path(target_id)
        except ClientError as exc:
            return self._fail(exc)

        self._pending += 1
        self.error = None
        failure: ClientError | None = None
        try:
            data = await self._api.request(
                spec.method,
                path,
                token=token,
                json=body,
                error_message=spec.error_message,
            )
            result = self._parse(data)
        except ClientError as exc:
            failure = exc
        finally:
            self._pending -= 1

        if failure is not None:
            return self._fail(failure)

        self._notifications.success(self._success_message(data))
        for store in self._refresh:
            await store.reload(notify=False)
        return Result.success(result)

    def _check_session(self) -> tuple[str, UserIdentity]:
        token = self._session.require_token()
        user = self._session.require_user()
        if self.spec.creator_scoped and not user.id:
            raise Unauthenticated()
        if self.spec.required_roles and user.role not in self.spec.required_roles:
            raise Unauthenticated(FORBIDDEN_DETAIL)
        return token, user

    def _build_body(self, user: UserIdentity, payload: dict[str, Any]) -> dict[str, Any] | None:
        spec = self.spec
        body: dict[str, Any] | None = None
        if spec.payload_model is not None:
            try:
                model = spec.payload_model.model_validate(payload)
            except ValidationError as exc:
                message, fields = _validation_message(exc)
                raise ValidationFailed(message, fields=fields) from exc
            body = model.model_dump(mode="json", by_alias=True, exclude_none=True)
        elif payload:
            body = dict(payload)
        if spec.creator_scoped:
            body = {**(body or {}), "creatorId": user.id}
        return body

    def _build_path(self, target_id: str | None) -> str:
        if not self.spec.targeted:
            return self.spec.path
        if not target_id:
            raise ValidationFailed("Target id is required", fields=["target_id"])
        return self.spec.path.format(target_id=quote(str(target_id), safe=""))

    def _parse(self, data: Any) -> Any:
        spec = self.spec
        if spec.result_key and isinstance(data, dict):
            data = data.get(spec.result_key)
        if spec.response_model is None or data is None:
            return data
        return parse_payload(spec.response_model, data, context=spec.name)

    def _success_message(self, data: Any) -> str:
        if isinstance(data, dict):
            message = data.get("message")
            if isinstance(message, str) and message.strip():
                return message.strip()
        return self.spec.success_message

    def _fail(self, exc: ClientError) -> Result[Any]:
        logger.warning("Action %s failed: %s", self.spec.name, exc)
        self.error = str(exc)
        self._notifications.error(str(exc))
        return Result.failure(exc)


__all__ = ["ActionSpec", "AsyncAction"]
