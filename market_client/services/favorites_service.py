"""The signed-in user's favorite listings, with optimistic add and remove."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote
from uuid import uuid4

from ..clients import parse_payload
from ..constants import PLACEHOLDER_ID_PREFIX
from ..errors import Unauthenticated, ValidationFailed
from ..results import Result
from ..schemas import Favorite, FavoriteCreate
from .resource_store import CollectionStore, MutationAction

logger = logging.getLogger(__name__)


class FavoritesStore(CollectionStore[Favorite]):
    name = "favorites"

    async def _load(self, token: str | None, **params: Any) -> list[Favorite]:
        user = self._session.require_user()
        data = await self._api.get(
            f"/favorites/user/{quote(user.id, safe='')}",
            token=token,
            error_message="Failed to load favorites",
        )
        return parse_payload(list[Favorite], data or [], context="favorites")

    def find_by_product(self, product_id: str) -> Favorite | None:
        for favorite in self.data:
            if favorite.product_ref == product_id:
                return favorite
        return None

    def is_favorite(self, product_id: str) -> bool:
        return self.find_by_product(product_id) is not None

    async def add(self, product_id: str) -> Result[Favorite]:
        """Show ``product_id`` as a favorite immediately, then confirm with the server."""

        try:
            user = self._session.require_user()
        except Unauthenticated as exc:
            return self._refuse(exc)
        if not product_id:
            return self._refuse(ValidationFailed("Product id is required", fields=["product_id"]))
        if self.is_favorite(product_id):
            return self._refuse(ValidationFailed("This listing is already in your favorites"))

        placeholder = Favorite(
            id=f"{PLACEHOLDER_ID_PREFIX}{uuid4().hex}",
            product_id=product_id,
            user_id=user.id,
            created_at=datetime.now(timezone.utc),
        )
        body = FavoriteCreate(user_id=user.id, product_id=product_id).model_dump(by_alias=True)

        async def _commit(token: str) -> Favorite:
            data = await self._api.post(
                "/favorites",
                token=token,
                json=body,
                error_message="Failed to add to favorites",
            )
            return parse_payload(Favorite, data, context="favorite")

        return await self.mutate(MutationAction.ADD, placeholder, _commit, success_message="Added to favorites")

    async def remove(self, favorite_id: str) -> Result[Favorite]:
        if favorite_id.startswith(PLACEHOLDER_ID_PREFIX):
            return self._refuse(ValidationFailed("This favorite is still being saved"))

        async def _commit(token: str) -> None:
            await self._api.delete(
                f"/favorites/{quote(favorite_id, safe='')}",
                token=token,
                error_message="Failed to remove from favorites",
            )
            return None

        return await self.mutate(MutationAction.REMOVE, favorite_id, _commit, success_message="Removed from favorites")


__all__ = ["FavoritesStore"]
