"""Public catalog (categories, listings, search) and the signed-in user's own listings."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from ..clients import parse_payload
from ..errors import ValidationFailed
from ..results import Result
from ..schemas import Category, Product, ProductStatus, SearchFilters
from .resource_store import CollectionStore

logger = logging.getLogger(__name__)


def _products(data: Any, context: str) -> list[Product]:
    if isinstance(data, dict):
        data = data.get("products", [])
    return parse_payload(list[Product], data or [], context=context)


class CategoriesStore(CollectionStore[Category]):
    name = "categories"
    requires_auth = False

    async def _load(self, token: str | None, **params: Any) -> list[Category]:
        data = await self._api.get("/categories", token=token, error_message="Failed to load categories")
        return parse_payload(list[Category], data or [], context="categories")


class CatalogProductsStore(CollectionStore[Product]):
    """Every published listing, as shown on the home feed."""

    name = "catalog"
    requires_auth = False

    async def _load(self, token: str | None, **params: Any) -> list[Product]:
        data = await self._api.get("/products", token=token, error_message="Failed to load listings")
        return _products(data, "listings")

    def by_category(self, category: str) -> list[Product]:
        return [product for product in self.data if product.category == category]


class SearchStore(CollectionStore[Product]):
    """Results of the latest listing search; only approved listings are returned."""

    name = "search"
    requires_auth = False

    async def fetch(self, *, notify: bool = True, **filters: Any) -> Result[list[Product]]:
        try:
            parsed = SearchFilters.model_validate({**filters, "status": ProductStatus.APPROVED})
        except ValidationError as exc:
            fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
            return self._refuse(ValidationFailed("Invalid search filters", fields=fields))
        return await super().fetch(notify=notify, **parsed.to_params())

    async def _load(self, token: str | None, **params: Any) -> list[Product]:
        data = await self._api.get(
            "/products/search",
            token=token,
            params=params,
            error_message="Failed to load listings",
        )
        return _products(data, "search results")


class UserListingsStore(CollectionStore[Product]):
    """Listings created by the signed-in user."""

    name = "my listings"

    async def _load(self, token: str | None, **params: Any) -> list[Product]:
        user = self._session.require_user()
        data = await self._api.get(
            "/products/search",
            token=token,
            params={"creatorId": user.id},
            error_message="Failed to load your listings",
        )
        return _products(data, "your listings")


async def refresh_catalog(categories: CategoriesStore, products: CatalogProductsStore) -> bool:
    """Reload categories and listings together; ``True`` when both succeeded."""

    results = await asyncio.gather(categories.fetch(notify=False), products.fetch(notify=False))
    failed = [result for result in results if not result.ok and not result.stale]
    if failed:
        logger.warning("Catalog refresh failed: %s", "; ".join(str(result.error) for result in failed))
    return not failed


__all__ = [
    "CatalogProductsStore",
    "CategoriesStore",
    "SearchStore",
    "UserListingsStore",
    "refresh_catalog",
]
