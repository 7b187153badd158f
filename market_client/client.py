"""Composition root: one shared instance of every store, action and service."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from .clients import ApiClient
from .config import Settings, get_settings
from .logging_config import configure_logging
from .results import Result
from .schemas import UserIdentity
from .services import (
    AdminUsersStore,
    AuthService,
    BalanceHistoryStore,
    BalanceStore,
    BlockedUsersStore,
    CatalogProductsStore,
    CategoriesStore,
    ChatPreloadOrchestrator,
    ChatsStore,
    DealActions,
    DealsStore,
    FavoritesStore,
    JsonFileStorage,
    KeyValueStorage,
    MessagesStore,
    ModerationActions,
    NotificationChannel,
    PendingProductsStore,
    ProductActions,
    SearchStore,
    Session,
    SessionStore,
    StatisticsStore,
    UserListingsStore,
    refresh_catalog,
)

logger = logging.getLogger(__name__)


class MarketplaceClient:
    """Owns the session, the notification channel and every resource store.

    All consumers share these instances. Whenever the signed-in identity changes
    (logout, guest mode, a different account) every store is cleared, so data from
    the previous session can never be shown or applied afterwards.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        storage: KeyValueStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.api = ApiClient(self.settings.api_base_url, timeout=self.settings.http_timeout, transport=transport)
        self.notifications = NotificationChannel(duration=self.settings.notification_duration)
        self.session = SessionStore(storage or JsonFileStorage(self.settings.session_storage_path))

        deps: dict[str, Any] = {"session": self.session, "api": self.api, "notifications": self.notifications}
        self.auth = AuthService(**deps)
        self.favorites = FavoritesStore(**deps)
        self.balance = BalanceStore(**deps)
        self.balance_history = BalanceHistoryStore(page_size=self.settings.balance_history_page_size, **deps)
        self.chats = ChatsStore(**deps)
        self.messages = MessagesStore(**deps)
        self.deals = DealsStore(page_size=self.settings.deals_page_size, **deps)
        self.pending_products = PendingProductsStore(**deps)
        self.blocked_users = BlockedUsersStore(page_size=self.settings.blocked_users_page_size, **deps)
        self.users = AdminUsersStore(**deps)
        self.statistics = StatisticsStore(**deps)
        self.my_listings = UserListingsStore(**deps)
        # Public data, kept across sign-in changes
        self.categories = CategoriesStore(**deps)
        self.catalog = CatalogProductsStore(**deps)
        self.search = SearchStore(**deps)

        self.products = ProductActions.build(**deps, listings=self.my_listings, balance=self.balance)
        self.deal_actions = DealActions.build(**deps, refresh=(self.deals, self.balance))
        self.moderation = ModerationActions.build(
            **deps,
            pending=self.pending_products,
            blocked=self.blocked_users,
            users=self.users,
        )

        self.preloader = ChatPreloadOrchestrator(session=self.session, chats=self.chats, messages=self.messages)

        self._stores = (
            self.favorites,
            self.balance,
            self.balance_history,
            self.chats,
            self.messages,
            self.deals,
            self.pending_products,
            self.blocked_users,
            self.users,
            self.statistics,
            self.my_listings,
        )
        self._identity: tuple[bool, str | None] = (False, None)
        # Registered before the preloader so stores are reset before a preload starts
        self._unsubscribe = self.session.subscribe(self._on_session)

    async def start(self) -> Session:
        """Restore the persisted session and begin preloading chats once signed in."""

        configure_logging(self.settings.log_level)
        session = await self.session.load_auth_data()
        self.preloader.attach()
        logger.info("Client started (%s)", session.status)
        return session

    async def login(self, email: str, password: str) -> Result[UserIdentity]:
        return await self.auth.login(email, password)

    async def register(self, email: str, password: str, name: str) -> Result[UserIdentity]:
        return await self.auth.register(email, password, name)

    async def update_profile(self, name: str, phone: str) -> Result[UserIdentity]:
        return await self.auth.update_profile(name, phone)

    async def refresh_catalog(self) -> bool:
        return await refresh_catalog(self.categories, self.catalog)

    async def logout(self) -> None:
        await self.session.clear_auth_data()

    async def skip_auth(self) -> None:
        await self.session.skip_auth()

    def reset_stores(self) -> None:
        for store in self._stores:
            store.clear()

    async def aclose(self) -> None:
        self.preloader.detach()
        self._unsubscribe()
        self.notifications.close()
        await self.api.aclose()

    async def __aenter__(self) -> "MarketplaceClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _on_session(self, session: Session) -> None:
        identity = (session.is_authenticated, session.user_id)
        if identity == self._identity:
            return
        logger.debug("Session identity changed from %s to %s; clearing stores", self._identity, identity)
        self._identity = identity
        self.reset_stores()


__all__ = ["MarketplaceClient"]
