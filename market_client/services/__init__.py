"""Convenience exports for the service layer."""
from .async_action import ActionSpec, AsyncAction
from .auth_service import AuthService
from .balance_service import BalanceHistoryStore, BalanceStore
from .catalog_service import (
    CatalogProductsStore,
    CategoriesStore,
    SearchStore,
    UserListingsStore,
    refresh_catalog,
)
from .chat_service import ChatMessagesStore, ChatsStore, MessagesStore
from .deal_service import DealActions, DealsStore
from .favorites_service import FavoritesStore
from .moderation_service import (
    AdminUsersStore,
    BlockedUsersStore,
    ModerationActions,
    PendingProductsStore,
    StatisticsStore,
)
from .notification_channel import Notification, NotificationChannel, NotificationKind
from .optimistic import run_optimistic
from .persistence import JsonFileStorage, KeyValueStorage, MemoryStorage
from .preload_service import ChatPreloadOrchestrator, PreloadReport
from .product_service import ProductActions
from .resource_store import (
    CollectionStore,
    KeyedStore,
    MutationAction,
    PaginatedStore,
    ResourceSnapshot,
    ResourceStore,
)
from .session_store import Session, SessionStatus, SessionStore

__all__ = [
    "ActionSpec",
    "AdminUsersStore",
    "AsyncAction",
    "AuthService",
    "BalanceHistoryStore",
    "BalanceStore",
    "BlockedUsersStore",
    "CatalogProductsStore",
    "CategoriesStore",
    "ChatMessagesStore",
    "ChatPreloadOrchestrator",
    "ChatsStore",
    "CollectionStore",
    "DealActions",
    "DealsStore",
    "FavoritesStore",
    "JsonFileStorage",
    "KeyValueStorage",
    "KeyedStore",
    "MemoryStorage",
    "MessagesStore",
    "ModerationActions",
    "MutationAction",
    "Notification",
    "NotificationChannel",
    "NotificationKind",
    "PaginatedStore",
    "PendingProductsStore",
    "PreloadReport",
    "ProductActions",
    "ResourceSnapshot",
    "ResourceStore",
    "SearchStore",
    "Session",
    "SessionStatus",
    "SessionStore",
    "StatisticsStore",
    "UserListingsStore",
    "refresh_catalog",
    "run_optimistic",
]
