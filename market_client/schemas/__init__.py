"""Pydantic schemas for the marketplace REST payloads."""
from .auth import AuthResponse, LoginRequest, RegisterRequest, UserIdentity, UserRole
from .balance import Balance, BalanceHistoryPage, Transaction, TransactionStatus, TransactionType
from .catalog import (
    SALE_DEAL_TYPE,
    Category,
    CategoryStatistics,
    DealStatistics,
    ProductCreate,
    ProductStatus,
    SearchFilters,
    Statistics,
    UserStatistics,
)
from .common import ApiModel, Pagination, ref_id
from .deals import CreateDealRequest, Deal, DealStatus, DealsPage, DeliveryInfo, DeliveryMethod
from .favorites import Favorite, FavoriteCreate
from .messages import Chat, ChatCreate, Message, MessageSendRequest, MessageStatus
from .products import Product, ProductUpdate, RejectRequest
from .users import ProfileUpdate, UsersPage

__all__ = [
    "ApiModel",
    "AuthResponse",
    "Balance",
    "BalanceHistoryPage",
    "Category",
    "CategoryStatistics",
    "Chat",
    "ChatCreate",
    "CreateDealRequest",
    "Deal",
    "DealStatistics",
    "DealStatus",
    "DealsPage",
    "DeliveryInfo",
    "DeliveryMethod",
    "Favorite",
    "FavoriteCreate",
    "LoginRequest",
    "Message",
    "MessageSendRequest",
    "MessageStatus",
    "Pagination",
    "Product",
    "ProductCreate",
    "ProductStatus",
    "ProductUpdate",
    "ProfileUpdate",
    "RegisterRequest",
    "RejectRequest",
    "SALE_DEAL_TYPE",
    "SearchFilters",
    "Statistics",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "UserIdentity",
    "UserRole",
    "UserStatistics",
    "UsersPage",
    "ref_id",
]
