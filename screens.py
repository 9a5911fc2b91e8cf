import logging
from typing import Any, Dict, List, Optional

from schemas import (
    AdminSnapshot,
    CreateStoreRequest,
    DashboardStats,
    Identifier,
    OwnerStore,
    RateStoreRequest,
    SignupRequest,
    Store,
    UpdateRoleRequest,
    User,
)
from view_sync import MutationOutcome, ViewSynchronizer

logger = logging.getLogger(__name__)

# Endpoints
USER_STORES = "/api/user/stores"
USER_RATINGS = "/api/user/ratings"
OWNER_DASHBOARD = "/api/owner/dashboard"
ADMIN_DASHBOARD = "/api/admin/dashboard"
ADMIN_USERS = "/api/admin/users"
ADMIN_STORES = "/api/admin/stores"
AUTH_SIGNUP = "/api/auth/signup"

NEW_STORE_KEY = ("store", "new")
NEW_USER_KEY = ("user", "new")


def _items(body: Any, key: str) -> List[Any]:
    if isinstance(body, dict) and isinstance(body.get(key), list):
        return body[key]
    return []


def empty_store_form() -> Dict[str, str]:
    return {"name": "", "email": "", "address": "", "owner_id": ""}


class UserStoresScreen(ViewSynchronizer):
    """Store list for end users, with their own rating per store."""

    required_role = "user"
    load_fallback = "Failed to load stores. Please try again later."

    async def load(self) -> List[Store]:
        body = await self.api.get(USER_STORES)
        return [Store.model_validate(s) for s in _items(body, "stores")]

    @property
    def stores(self) -> List[Store]:
        return self.data or []

    def is_submitting(self, store_id: Identifier) -> bool:
        return self.guard.is_busy(store_id)

    async def submit_rating(self, store_id: Identifier, rating: int) -> MutationOutcome:
        async def write(payload):
            return await self.api.post(USER_RATINGS, json=RateStoreRequest.model_validate(payload).model_dump())

        return await self.mutate(
            store_id,
            "rating",
            {"store_id": store_id, "rating": rating},
            write,
            fallback="Failed to submit rating. Please try again.",
        )


class OwnerDashboardScreen(ViewSynchronizer):
    required_role = "owner"
    load_fallback = "Failed to load your stores. Please try again later."

    async def load(self) -> List[OwnerStore]:
        body = await self.api.get(OWNER_DASHBOARD)
        return [OwnerStore.model_validate(s) for s in _items(body, "stores")]

    @property
    def stores(self) -> List[OwnerStore]:
        return self.data or []


class AdminDashboardScreen(ViewSynchronizer):
    """Stats, users and stores for admins, plus store creation and role management.

    Guard keys are namespaced tuples, ``("user", id)`` and ``("store", id)``,
    since user and store ids can collide.
    """

    required_role = "admin"
    load_fallback = "Failed to load admin dashboard"

    def __init__(self, api, session):
        super().__init__(api, session)
        self.new_store: Dict[str, str] = empty_store_form()

    async def load(self) -> AdminSnapshot:
        stats = await self.api.get(ADMIN_DASHBOARD)
        users = await self.api.get(ADMIN_USERS)
        stores = await self.api.get(ADMIN_STORES)
        return AdminSnapshot(
            stats=DashboardStats.model_validate(stats or {}),
            users=[User.model_validate(u) for u in _items(users, "users")],
            stores=[Store.model_validate(s) for s in _items(stores, "stores")],
        )

    @property
    def stats(self) -> Optional[DashboardStats]:
        return self.data.stats if self.data is not None else None

    @property
    def users(self) -> List[User]:
        return self.data.users if self.data is not None else []

    @property
    def stores(self) -> List[Store]:
        return self.data.stores if self.data is not None else []

    @property
    def owners(self) -> List[User]:
        return [u for u in self.users if u.role == "owner"]

    def is_updating(self, user_id: Identifier) -> bool:
        return self.guard.is_busy(("user", user_id))

    def reset_store_form(self) -> None:
        self.new_store = empty_store_form()
        if self.active_form == "create_store":
            self.field_errors = {}
            self.active_form = None

    def after_write(self, form_kind: str, result: Any) -> None:
        if form_kind == "create_store":
            self.new_store = empty_store_form()
        elif form_kind == "create_user" and isinstance(result, dict):
            created = result.get("user") or {}
            if created.get("role") == "owner" and created.get("id") is not None:
                self.new_store["owner_id"] = str(created["id"])
                logger.debug("Pre-selected new owner %s for the store form", created["id"])

    async def create_store(self, fields: Optional[Dict[str, Any]] = None) -> MutationOutcome:
        if fields is not None:
            self.new_store = {**empty_store_form(), **fields}

        async def write(payload):
            return await self.api.post(ADMIN_STORES, json=CreateStoreRequest.model_validate(payload).model_dump())

        return await self.mutate(
            NEW_STORE_KEY, "create_store", self.new_store, write, fallback="Failed to create store",
        )

    async def change_role(self, user_id: Identifier, role: str) -> MutationOutcome:
        async def write(payload):
            return await self.api.put(f"{ADMIN_USERS}/{user_id}", json=UpdateRoleRequest.model_validate(payload).model_dump())

        return await self.mutate(
            ("user", user_id), "change_role", {"role": role}, write, fallback="Failed to update user role",
        )

    async def promote_user(self, user_id: Identifier, role: str = "owner") -> MutationOutcome:
        """Change an existing user's role; a new owner is pre-selected in the store form."""
        outcome = await self.change_role(user_id, role)
        if outcome is MutationOutcome.SUBMITTED and role == "owner":
            self.new_store["owner_id"] = str(user_id)
        return outcome

    async def create_user(self, fields: Dict[str, Any]) -> MutationOutcome:
        """Create an account with the chosen role through the signup endpoint.

        The token returned for the new account is ignored; the admin session
        stays in place.
        """
        async def write(payload):
            return await self.api.post(AUTH_SIGNUP, json=SignupRequest.model_validate(payload).model_dump())

        return await self.mutate(
            NEW_USER_KEY, "create_user", fields, write, fallback="Failed to create and promote user",
        )
