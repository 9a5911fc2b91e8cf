"""
Data Schemas for the Ratings Client

Server payloads are parsed into the Pydantic models below. Each screen keeps
only these parsed snapshots; nothing is patched locally after a write.

Payloads handled:
- session: token + signed-in user returned by login/signup
- store: stores listed for end users and admins
- owner store: a store with its raters, as seen by its owner
- user: accounts listed for admins
- dashboard stats: admin aggregate counters
"""

from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

Role = Literal["admin", "user", "owner"]
ROLES = ("user", "owner", "admin")

Identifier = Union[int, str]


class SessionUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Identifier
    name: str
    email: str
    role: Role


class Session(BaseModel):
    """Signed-in identity; its role never changes while it lives."""

    model_config = ConfigDict(frozen=True)

    token: str
    user: SessionUser

    @property
    def role(self) -> str:
        return self.user.role


class Store(BaseModel):
    id: Identifier
    name: str
    email: str
    address: Optional[str] = None
    avg_rating: float = Field(0.0, ge=0, le=5)
    ratings_count: int = Field(0, ge=0)
    owner_id: Optional[Identifier] = None
    # caller's own rating on the user screen, 0 when not rated yet
    user_rating: Optional[int] = Field(None, ge=0, le=5)

    @field_validator("avg_rating", "ratings_count", mode="before")
    @classmethod
    def _null_is_zero(cls, value):
        return 0 if value is None else value


class Rater(BaseModel):
    id: Identifier
    name: str
    email: str
    rating: int = Field(..., ge=1, le=5)
    created_at: datetime


class OwnerStore(BaseModel):
    id: Identifier = Field(..., validation_alias=AliasChoices("id", "store_id"))
    name: str = Field(..., validation_alias=AliasChoices("name", "store_name"))
    email: str
    address: Optional[str] = None
    avg_rating: float = Field(0.0, ge=0, le=5)
    ratings_count: int = Field(0, ge=0)
    raters: List[Rater] = Field(default_factory=list)

    @field_validator("avg_rating", "ratings_count", mode="before")
    @classmethod
    def _null_is_zero(cls, value):
        return 0 if value is None else value

    @property
    def recent_rating(self) -> Optional[int]:
        return self.raters[0].rating if self.raters else None


class User(BaseModel):
    id: Identifier
    name: str
    email: str
    role: Role
    address: Optional[str] = None


class DashboardStats(BaseModel):
    users_count: int = Field(0, ge=0)
    stores_count: int = Field(0, ge=0)
    ratings_count: int = Field(0, ge=0)


class AdminSnapshot(BaseModel):
    stats: DashboardStats
    users: List[User] = Field(default_factory=list)
    stores: List[Store] = Field(default_factory=list)


# Request payloads

class LoginRequest(BaseModel):
    email: str
    password: str


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=60)
    email: str
    password: str = Field(..., min_length=8, max_length=16)
    address: str = Field("", max_length=400)
    role: Role = "user"


class CreateStoreRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=60)
    email: str
    address: str = Field("", max_length=400)
    owner_id: int


class RateStoreRequest(BaseModel):
    store_id: Identifier
    rating: int = Field(..., ge=1, le=5)


class UpdateRoleRequest(BaseModel):
    role: Role
