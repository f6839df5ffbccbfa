"""
Database Schemas for the FoodieSpace review platform

MongoDB collections are described below using Pydantic models:
- users: people who signed in through the identity provider
- reviews: food reviews awaiting or past moderation

Request and response bodies for the HTTP endpoints live at the bottom of the
module. Request bodies forbid unknown fields.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["user", "admin"]
ReviewStatus = Literal["pending", "approved", "rejected"]

ROLES = ("user", "admin")
REVIEW_STATUSES = ("pending", "approved", "rejected")


class User(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=120)
    photoURL: Optional[str] = None
    role: Role = Field("user")
    favorites: List[str] = Field(default_factory=list, description="Favorited review ids")


class Review(BaseModel):
    userEmail: EmailStr = Field(..., description="Email of the author")
    userName: Optional[str] = None
    userPhoto: Optional[str] = None
    foodName: str = Field(..., min_length=1, max_length=200)
    foodImage: Optional[str] = None
    restaurantName: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=300)
    rating: Optional[float] = Field(None, ge=1, le=5)
    reviewText: Optional[str] = None
    status: ReviewStatus = Field("pending")
    isFavoriteBy: List[str] = Field(default_factory=list, description="Emails of users who favorited")


# Request/Response Models

class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid")


class RegisterUserRequest(_Request):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=120)
    photoURL: Optional[str] = None
    role: Optional[Role] = None


class RegisterUserResponse(BaseModel):
    message: str
    insertedId: Optional[str] = None


class UpdateRoleRequest(_Request):
    role: str


class UpdateProfileRequest(_Request):
    name: Optional[str] = Field(None, max_length=120)
    photoURL: Optional[str] = None


class DeleteUserResponse(BaseModel):
    message: str
    deletedUser: bool
    deletedCount: int
    deletedReviews: int


class CreateReviewRequest(_Request):
    userEmail: EmailStr
    userName: Optional[str] = None
    userPhoto: Optional[str] = None
    foodName: str = Field(..., min_length=1, max_length=200)
    foodImage: Optional[str] = None
    restaurantName: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=300)
    rating: Optional[float] = Field(None, ge=1, le=5)
    reviewText: Optional[str] = None
    # Accepted for client compatibility, always replaced with "pending".
    status: Optional[str] = None


class UpdateReviewRequest(_Request):
    userName: Optional[str] = None
    userPhoto: Optional[str] = None
    foodName: Optional[str] = Field(None, min_length=1, max_length=200)
    foodImage: Optional[str] = None
    restaurantName: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=300)
    rating: Optional[float] = Field(None, ge=1, le=5)
    reviewText: Optional[str] = None


class UpdateStatusRequest(_Request):
    status: str


class MutationResponse(BaseModel):
    message: str
    modifiedCount: int = 0


class DeleteReviewResponse(BaseModel):
    message: str
    deletedCount: int


class FavoriteToggleResponse(BaseModel):
    reviewId: str
    isFavorite: bool
    favoriteCount: int


# Output models describe stored documents, which may predate the request
# limits above, so they keep no bounds.

class ReviewOut(BaseModel):
    id: str
    userEmail: Optional[str] = None
    userName: Optional[str] = None
    userPhoto: Optional[str] = None
    foodName: Optional[str] = None
    foodImage: Optional[str] = None
    restaurantName: Optional[str] = None
    location: Optional[str] = None
    rating: Any = None
    reviewText: Optional[str] = None
    status: Optional[str] = None
    isFavoriteBy: Optional[List[str]] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class UserOut(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    photoURL: Optional[str] = None
    role: Optional[str] = None
    favorites: Optional[List[str]] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
