"""Test doubles and seeding helpers shared across the suite."""

from typing import Any, Dict, List

from pymongo.database import Database

from database import REVIEWS, USERS, create_document, to_obj_id
from errors import Unauthorized
from identity import IdentityProvider, IdentityProviderError
from schemas import Review, User

TOKEN_PREFIX = "token-"


class StubIdentityProvider(IdentityProvider):
    """Accepts ``token-<email>`` bearer tokens and records account deletions."""

    name = "stub"

    def __init__(self) -> None:
        self.deleted: List[str] = []
        self.fail_deletes = False

    def verify_token(self, token: str) -> str:
        if not token.startswith(TOKEN_PREFIX):
            raise Unauthorized("unauthorized access")
        return token[len(TOKEN_PREFIX):]

    def delete_account(self, email: str) -> None:
        if self.fail_deletes:
            raise IdentityProviderError("Could not delete identity account", detail="USER_NOT_FOUND")
        self.deleted.append(email)


def auth_headers(email: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {TOKEN_PREFIX}{email}"}


def add_user(db: Database, email: str, role: str = "user") -> str:
    return create_document(db, USERS, User(email=email, role=role))


def add_review(db: Database, email: str, food_name: str = "Ramen", status: str = "pending") -> str:
    return create_document(db, REVIEWS, Review(userEmail=email, foodName=food_name, status=status))


def load_review(db: Database, review_id: str) -> Dict[str, Any]:
    return db[REVIEWS].find_one({"_id": to_obj_id(review_id)})


def load_user(db: Database, email: str) -> Dict[str, Any]:
    return db[USERS].find_one({"email": email})
