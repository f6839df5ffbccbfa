"""User registration, profile, role administration and cascade deletion."""

import logging
from typing import Any, Dict, List

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import REVIEWS, USERS, create_document, get_documents, sanitize, to_obj_id, utcnow
from errors import Forbidden, InvalidInput, NotFound
from identity import IdentityProvider, IdentityProviderError
from schemas import ROLES, RegisterUserRequest, UpdateProfileRequest, User

logger = logging.getLogger(__name__)


def register_user(db: Database, payload: RegisterUserRequest) -> Dict[str, Any]:
    """Insert the user unless the email is already registered."""
    if db[USERS].find_one({"email": payload.email}):
        return {"message": "User already exists", "insertedId": None}
    # The endpoint is public: an admin role may only be claimed before any admin exists.
    if payload.role == "admin" and count_admins(db) > 0:
        raise Forbidden("Admin role must be granted by an existing admin")

    user = User(
        email=payload.email,
        name=payload.name,
        photoURL=payload.photoURL,
        role=payload.role or "user",
    )
    try:
        user_id = create_document(db, USERS, user)
    except DuplicateKeyError:
        # A concurrent first sign-in won the race on the unique email index.
        return {"message": "User already exists", "insertedId": None}
    logger.info("Registered user %s with role %s", user.email, user.role)
    return {"message": "User created", "insertedId": user_id}


def get_user(db: Database, email: str, acting_email: str) -> Dict[str, Any]:
    if email != acting_email:
        actor = db[USERS].find_one({"email": acting_email})
        if not actor or actor.get("role") != "admin":
            raise Forbidden("forbidden access", detail="Users may only read their own record")
    user = db[USERS].find_one({"email": email})
    if not user:
        raise NotFound("User not found")
    return sanitize(user)


def list_users(db: Database) -> List[Dict[str, Any]]:
    return get_documents(db, USERS)


def count_admins(db: Database) -> int:
    return db[USERS].count_documents({"role": "admin"})


def set_role(db: Database, target_email: str, new_role: str, acting_email: str) -> Dict[str, Any]:
    """Change a user's role, refusing self-changes and demotion of the last admin."""
    if new_role not in ROLES:
        raise InvalidInput("Invalid role. Must be user or admin")
    if target_email == acting_email:
        raise Forbidden("You cannot change your own role")

    target = db[USERS].find_one({"email": target_email})
    if not target:
        raise NotFound("User not found")

    if target.get("role") == "admin" and new_role != "admin" and count_admins(db) <= 1:
        raise Forbidden("Cannot demote the last remaining admin")

    result = db[USERS].update_one(
        {"_id": target["_id"]},
        {"$set": {"role": new_role, "updatedAt": utcnow()}},
    )
    logger.info("%s changed role of %s to %s", acting_email, target_email, new_role)
    return {"message": f"User role updated to {new_role}", "modifiedCount": result.modified_count}


def update_profile(db: Database, email: str, payload: UpdateProfileRequest) -> Dict[str, Any]:
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise InvalidInput("Nothing to update", detail="Provide name or photoURL")
    changes["updatedAt"] = utcnow()

    result = db[USERS].update_one({"email": email}, {"$set": changes})
    if result.matched_count == 0:
        raise NotFound("User not found")
    return {"message": "Profile updated", "modifiedCount": result.modified_count}


def delete_user(db: Database, user_id: str, acting_email: str, identity: IdentityProvider) -> Dict[str, Any]:
    """Delete a user together with their reviews.

    Steps run in order without a transaction: identity account, reviews,
    favorite references to those reviews and to the user, then the user
    record. A crash part-way leaves the earlier steps applied.
    """
    oid = to_obj_id(user_id)
    target = db[USERS].find_one({"_id": oid})
    if not target:
        raise NotFound("User not found")

    email = target["email"]
    if email == acting_email:
        raise Forbidden("Admins cannot delete their own account")

    try:
        identity.delete_account(email)
    except IdentityProviderError as exc:
        # The provider record may already be gone; the local delete proceeds.
        logger.warning("Identity account deletion failed for %s: %s", email, exc.detail or exc.message)

    review_ids = [str(r["_id"]) for r in db[REVIEWS].find({"userEmail": email}, {"_id": 1})]
    reviews_result = db[REVIEWS].delete_many({"userEmail": email})
    if review_ids:
        db[USERS].update_many(
            {"favorites": {"$in": review_ids}},
            {"$pullAll": {"favorites": review_ids}},
        )
    db[REVIEWS].update_many({"isFavoriteBy": email}, {"$pull": {"isFavoriteBy": email}})

    user_result = db[USERS].delete_one({"_id": oid})
    logger.info(
        "%s deleted user %s and %d review(s)", acting_email, email, reviews_result.deleted_count
    )
    return {
        "message": "User deleted",
        "deletedUser": user_result.deleted_count == 1,
        "deletedCount": user_result.deleted_count,
        "deletedReviews": reviews_result.deleted_count,
    }


def bootstrap_admin(db: Database, email: str) -> Dict[str, Any]:
    """Promote ``email`` to admin when the system has no admin yet."""
    if count_admins(db) > 0:
        raise Forbidden("Admin already exists")
    result = db[USERS].update_one({"email": email}, {"$set": {"role": "admin", "updatedAt": utcnow()}})
    if result.matched_count == 0:
        raise NotFound("User not found", detail="Register the user before promoting it")
    logger.info("Bootstrapped %s as the first admin", email)
    return {"message": "Admin created", "email": email}
