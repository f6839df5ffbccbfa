"""Review submission, moderation, search and the favorites relation.

A review's ``isFavoriteBy`` emails and each user's ``favorites`` review ids
describe the same relation from both sides. The two collections are updated
with separate, idempotent operations (``$addToSet`` / ``$pull``);
:func:`reconcile_favorites` repairs any drift left by a partial failure.
"""

import logging
import re
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from pymongo import ReturnDocument
from pymongo.database import Database

from database import REVIEWS, USERS, create_document, get_documents, sanitize, to_obj_id, utcnow
from errors import Forbidden, InvalidInput, NotFound
from schemas import REVIEW_STATUSES, CreateReviewRequest, Review, UpdateReviewRequest

logger = logging.getLogger(__name__)


def _load_review(db: Database, review_id: str) -> Dict[str, Any]:
    review = db[REVIEWS].find_one({"_id": to_obj_id(review_id)})
    if not review:
        raise NotFound("Review not found")
    return review


def _is_admin(db: Database, email: str) -> bool:
    user = db[USERS].find_one({"email": email}, {"role": 1})
    return bool(user) and user.get("role") == "admin"


def _check_status(status: str) -> None:
    if status not in REVIEW_STATUSES:
        raise InvalidInput("Invalid status. Must be approved, rejected, or pending")


# Submission and ownership

def create_review(db: Database, email: str, payload: CreateReviewRequest) -> Dict[str, Any]:
    if payload.userEmail != email:
        raise Forbidden("forbidden access", detail="Reviews can only be posted as yourself")

    review = Review(**payload.model_dump(exclude={"status"}), status="pending", isFavoriteBy=[])
    review_id = create_document(db, REVIEWS, review)
    logger.info("%s submitted review %s for moderation", email, review_id)
    return sanitize(db[REVIEWS].find_one({"_id": to_obj_id(review_id)}))


def get_review(db: Database, review_id: str) -> Dict[str, Any]:
    return sanitize(_load_review(db, review_id))


def update_review(db: Database, review_id: str, email: str, payload: UpdateReviewRequest) -> Dict[str, Any]:
    review = _load_review(db, review_id)
    # Admins have no override here: only the author edits content.
    if review.get("userEmail") != email:
        raise Forbidden("forbidden access", detail="Only the author can edit this review")

    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise InvalidInput("Nothing to update")
    changes["updatedAt"] = utcnow()

    result = db[REVIEWS].update_one({"_id": review["_id"]}, {"$set": changes})
    return {"message": "Review updated", "modifiedCount": result.modified_count}


def delete_review(db: Database, review_id: str, email: str) -> Dict[str, Any]:
    review = _load_review(db, review_id)
    if review.get("userEmail") != email and not _is_admin(db, email):
        raise Forbidden("forbidden access", detail="Only the author or an admin can delete this review")

    canonical_id = str(review["_id"])
    result = db[REVIEWS].delete_one({"_id": review["_id"]})
    db[USERS].update_many({"favorites": canonical_id}, {"$pull": {"favorites": canonical_id}})
    logger.info("%s deleted review %s", email, canonical_id)
    return {"message": "Review deleted", "deletedCount": result.deleted_count}


# Moderation and listing

def set_status(db: Database, review_id: str, status: str) -> Dict[str, Any]:
    _check_status(status)
    result = db[REVIEWS].update_one(
        {"_id": to_obj_id(review_id)},
        {"$set": {"status": status, "updatedAt": utcnow()}},
    )
    if result.matched_count == 0:
        raise NotFound("Review not found")
    logger.info("Review %s marked %s", review_id, status)
    return {"message": f"Review {status} successfully", "modifiedCount": result.modified_count}


def list_approved(db: Database) -> List[Dict[str, Any]]:
    return get_documents(db, REVIEWS, {"status": "approved"})


def list_pending(db: Database) -> List[Dict[str, Any]]:
    return get_documents(db, REVIEWS, {"status": "pending"})


def list_all(db: Database, status: Optional[str] = None) -> List[Dict[str, Any]]:
    if status:
        _check_status(status)
        return get_documents(db, REVIEWS, {"status": status})
    return get_documents(db, REVIEWS)


def list_by_owner(db: Database, email: str) -> List[Dict[str, Any]]:
    return get_documents(db, REVIEWS, {"userEmail": email})


def search_reviews(db: Database, q: Optional[str]) -> List[Dict[str, Any]]:
    if q is None or not q.strip():
        raise InvalidInput("Search query is required", detail="Provide the 'q' query parameter")
    pattern = re.escape(q.strip())
    return get_documents(
        db,
        REVIEWS,
        {"foodName": {"$regex": pattern, "$options": "i"}, "status": "approved"},
    )


# Favorites

def toggle_favorite(db: Database, review_id: str, email: str) -> Dict[str, Any]:
    """Flip ``email``'s favorite mark on a review, updating both sides."""
    review = _load_review(db, review_id)
    if not db[USERS].find_one({"email": email}, {"_id": 1}):
        raise NotFound("User not found")

    # Ids are stored in the lower-case form bson renders, whatever the client sent.
    canonical_id = str(review["_id"])
    if email in review.get("isFavoriteBy", []):
        updated = db[REVIEWS].find_one_and_update(
            {"_id": review["_id"]},
            {"$pull": {"isFavoriteBy": email}},
            return_document=ReturnDocument.AFTER,
        )
        db[USERS].update_one({"email": email}, {"$pull": {"favorites": canonical_id}})
        is_favorite = False
    else:
        updated = db[REVIEWS].find_one_and_update(
            {"_id": review["_id"]},
            {"$addToSet": {"isFavoriteBy": email}},
            return_document=ReturnDocument.AFTER,
        )
        db[USERS].update_one({"email": email}, {"$addToSet": {"favorites": canonical_id}})
        is_favorite = True

    if updated is None:
        # Deleted between the read and the update.
        raise NotFound("Review not found")

    logger.info("%s %s review %s", email, "favorited" if is_favorite else "unfavorited", canonical_id)
    return {
        "reviewId": canonical_id,
        "isFavorite": is_favorite,
        "favoriteCount": len(updated.get("isFavoriteBy", [])),
    }


def reconcile_favorites(db: Database) -> Dict[str, int]:
    """Rebuild users' ``favorites`` from the reviews' ``isFavoriteBy`` sets.

    Emails listed on reviews that have no user record are removed from the
    review.
    """
    expected: Dict[str, Set[str]] = defaultdict(set)
    for review in db[REVIEWS].find({}, {"isFavoriteBy": 1}):
        for email in review.get("isFavoriteBy", []):
            expected[email].add(str(review["_id"]))

    users_repaired = 0
    for user in db[USERS].find({}, {"email": 1, "favorites": 1}):
        wanted = expected.pop(user["email"], set())
        if set(user.get("favorites", [])) != wanted:
            db[USERS].update_one({"_id": user["_id"]}, {"$set": {"favorites": sorted(wanted)}})
            users_repaired += 1

    orphaned = 0
    for email, review_ids in expected.items():
        for review_id in review_ids:
            db[REVIEWS].update_one({"_id": to_obj_id(review_id)}, {"$pull": {"isFavoriteBy": email}})
            orphaned += 1

    logger.info("Favorites reconciled: %d user(s) repaired, %d orphan(s) removed", users_repaired, orphaned)
    return {"usersRepaired": users_repaired, "orphanedFavorites": orphaned}
