"""Unit tests for :mod:`review_service` moderation, ownership and favorites rules."""

import pytest

import review_service
from database import REVIEWS, USERS
from errors import Forbidden, InvalidInput, NotFound
from schemas import CreateReviewRequest, UpdateReviewRequest
from tests.support import add_review, add_user, load_review, load_user


def _names(reviews):
    return sorted(r["foodName"] for r in reviews)


def test_create_review_forces_pending(db) -> None:
    payload = CreateReviewRequest(userEmail="a@x.com", foodName="Ramen", rating=5, status="approved")

    review = review_service.create_review(db, "a@x.com", payload)

    assert review["status"] == "pending"
    assert review["isFavoriteBy"] == []
    assert review["createdAt"] is not None
    assert load_review(db, review["id"])["status"] == "pending"


def test_create_review_rejects_forged_author(db) -> None:
    payload = CreateReviewRequest(userEmail="victim@x.com", foodName="Ramen")

    with pytest.raises(Forbidden):
        review_service.create_review(db, "a@x.com", payload)

    assert db[REVIEWS].count_documents({}) == 0


def test_update_review_is_owner_only(db) -> None:
    add_user(db, "root@x.com", role="admin")
    review_id = add_review(db, "a@x.com", "Ramen")
    payload = UpdateReviewRequest(foodName="Ramen Bowl")

    with pytest.raises(Forbidden):
        review_service.update_review(db, review_id, "b@x.com", payload)
    with pytest.raises(Forbidden):
        review_service.update_review(db, review_id, "root@x.com", payload)

    review_service.update_review(db, review_id, "a@x.com", payload)
    assert load_review(db, review_id)["foodName"] == "Ramen Bowl"


def test_update_review_keeps_status(db) -> None:
    review_id = add_review(db, "a@x.com", "Ramen", status="approved")

    review_service.update_review(db, review_id, "a@x.com", UpdateReviewRequest(reviewText="Rich broth"))

    review = load_review(db, review_id)
    assert review["status"] == "approved"
    assert review["reviewText"] == "Rich broth"


def test_update_missing_review(db) -> None:
    with pytest.raises(NotFound):
        review_service.update_review(db, "0" * 24, "a@x.com", UpdateReviewRequest(foodName="X"))


def test_delete_review_owner_or_admin(db) -> None:
    add_user(db, "root@x.com", role="admin")
    add_user(db, "b@x.com")
    first = add_review(db, "a@x.com", "Ramen")
    second = add_review(db, "a@x.com", "Pho")

    with pytest.raises(Forbidden):
        review_service.delete_review(db, first, "b@x.com")

    assert review_service.delete_review(db, first, "a@x.com")["deletedCount"] == 1
    assert review_service.delete_review(db, second, "root@x.com")["deletedCount"] == 1
    assert db[REVIEWS].count_documents({}) == 0


def test_delete_review_removes_it_from_favorites(db) -> None:
    add_user(db, "b@x.com")
    review_id = add_review(db, "a@x.com", "Ramen")
    review_service.toggle_favorite(db, review_id, "b@x.com")

    review_service.delete_review(db, review_id, "a@x.com")

    assert load_user(db, "b@x.com")["favorites"] == []


def test_set_status_validates_literal(db) -> None:
    review_id = add_review(db, "a@x.com")

    with pytest.raises(InvalidInput):
        review_service.set_status(db, review_id, "published")
    with pytest.raises(NotFound):
        review_service.set_status(db, "0" * 24, "approved")
    with pytest.raises(InvalidInput):
        review_service.set_status(db, "bogus", "approved")


def test_set_status_allows_any_transition(db) -> None:
    review_id = add_review(db, "a@x.com")

    review_service.set_status(db, review_id, "approved")
    review_service.set_status(db, review_id, "pending")

    assert load_review(db, review_id)["status"] == "pending"


def test_approval_moves_review_between_lists(db) -> None:
    review_id = add_review(db, "a@x.com", "Ramen")
    assert _names(review_service.list_pending(db)) == ["Ramen"]
    assert review_service.list_approved(db) == []

    review_service.set_status(db, review_id, "approved")

    assert _names(review_service.list_approved(db)) == ["Ramen"]
    assert review_service.list_pending(db) == []


def test_list_all_filters_by_optional_status(db) -> None:
    add_review(db, "a@x.com", "Ramen", status="approved")
    add_review(db, "a@x.com", "Pho", status="rejected")
    add_review(db, "b@x.com", "Tacos")

    assert _names(review_service.list_all(db)) == ["Pho", "Ramen", "Tacos"]
    assert _names(review_service.list_all(db, "rejected")) == ["Pho"]
    with pytest.raises(InvalidInput):
        review_service.list_all(db, "archived")


def test_list_by_owner_returns_every_status(db) -> None:
    add_review(db, "a@x.com", "Ramen", status="approved")
    add_review(db, "a@x.com", "Pho", status="rejected")
    add_review(db, "b@x.com", "Tacos")

    assert _names(review_service.list_by_owner(db, "a@x.com")) == ["Pho", "Ramen"]


def test_search_is_case_insensitive_and_approved_only(db) -> None:
    add_review(db, "a@x.com", "Ramen Bowl", status="approved")
    add_review(db, "b@x.com", "Ramen Bowl", status="pending")
    add_review(db, "b@x.com", "Sushi", status="approved")

    results = review_service.search_reviews(db, "ram")

    assert len(results) == 1
    assert results[0]["status"] == "approved"
    assert results[0]["userEmail"] == "a@x.com"


def test_search_matches_input_literally(db) -> None:
    add_review(db, "a@x.com", "Ramen", status="approved")

    assert review_service.search_reviews(db, "R.men") == []


def test_search_requires_query(db) -> None:
    with pytest.raises(InvalidInput):
        review_service.search_reviews(db, None)
    with pytest.raises(InvalidInput):
        review_service.search_reviews(db, "   ")


def test_toggle_favorite_twice_restores_both_sides(db) -> None:
    add_user(db, "b@x.com")
    review_id = add_review(db, "a@x.com", "Ramen")

    first = review_service.toggle_favorite(db, review_id, "b@x.com")
    assert first == {"reviewId": review_id, "isFavorite": True, "favoriteCount": 1}
    assert load_review(db, review_id)["isFavoriteBy"] == ["b@x.com"]
    assert load_user(db, "b@x.com")["favorites"] == [review_id]

    second = review_service.toggle_favorite(db, review_id, "b@x.com")
    assert second["isFavorite"] is False
    assert second["favoriteCount"] == 0
    assert load_review(db, review_id)["isFavoriteBy"] == []
    assert load_user(db, "b@x.com")["favorites"] == []


def test_toggle_favorite_does_not_duplicate_user_side(db) -> None:
    add_user(db, "b@x.com")
    review_id = add_review(db, "a@x.com", "Ramen")
    # Leftover from an earlier partial failure: only the user side was written.
    db[USERS].update_one({"email": "b@x.com"}, {"$set": {"favorites": [review_id]}})

    review_service.toggle_favorite(db, review_id, "b@x.com")

    assert load_user(db, "b@x.com")["favorites"] == [review_id]
    assert load_review(db, review_id)["isFavoriteBy"] == ["b@x.com"]


def test_toggle_favorite_missing_review_or_user(db) -> None:
    review_id = add_review(db, "a@x.com", "Ramen")

    with pytest.raises(NotFound):
        review_service.toggle_favorite(db, "0" * 24, "b@x.com")
    with pytest.raises(NotFound):
        review_service.toggle_favorite(db, review_id, "ghost@x.com")


def test_reconcile_favorites_repairs_drift(db) -> None:
    add_user(db, "b@x.com")
    add_user(db, "c@x.com")
    ramen = add_review(db, "a@x.com", "Ramen")
    pho = add_review(db, "a@x.com", "Pho")
    db[REVIEWS].update_one({"foodName": "Ramen"}, {"$set": {"isFavoriteBy": ["b@x.com", "gone@x.com"]}})
    db[USERS].update_one({"email": "c@x.com"}, {"$set": {"favorites": [pho]}})

    result = review_service.reconcile_favorites(db)

    assert result == {"usersRepaired": 2, "orphanedFavorites": 1}
    assert load_user(db, "b@x.com")["favorites"] == [ramen]
    assert load_user(db, "c@x.com")["favorites"] == []
    assert load_review(db, ramen)["isFavoriteBy"] == ["b@x.com"]
    assert review_service.reconcile_favorites(db) == {"usersRepaired": 0, "orphanedFavorites": 0}


def test_toggle_favorite_normalises_upper_case_ids(db) -> None:
    add_user(db, "b@x.com")
    review_id = add_review(db, "a@x.com", "Ramen")

    on = review_service.toggle_favorite(db, review_id.upper(), "b@x.com")
    assert on["reviewId"] == review_id
    assert load_user(db, "b@x.com")["favorites"] == [review_id]

    review_service.toggle_favorite(db, review_id, "b@x.com")
    assert load_review(db, review_id)["isFavoriteBy"] == []
    assert load_user(db, "b@x.com")["favorites"] == []

    review_service.toggle_favorite(db, review_id.upper(), "b@x.com")
    review_service.delete_review(db, review_id.upper(), "a@x.com")
    assert load_user(db, "b@x.com")["favorites"] == []
