import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database
from pymongo.errors import PyMongoError

import review_service
import user_service
from auth import get_current_email, require_admin
from database import close_db, get_db, sanitize_url
from errors import register_exception_handlers
from identity import IdentityProvider, get_identity_provider
from schemas import (
    CreateReviewRequest,
    DeleteReviewResponse,
    DeleteUserResponse,
    FavoriteToggleResponse,
    MutationResponse,
    RegisterUserRequest,
    RegisterUserResponse,
    ReviewOut,
    UpdateProfileRequest,
    UpdateReviewRequest,
    UpdateRoleRequest,
    UpdateStatusRequest,
    UserOut,
)
from settings import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level_numeric,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    warnings = settings.optional_config_warnings()
    if warnings:
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning(f"  • {warning}")
    logger.info("Database URL: %s", sanitize_url(settings.database_url))
    logger.info("Database Name: %s", settings.database_name)
    logger.info("Identity provider: %s", settings.auth_provider)

    yield

    logger.info("Shutting down FoodieSpace API")
    close_db()


# App and CORS
app = FastAPI(title="FoodieSpace API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)


# Utility endpoints
@app.get("/")
def root():
    return {"message": "FoodieSpace server is running"}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    try:
        collections = db.list_collection_names()
        return {"backend": "ok", "database": "ok", "collections": collections}
    except PyMongoError as e:
        return {"backend": "ok", "database": f"error: {e}"}


# User Routes
@app.post("/users", response_model=RegisterUserResponse)
def register_user(payload: RegisterUserRequest, db: Database = Depends(get_db)):
    return user_service.register_user(db, payload)


@app.get("/users", response_model=List[UserOut])
def list_users(admin=Depends(require_admin), db: Database = Depends(get_db)):
    return user_service.list_users(db)


@app.patch("/users/profile", response_model=MutationResponse)
def update_profile(
    payload: UpdateProfileRequest,
    email: str = Depends(get_current_email),
    db: Database = Depends(get_db),
):
    return user_service.update_profile(db, email, payload)


@app.get("/users/{email}", response_model=UserOut)
def get_user(email: str, current_email: str = Depends(get_current_email), db: Database = Depends(get_db)):
    return user_service.get_user(db, email, current_email)


@app.patch("/users/{email}/role", response_model=MutationResponse)
def update_role(
    email: str,
    payload: UpdateRoleRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return user_service.set_role(db, email, payload.role, admin["email"])


@app.delete("/users/{user_id}", response_model=DeleteUserResponse)
def delete_user(
    user_id: str,
    admin: Dict[str, Any] = Depends(require_admin),
    db: Database = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    return user_service.delete_user(db, user_id, admin["email"], identity)


# Review Routes
# Fixed paths are registered before /reviews/{review_id} so they are not
# captured as identifiers.
@app.post("/reviews", response_model=ReviewOut)
def create_review(
    payload: CreateReviewRequest,
    email: str = Depends(get_current_email),
    db: Database = Depends(get_db),
):
    return review_service.create_review(db, email, payload)


@app.get("/reviews", response_model=List[ReviewOut])
def list_reviews(db: Database = Depends(get_db)):
    return review_service.list_approved(db)


@app.get("/reviews/my-reviews", response_model=List[ReviewOut])
def my_reviews(email: str = Depends(get_current_email), db: Database = Depends(get_db)):
    return review_service.list_by_owner(db, email)


@app.get("/reviews/search", response_model=List[ReviewOut])
def search_reviews(q: Optional[str] = Query(None), db: Database = Depends(get_db)):
    return review_service.search_reviews(db, q)


@app.get("/reviews/pending", response_model=List[ReviewOut])
def pending_reviews(admin=Depends(require_admin), db: Database = Depends(get_db)):
    return review_service.list_pending(db)


@app.get("/reviews/all", response_model=List[ReviewOut])
def all_reviews(
    status: Optional[str] = None,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
):
    return review_service.list_all(db, status)


@app.patch("/reviews/{review_id}/status", response_model=MutationResponse)
def update_review_status(
    review_id: str,
    payload: UpdateStatusRequest,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
):
    return review_service.set_status(db, review_id, payload.status)


@app.patch("/reviews/{review_id}/favorite", response_model=FavoriteToggleResponse)
def toggle_favorite(
    review_id: str,
    email: str = Depends(get_current_email),
    db: Database = Depends(get_db),
):
    return review_service.toggle_favorite(db, review_id, email)


@app.get("/reviews/{review_id}", response_model=ReviewOut)
def get_review(review_id: str, db: Database = Depends(get_db)):
    return review_service.get_review(db, review_id)


@app.put("/reviews/{review_id}", response_model=MutationResponse)
def update_review(
    review_id: str,
    payload: UpdateReviewRequest,
    email: str = Depends(get_current_email),
    db: Database = Depends(get_db),
):
    return review_service.update_review(db, review_id, email, payload)


@app.delete("/reviews/{review_id}", response_model=DeleteReviewResponse)
def delete_review(
    review_id: str,
    email: str = Depends(get_current_email),
    db: Database = Depends(get_db),
):
    return review_service.delete_review(db, review_id, email)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
