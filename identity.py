"""Identity providers that verify bearer tokens and own account records.

``FirebaseIdentityProvider`` is used in production. ``JWTIdentityProvider``
signs and verifies HS256 tokens locally and is meant for development setups
without a Firebase project.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from errors import InternalFailure, Unauthorized
from settings import AppSettings, get_settings

logger = logging.getLogger(__name__)


class IdentityProviderError(InternalFailure):
    """The identity provider could not complete a request."""


class IdentityProvider:
    name = "base"

    def verify_token(self, token: str) -> str:
        """Return the verified email for ``token`` or raise :class:`Unauthorized`."""
        raise NotImplementedError

    def delete_account(self, email: str) -> None:
        raise NotImplementedError


class FirebaseIdentityProvider(IdentityProvider):
    name = "firebase"

    def __init__(self, credentials_path: Optional[str] = None, project_id: Optional[str] = None):
        import firebase_admin
        from firebase_admin import credentials

        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            cred = (
                credentials.Certificate(credentials_path)
                if credentials_path
                else credentials.ApplicationDefault()
            )
            options = {"projectId": project_id} if project_id else None
            self._app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase identity provider initialized")

    def verify_token(self, token: str) -> str:
        from firebase_admin import auth

        try:
            decoded = auth.verify_id_token(token, app=self._app)
        except (auth.InvalidIdTokenError, auth.UserDisabledError, ValueError) as exc:
            raise Unauthorized("unauthorized access", detail=str(exc))
        except auth.CertificateFetchError as exc:
            raise IdentityProviderError("Could not verify token", detail=str(exc))

        email = decoded.get("email")
        if not email:
            raise Unauthorized("unauthorized access", detail="Token carries no email")
        return email

    def delete_account(self, email: str) -> None:
        from firebase_admin import auth, exceptions

        try:
            record = auth.get_user_by_email(email, app=self._app)
            auth.delete_user(record.uid, app=self._app)
        except (exceptions.FirebaseError, ValueError) as exc:
            raise IdentityProviderError("Could not delete identity account", detail=str(exc))
        logger.info("Deleted Firebase account for %s", email)


class JWTIdentityProvider(IdentityProvider):
    name = "jwt"

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 24 * 60):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def create_access_token(self, email: str, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode = {"sub": email, "email": email, "exp": expire}
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            raise Unauthorized("unauthorized access", detail=str(exc))
        email = payload.get("email") or payload.get("sub")
        if not email:
            raise Unauthorized("unauthorized access", detail="Token carries no email")
        return email

    def delete_account(self, email: str) -> None:
        # Local tokens have no account store behind them.
        logger.debug("No identity account to delete for %s", email)


def build_identity_provider(settings: AppSettings) -> IdentityProvider:
    if settings.auth_provider == "jwt":
        return JWTIdentityProvider(
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.access_token_expire_minutes,
        )
    return FirebaseIdentityProvider(settings.firebase_credentials, settings.firebase_project_id)


_provider: Optional[IdentityProvider] = None
_provider_lock = threading.Lock()


def get_identity_provider() -> IdentityProvider:
    """FastAPI dependency returning the process-wide identity provider."""
    global _provider
    if _provider is None:
        with _provider_lock:
            if _provider is None:
                _provider = build_identity_provider(get_settings())
    return _provider
