import hashlib
import time
from supabase import Client
from circlebuy.modules.auth.schemas import (
    LoginRequest, RegisterRequest, RefreshRequest, TokenResponse, RegisterResponse
)
from circlebuy.config.settings import settings
from circlebuy.database.supabase_client import new_auth_client
from fastapi import HTTPException
from typing import Any, Callable, Dict, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class TokenCache:
    """Verified users keyed by a digest of their bearer token.

    Bursts of requests carrying the same token hit Supabase Auth once per ttl.
    """

    def __init__(self, ttl_sec: int, max_size: int):
        self.ttl_sec = ttl_sec
        self.max_size = max_size
        self._entries: Dict[str, Tuple[Dict[str, Any], float]] = {}

    @staticmethod
    def _key(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(self._key(token))
        if entry is None:
            return None
        user, expires_at = entry
        if time.monotonic() >= expires_at:
            self._entries.pop(self._key(token), None)
            return None
        return user

    def put(self, token: str, user: Dict[str, Any]):
        now = time.monotonic()
        if len(self._entries) >= self.max_size:
            self._entries = {k: v for k, v in self._entries.items() if v[1] > now}
        if len(self._entries) < self.max_size:
            self._entries[self._key(token)] = (user, now + self.ttl_sec)

    def discard(self, token: str):
        self._entries.pop(self._key(token), None)

    def clear(self):
        self._entries.clear()


token_cache = TokenCache(settings.auth_cache_ttl_sec, settings.auth_cache_max_size)


def clear_auth_cache():
    token_cache.clear()


def _mentions(exc: Exception, *needles: str) -> bool:
    text = str(exc).lower()
    return any(n in text for n in needles)


def _token_response(auth_response, fallback_email: str) -> TokenResponse:
    session = auth_response.session
    return TokenResponse(
        access_token=session.access_token,
        refresh_token=getattr(session, "refresh_token", None),
        expires_in=getattr(session, "expires_in", None),
        user_id=auth_response.user.id,
        email=auth_response.user.email or fallback_email
    )


class AuthService:
    """Sign-in flows run on a fresh client from client_factory; the shared
    clients only verify tokens, revoke sessions and write profiles."""

    def __init__(
        self,
        supabase: Client,
        admin_client: Client = None,
        client_factory: Callable[[], Client] = new_auth_client
    ):
        self.supabase = supabase
        self.admin_client = admin_client or supabase
        self.client_factory = client_factory

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Sign up with Supabase Auth and write the matching profiles row with the chosen role"""
        metadata = {"role": register_data.role, "full_name": register_data.full_name}
        try:
            auth_response = self.client_factory().auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {"data": {k: v for k, v in metadata.items() if v}}
            })
        except Exception as e:
            if _mentions(e, "already registered", "already exists"):
                raise HTTPException(status_code=400, detail="An account with this email already exists")
            logger.error(f"Sign-up failed for {register_data.email}: {e}")
            raise HTTPException(status_code=502, detail="Registration is unavailable, try again later")

        user = auth_response.user
        if not user:
            raise HTTPException(status_code=400, detail="Registration was not accepted")

        email = user.email or register_data.email
        # Service client: row-level security keeps users from writing their own role
        self.admin_client.table("profiles").upsert({
            "id": user.id,
            "email": email,
            "full_name": register_data.full_name,
            "role": register_data.role
        }, on_conflict="id").execute()
        logger.info(f"Registered {register_data.role} {user.id}")

        return RegisterResponse(
            user_id=user.id,
            email=email,
            role=register_data.role,
            message="Account created"
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        try:
            auth_response = self.client_factory().auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })
        except Exception as e:
            if _mentions(e, "invalid", "credentials", "not confirmed"):
                raise HTTPException(status_code=401, detail="Invalid email or password")
            logger.error(f"Sign-in failed for {login_data.email}: {e}")
            raise HTTPException(status_code=502, detail="Login is unavailable, try again later")

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid email or password")
        return _token_response(auth_response, login_data.email)

    def refresh(self, refresh_data: RefreshRequest) -> TokenResponse:
        """Exchange a refresh token for a new access token"""
        try:
            auth_response = self.client_factory().auth.refresh_session(refresh_data.refresh_token)
        except Exception as e:
            logger.info(f"Refresh rejected: {e}")
            raise HTTPException(status_code=401, detail="Session expired, please sign in again")
        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Session expired, please sign in again")
        return _token_response(auth_response, auth_response.user.email or "")

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Resolve a bearer token to the Supabase user it belongs to"""
        cached = token_cache.get(token)
        if cached is not None:
            return cached
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.debug(f"Token rejected: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user = user_response.user
        user_data = {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
        }
        token_cache.put(token, user_data)
        return user_data

    def logout(self, token: str) -> bool:
        """Revoke the refresh token of the session this access token belongs to"""
        token_cache.discard(token)
        try:
            self.admin_client.auth.admin.sign_out(token, "local")
        except Exception as e:
            logger.warning(f"Supabase sign_out failed: {e}")
            return False
        return True
