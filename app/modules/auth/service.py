import hashlib
import logging
import time
from supabase import Client
from app.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from fastapi import HTTPException
from typing import Dict, Any, Iterable, Tuple

logger = logging.getLogger(__name__)

# Short-lived token -> user cache; the dashboard fires several requests per page with the same token
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500

# (substrings of the provider's message, status, detail)
_REGISTER_ERRORS = [(("already registered", "already exists"), 400, "User already exists")]
_LOGIN_ERRORS = [(("invalid", "credentials", "not confirmed"), 401, "Invalid email or password")]


def _cache_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


def _auth_failure(action: str, exc: Exception, known: Iterable[Tuple[Tuple[str, ...], int, str]]) -> HTTPException:
    """Map an identity provider error to an HTTP error; unknown errors are a 502 naming the action"""
    message = str(exc)
    lowered = message.lower()
    for needles, status_code, detail in known:
        if any(n in lowered for n in needles):
            return HTTPException(status_code=status_code, detail=detail)
    logger.error(f"{action} failed: {message}")
    return HTTPException(status_code=502, detail=f"{action} failed: {message}")


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Sign up through Supabase Auth; the hub.profiles row comes from the sign-up trigger"""
        metadata = {"full_name": register_data.full_name} if register_data.full_name else {}
        try:
            response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {"data": metadata},
            })
        except Exception as e:
            raise _auth_failure("Registration", e, _REGISTER_ERRORS)

        if not response.user:
            raise HTTPException(status_code=400, detail="Failed to register user")
        logger.info(f"Registered {response.user.id}")
        return RegisterResponse(
            user_id=response.user.id,
            email=response.user.email or register_data.email,
            message="User registered successfully",
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        try:
            response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password,
            })
        except Exception as e:
            raise _auth_failure("Login", e, _LOGIN_ERRORS)

        if not response.user or not response.session:
            raise HTTPException(status_code=401, detail="Invalid credentials")
        return TokenResponse(
            access_token=response.session.access_token,
            user_id=response.user.id,
            email=response.user.email or login_data.email,
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Identity behind a bearer token, {id, email, user_metadata}"""
        cache_key = _cache_key(token)
        now = time.monotonic()
        cached = _AUTH_USER_CACHE.get(cache_key)
        if cached is not None:
            user_data, expiry = cached
            if now < expiry:
                return user_data
            _AUTH_USER_CACHE.pop(cache_key, None)
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")
        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        user = user_response.user
        user_data = {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
        }
        if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
            _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
        return user_data

    def logout(self, token: str) -> bool:
        """Sign out and drop the cached identity for this token"""
        _AUTH_USER_CACHE.pop(_cache_key(token), None)
        try:
            # Tokens are stateless JWTs; they stay valid until they expire
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning(f"Sign out failed: {e}")
            return False
