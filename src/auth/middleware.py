"""
Auth middleware for FastAPI.

Provides dependency injection for authenticated routes.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from src.auth.identity import AuthenticatedUser, PARENT_ROLE
from src.db.client import get_client, get_config, is_configured
from src.db.repositories import UserRepository
from src.errors import TrackerError
from src.models.user import User

logger = logging.getLogger(__name__)

# Supabase signs access tokens with HS256 and this audience
ALGORITHM = "HS256"
AUDIENCE = "authenticated"

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
  """
  Verify a Supabase access token and return its claims.

  With SUPABASE_JWT_SECRET set the signature is checked locally; otherwise
  the token is validated by asking Supabase for its user.
  """
  config = get_config()

  if config.jwt_secret:
    try:
      claims = jwt.decode(token, config.jwt_secret, algorithms=[ALGORITHM], audience=AUDIENCE)
    except JWTError as e:
      raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=f"Token validation failed: {e}",
      )
    return {
      "sub": claims["sub"],
      "email": claims.get("email"),
      "role": (claims.get("user_metadata") or {}).get("role"),
    }

  if not is_configured():
    raise HTTPException(
      status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
      detail="Database not configured"
    )

  try:
    user_response = get_client().get_user(token)
  except Exception as e:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail=f"Token validation failed: {e}"
    )

  if not user_response or not user_response.user:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail="Invalid or expired token"
    )

  user = user_response.user
  return {
    "sub": user.id,
    "email": user.email,
    "role": (user.user_metadata or {}).get("role"),
  }


def _profile_role(user_id: str) -> Optional[str]:
  """Role stored on the user's profile row, if the profile can be read."""
  if not get_config().service_key:
    return None
  try:
    profile = UserRepository(use_admin=True).get_by_id(user_id)
  except TrackerError as e:
    logger.warning("Could not load profile for %s: %s", user_id, e.detail)
    return None
  if not profile:
    return None
  try:
    return User.from_db(profile).role.value
  except (KeyError, ValueError) as e:
    logger.warning("Ignoring malformed profile for %s: %s", user_id, e)
    return None


def _to_user(token_data: dict) -> AuthenticatedUser:
  role = _profile_role(token_data["sub"]) or token_data.get("role") or PARENT_ROLE
  return AuthenticatedUser(
    id=token_data["sub"],
    email=token_data.get("email"),
    role=role,
  )


async def get_current_user(
  credentials: HTTPAuthorizationCredentials = Depends(security)
) -> AuthenticatedUser:
  """
  Dependency to get the current authenticated user.

  Use this for routes that REQUIRE authentication.
  Raises 401 if not authenticated.
  """
  if not credentials:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail="Authentication required",
      headers={"WWW-Authenticate": "Bearer"},
    )

  return _to_user(decode_token(credentials.credentials))


async def get_current_user_optional(
  credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[AuthenticatedUser]:
  """
  Dependency to get the current user if authenticated.

  Returns None if no valid token was sent.
  """
  if not credentials:
    return None

  try:
    return _to_user(decode_token(credentials.credentials))
  except HTTPException:
    return None
