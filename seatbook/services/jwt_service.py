"""
JWT Service for Seatbook.
Validates bearer tokens issued by the identity provider.
"""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import logging

from seatbook.core.config import config

logger = logging.getLogger(__name__)

ORGANIZER_ROLES = ("organizer", "admin")


class JWTService:
    """
    JWT service for token validation.
    Tokens carry user_id and role claims.
    """

    def __init__(self):
        self.jwt_secret = None
        self.jwt_algorithm = None

    async def _get_config(self):
        """Get JWT configuration."""
        if not self.jwt_secret:
            self.jwt_secret = await config.get_jwt_secret()
            self.jwt_algorithm = await config.get_jwt_algorithm()

    async def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode and validate JWT token.

        Args:
            token: JWT token to decode

        Returns:
            Token payload if valid, None otherwise
        """
        try:
            await self._get_config()

            return jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm]
            )

        except jwt.ExpiredSignatureError:
            logger.warning("JWT token has expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {e}")
            return None

    async def create_token(self, user_id: int, role: str = "user", expires_minutes: int = 60) -> str:
        """Issue a token. Used by local tooling and tests; production tokens come from the identity provider."""
        await self._get_config()

        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "role": role,
            "iat": now,
            "exp": now + timedelta(minutes=expires_minutes),
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    async def get_user_id(self, token: str) -> Optional[int]:
        payload = await self.decode_token(token)
        if payload:
            return payload.get("user_id")
        return None

    async def get_user_role(self, token: str) -> Optional[str]:
        payload = await self.decode_token(token)
        if payload:
            return payload.get("role")
        return None

    async def is_admin(self, token: str) -> bool:
        role = await self.get_user_role(token)
        return role == "admin"

    async def is_organizer(self, token: str) -> bool:
        """Organizers and admins may create events."""
        role = await self.get_user_role(token)
        return role in ORGANIZER_ROLES


# Global service instance
jwt_service = JWTService()
