"""Server-side Google OAuth token management.

Handles encryption/decryption of stored refresh tokens and the
refresh-token → access-token exchange used by the calendar client.
"""

import base64
import hashlib
import logging

import httpx
from cryptography.fernet import Fernet

from optigence.core.config import get_settings

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


def _get_fernet() -> Fernet:
    """Build a Fernet cipher from TOKEN_ENCRYPTION_KEY."""
    settings = get_settings()
    key = settings.TOKEN_ENCRYPTION_KEY
    if not key:
        raise ValueError("TOKEN_ENCRYPTION_KEY not configured")
    # Derive a consistent 32-byte key via SHA-256
    raw_key = hashlib.sha256(key.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(raw_key))


def encrypt_refresh_token(token: str) -> str:
    """Encrypt a refresh token for storage."""
    return _get_fernet().encrypt(token.encode()).decode()


def decrypt_refresh_token(encrypted: str) -> str:
    """
    Decrypt a stored refresh token.

    Raises:
        cryptography.fernet.InvalidToken: If the ciphertext was not produced
            with the configured key
    """
    return _get_fernet().decrypt(encrypted.encode()).decode()


async def exchange_refresh_for_access(
    refresh_token: str,
    encrypted: bool = True,
    timeout: float = 10,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """
    Exchange a refresh token for a fresh Google access token.

    Args:
        refresh_token: Refresh token (encrypted as stored, unless encrypted=False)
        encrypted: Whether the token must be decrypted first
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests)

    Returns:
        Valid Google access token

    Raises:
        ValueError: If Google OAuth is not configured
        httpx.HTTPStatusError: If token exchange fails
        httpx.RequestError: If Google cannot be reached
    """
    settings = get_settings()

    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise ValueError("Google OAuth not configured")

    plain_token = decrypt_refresh_token(refresh_token) if encrypted else refresh_token

    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "client_id": settings.GOOGLE_CLIENT_ID,
                "client_secret": settings.GOOGLE_CLIENT_SECRET,
                "refresh_token": plain_token,
                "grant_type": "refresh_token",
            },
        )
        response.raise_for_status()
        data = response.json()

    logger.debug("Exchanged Google refresh token for access token")
    return data["access_token"]
