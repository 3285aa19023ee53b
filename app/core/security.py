import hashlib
import hmac
import secrets
from dataclasses import dataclass

from app.core.config import settings

KEY_SCHEME = "fs"


@dataclass(frozen=True)
class ApiKeyParts:
    prefix: str
    plain: str
    hashed: str


def generate_api_key(prefix_len: int = 8) -> ApiKeyParts:
    """
    fs_<prefix>_<secret>. The plain key is shown once; only the prefix and
    the peppered HMAC are stored.
    """
    prefix = secrets.token_hex(prefix_len // 2)
    plain = f"{KEY_SCHEME}_{prefix}_{secrets.token_urlsafe(32)}"
    return ApiKeyParts(prefix=prefix, plain=plain, hashed=hash_api_key(plain))


def api_key_prefix(plain: str) -> str | None:
    """Prefix of a well-formed key, None for anything else."""
    scheme, _, rest = plain.partition("_")
    prefix, sep, secret = rest.partition("_")
    if scheme != KEY_SCHEME or not sep or not prefix or not secret:
        return None
    return prefix


def hash_api_key(plain: str) -> str:
    pepper = settings.api_key_pepper.get_secret_value().encode("utf-8")
    return hmac.new(pepper, plain.encode("utf-8"), hashlib.sha256).hexdigest()
