import re
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
from jose import JWTError, jwt
from formbuilder.config.env_config import settings

pwd_context = CryptContext(schemes=["bcrypt"], bcrypt__rounds=settings.BCRYPT_ROUNDS, deprecated="auto")

DEFAULT_EXPIRATION_SECONDS = 7 * 24 * 60 * 60

_EXPIRATION_UNITS = {
    "d": 24 * 60 * 60,
    "h": 60 * 60,
    "m": 60,
    "s": 1,
}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def parse_expiration(expiration) -> int:
    """Turn "3600", "7d", "24h", "60m" or "30s" into seconds; anything else is 7 days."""
    value = str(expiration).strip()

    if value.isdigit():
        return int(value)

    match = re.fullmatch(r"(\d+)([dhms])", value)
    if not match:
        return DEFAULT_EXPIRATION_SECONDS

    return int(match.group(1)) * _EXPIRATION_UNITS[match.group(2)]


def generate_jwt(data: dict, expire_seconds: int, secret_key: str, algorithm: str):
    to_encode = data.copy()
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + timedelta(seconds=expire_seconds)

    to_encode.update({"iat": issued_at, "exp": expire})

    encoded_jwt = jwt.encode(to_encode, secret_key, algorithm=algorithm)
    return encoded_jwt


def verify_jwt(token: str, secret_key: str, algorithm: str):
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
        return payload
    except JWTError:
        return None
