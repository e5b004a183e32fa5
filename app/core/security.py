"""Password hashing helpers."""

from passlib.context import CryptContext

from app.core.config import get_settings

settings = get_settings()
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

# Precomputed fake hash to mitigate timing attacks
FAKE_HASHED_PASSWORD = pwd_context.hash(
    "this_is_a_fake_user_that_never_exists_2025"
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)
