from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.config.settings import Settings, get_settings
from app.core.domain.exceptions import ValidationException

RECOVERY_PURPOSE = "cart_recovery"


class RecoveryLinkService:
    """
    Signed deep links that bring a customer back to an abandoned cart.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.SECRET_KEY = self.settings.RECOVERY_TOKEN_SECRET
        self.ALGORITHM = "HS256"
        self.EXPIRE_DAYS = self.settings.RECOVERY_TOKEN_EXPIRE_DAYS

    def create_token(self, cart_id: str, expires_delta: timedelta | None = None) -> str:
        """
        Crea el token JWT de recuperación de un carrito

        Args:
            cart_id: Cart the token grants access to
            expires_delta: Lifetime override

        Returns:
            Encoded JWT
        """
        now = datetime.now(UTC)
        expire = now + (expires_delta or timedelta(days=self.EXPIRE_DAYS))
        to_encode: dict[str, Any] = {
            "cart_id": cart_id,
            "purpose": RECOVERY_PURPOSE,
            "exp": expire,
            "iat": now,
        }
        return jwt.encode(to_encode, self.SECRET_KEY, algorithm=self.ALGORITHM)

    def verify_token(self, token: str) -> str:
        """
        Validate a recovery token and return the cart id it was issued for.

        Raises:
            ValidationException: If the token is malformed, expired or not a recovery token
        """
        try:
            payload = jwt.decode(token, self.SECRET_KEY, algorithms=[self.ALGORITHM])
        except JWTError as e:
            raise ValidationException(f"Invalid recovery token: {e}", field="token") from e

        cart_id = payload.get("cart_id")
        if payload.get("purpose") != RECOVERY_PURPOSE or not cart_id:
            raise ValidationException("Token is not a cart recovery token", field="token")
        return cart_id

    def build_link(self, cart_id: str) -> str:
        base_url = self.settings.FRONTEND_URL.rstrip("/")
        return f"{base_url}/recover-cart/{cart_id}?token={self.create_token(cart_id)}"
