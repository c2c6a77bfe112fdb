import logging
import jwt
from datetime import datetime, timedelta, timezone
from app.config import settings

logger = logging.getLogger(__name__)


class IdentityRejected(Exception):
    pass


class IdentityVerifier:
    """HS256 bearer tokens: issue(subject) -> token, verify(token) -> subject."""

    def __init__(self, secret: str, issuer: str, ttl_min: int):
        self.secret = secret
        self.issuer = issuer
        self.ttl_min = ttl_min

    def issue(self, sub: str) -> str:
        now = datetime.now(timezone.utc)
        exp = now + timedelta(minutes=self.ttl_min)
        payload = {"sub": sub, "iss": self.issuer, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
        return jwt.encode(payload, self.secret, algorithm="HS256")

    def verify(self, token: str) -> str:
        try:
            data = jwt.decode(
                token, self.secret, algorithms=["HS256"], issuer=self.issuer,
                options={"verify_aud": False, "require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as exc:
            logger.info("token rejected: %s", exc)
            raise IdentityRejected(str(exc)) from exc
        return str(data["sub"])


verifier = IdentityVerifier(settings.APP_SECRET, settings.JWT_ISS, settings.JWT_EXP_MIN)
