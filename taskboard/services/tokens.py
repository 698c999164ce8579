"""
Token codec: issues and verifies signed JWT access tokens.

Tokens carry ``sub`` (user id), ``iat`` and ``exp`` as integer epoch
seconds, plus ``iss`` / ``aud`` when those are configured.  Nothing is
persisted and tokens are never revoked server side; they expire passively.

Expiry is checked here rather than by python-jose so that the clock can be
injected and so that a token is rejected from the very second it expires
(``now >= exp``), optionally extended by a configured leeway.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError
from pydantic import BaseModel

from taskboard.config import Settings
from taskboard.errors import ExpiredCredential, InvalidCredential, MalformedCredential

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenClaims(BaseModel):
    subject_id: str
    issued_at: datetime
    expires_at: datetime


class TokenCodec:
    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_in: timedelta = timedelta(days=7),
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        leeway: timedelta = timedelta(0),
        clock: Clock = _utc_now,
    ) -> None:
        if not secret:
            raise ValueError("A signing secret is required.")
        self._secret = secret
        self._algorithm = algorithm
        self.expires_in = expires_in
        self._issuer = issuer or None
        self._audience = audience or None
        self._leeway = leeway
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = _utc_now) -> "TokenCodec":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expires_in=settings.token_ttl,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            leeway=timedelta(seconds=settings.jwt_leeway_seconds),
            clock=clock,
        )

    def issue(self, subject_id: str, ttl: Optional[timedelta] = None) -> str:
        """Create a signed JWT whose 'sub' claim is *subject_id*."""
        now = self._clock()
        expire = now + (ttl if ttl is not None else self.expires_in)
        payload = {
            "sub": str(subject_id),
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }
        if self._issuer:
            payload["iss"] = self._issuer
        if self._audience:
            payload["aud"] = self._audience
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode *token* and return its claims.

        Raises ``ExpiredCredential``, ``MalformedCredential`` or
        ``InvalidCredential``; never returns a partially verified result.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"verify_exp": False, "verify_aud": self._audience is not None},
            )
        except JWTClaimsError as exc:
            raise InvalidCredential(str(exc)) from exc
        except JWTError as exc:
            raise MalformedCredential(str(exc)) from exc

        subject_id = payload.get("sub")
        exp = payload.get("exp")
        iat = payload.get("iat")
        if not subject_id or not isinstance(exp, (int, float)) or not isinstance(iat, (int, float)):
            raise InvalidCredential("Token is missing required claims.")

        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        if self._clock() >= expires_at + self._leeway:
            raise ExpiredCredential("Token has expired.")

        issued_at = datetime.fromtimestamp(iat, tz=timezone.utc)
        return TokenClaims(subject_id=subject_id, issued_at=issued_at, expires_at=expires_at)
