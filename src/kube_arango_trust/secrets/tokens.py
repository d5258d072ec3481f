"""Bearer tokens and JWT claim sets.

Plain tokens are 32 random bytes, hex encoded. The text of the primary
authentication token doubles as the HMAC key for every JWT minted by the
operator: the exporter monitoring token and the short-lived bearer
credentials attached to database clients.
"""

import secrets
from dataclasses import dataclass, field
from typing import Any

import jwt

from kube_arango_trust import constants

_JWT_ALGORITHM = "HS256"

_ISSUER_CLAIM = "iss"
_SERVER_ID_CLAIM = "server_id"
_ALLOWED_PATHS_CLAIM = "allowed_paths"


def generate_token() -> str:
    """Return a new random token: 32 bytes, hex encoded."""
    return secrets.token_hex(constants.TOKEN_BYTES)


@dataclass(frozen=True)
class JWTClaimSet:
    """Claims embedded in an operator-issued JWT.

    Two claim sets are equal when every assertion is equal, regardless of
    the field order of the serialized token. Claims this type does not
    model are kept in `extra` (sorted by name) so a token carrying
    anything beyond the desired set never compares equal.

    Attributes:
        issuer: The ``iss`` claim.
        server_id: The ``server_id`` claim identifying the bearer.
        allowed_paths: The ``allowed_paths`` claim, or None if absent.
        extra: Any other claims as (name, value) pairs.

    """

    issuer: str
    server_id: str
    allowed_paths: tuple[str, ...] | None = None
    extra: tuple[tuple[str, Any], ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        claims: dict[str, Any] = {_ISSUER_CLAIM: self.issuer, _SERVER_ID_CLAIM: self.server_id}
        if self.allowed_paths is not None:
            claims[_ALLOWED_PATHS_CLAIM] = list(self.allowed_paths)
        claims.update(self.extra)
        return claims

    @classmethod
    def from_dict(cls, claims: dict[str, Any]) -> "JWTClaimSet":
        remaining = dict(claims)
        allowed_paths = remaining.pop(_ALLOWED_PATHS_CLAIM, None)
        return cls(
            issuer=remaining.pop(_ISSUER_CLAIM, ""),
            server_id=remaining.pop(_SERVER_ID_CLAIM, ""),
            allowed_paths=tuple(allowed_paths) if isinstance(allowed_paths, list) else allowed_paths,
            extra=tuple(sorted(remaining.items())),
        )


EXPORTER_CLAIMS = JWTClaimSet(
    issuer=constants.JWT_ISSUER,
    server_id=constants.EXPORTER_SERVER_ID,
    allowed_paths=constants.EXPORTER_ALLOWED_PATHS,
)


def sign_claims(claims: JWTClaimSet, signing_secret: str) -> str:
    """Sign a claim set with the given secret (HS256)."""
    return jwt.encode(claims.to_dict(), signing_secret, algorithm=_JWT_ALGORITHM)


def decode_claims(token: str, signing_secret: str) -> JWTClaimSet:
    """Verify a token's signature and return its claims.

    Args:
        token: The encoded JWT.
        signing_secret: The secret the token is expected to be signed with.

    Returns:
        The decoded claim set.

    Raises:
        jwt.InvalidTokenError: If the token is malformed or the signature
            does not verify.

    """
    claims = jwt.decode(token, signing_secret, algorithms=[_JWT_ALGORITHM])
    return JWTClaimSet.from_dict(claims)


def create_authorization_header(signing_secret: str, server_id: str = constants.OPERATOR_SERVER_ID) -> str:
    """Build an ``Authorization`` header value for the given server identity.

    Args:
        signing_secret: The primary authentication token.
        server_id: Identity of the caller embedded in the token.

    Returns:
        The header value, ``bearer <jwt>``.

    """
    token = sign_claims(JWTClaimSet(issuer=constants.JWT_ISSUER, server_id=server_id), signing_secret)
    return f"bearer {token}"
