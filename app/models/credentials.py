"""
Credential Models — the two trust hops of a dispatch.

Caller side: AuthenticatedCaller, produced by the identity check.
Provider side: ServiceAccountCredential -> SignedAssertion -> AccessToken,
produced fresh for every dispatch and never cached.
"""

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class AuthenticatedCaller(BaseModel):
    """The caller as confirmed by the identity service."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(
        ...,
        description="UUID of the authenticated user (auth.users.id).",
    )
    access_token: SecretStr = Field(
        ...,
        description="The caller's own bearer token, forwarded to the recipient store.",
    )


class ServiceAccountCredential(BaseModel):
    """Firebase service-account key material. The private key is never printed."""

    model_config = ConfigDict(frozen=True)

    project_id: str = Field(..., description="Firebase project the FCM endpoint is scoped to.")
    client_email: str = Field(..., description="Service-account principal, used as the JWT issuer.")
    private_key: SecretStr = Field(..., description="PEM-encoded RSA private key (PKCS8).")


class SignedAssertion(BaseModel):
    """An RS256 JWT split into its three base64url segments."""

    model_config = ConfigDict(frozen=True)

    header_segment: str
    payload_segment: str
    signature_segment: str

    @property
    def signing_input(self) -> str:
        return f"{self.header_segment}.{self.payload_segment}"

    @property
    def compact(self) -> str:
        """The dot-joined form sent as the `assertion` grant parameter."""
        return f"{self.signing_input}.{self.signature_segment}"

    @classmethod
    def from_compact(cls, token: str) -> "SignedAssertion":
        header, payload, signature = token.split(".")
        return cls(
            header_segment=header,
            payload_segment=payload,
            signature_segment=signature,
        )


class AccessToken(BaseModel):
    """OAuth2 bearer token issued by the provider's token endpoint."""

    model_config = ConfigDict(frozen=True)

    value: SecretStr
    expires_in_seconds: int = 3600
