"""
Shared fixtures: a throwaway RSA key, a service account built from it,
and an authenticated caller.
"""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from app.models.credentials import AuthenticatedCaller, ServiceAccountCredential

TEST_PROJECT_ID = "gachitore-test"
TEST_CLIENT_EMAIL = "firebase-adminsdk@gachitore-test.iam.gserviceaccount.com"
TEST_USER_ID = "6f1c2d3e-4b5a-6978-8a9b-0c1d2e3f4a5b"
TEST_CALLER_TOKEN = "caller-access-token"


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """A 2048-bit RSA key generated once per test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key) -> str:
    """PKCS8 PEM, the format Firebase service-account files use."""
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def service_account(private_key_pem) -> ServiceAccountCredential:
    return ServiceAccountCredential(
        project_id=TEST_PROJECT_ID,
        client_email=TEST_CLIENT_EMAIL,
        private_key=private_key_pem,
    )


@pytest.fixture
def caller() -> AuthenticatedCaller:
    return AuthenticatedCaller(user_id=TEST_USER_ID, access_token=TEST_CALLER_TOKEN)
