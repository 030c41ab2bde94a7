"""Identity provider factory.

IDENTITY_PROVIDER selects the implementation:
- "inmemory": InMemoryIdentityProvider (default)
- "firebase": FirebaseIdentityProvider (requires FIREBASE_API_KEY)
"""

from domain.identity.auth.ports.identity_provider import IIdentityProvider
from infrastructure.config import get_identity_provider_backend
from infrastructure.identity.firebase_provider import FirebaseIdentityProvider
from infrastructure.identity.in_memory_provider import InMemoryIdentityProvider


def create_identity_provider() -> IIdentityProvider:
    """Create identity provider based on environment configuration."""
    if get_identity_provider_backend() == "firebase":
        return FirebaseIdentityProvider()
    return InMemoryIdentityProvider()
