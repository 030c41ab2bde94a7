"""ProfileService - reads and edits role-specific profile documents."""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from domain.identity.core.entities.identity import Identity
from domain.identity.core.entities.profiles import Profile, StudentProfile, VendorProfile
from domain.identity.core.value_objects.role import Role
from domain.shared.errors import EntityNotFoundError
from domain.shared.paths import user_path, vendor_path
from domain.shared.ports.remote_store import IRemoteStore

logger = logging.getLogger(__name__)

# Written only at sign-up or by MetricsAggregator/MetricsReconciler
PROTECTED_FIELDS = frozenset(
    {"metrics", "role", "email", "createdAt", "identityId", "vendorId", "ratings"}
)


class ProfileService:
    """
    Load an identity's profile and apply user edits to it.

    Students keep everything in ``users/{id}``. Vendors keep identity data
    in ``users/{id}`` and the vendor profile in ``vendors/{id}``.
    """

    def __init__(self, store: IRemoteStore):
        self._store = store

    async def load(self, identity_id: str, email: str) -> Tuple[Identity, Profile, bool]:
        """
        Read the identity record and its profile.

        Args:
            identity_id: Provider-assigned identity id
            email: Email reported by the provider (used if the record has none)

        Returns:
            (identity, profile, degraded); degraded is True for a vendor whose
            vendors record is missing

        Raises:
            EntityNotFoundError: If ``users/{id}`` does not exist
            NetworkError: Transport failure
            ValueError: If the stored role is unknown
        """
        user_doc = await self._store.get_document(user_path(identity_id))
        if user_doc is None:
            raise EntityNotFoundError(user_path(identity_id))

        identity = Identity(
            id=identity_id,
            email=str(user_doc.data.get("email") or email),
            role=Role.parse(user_doc.data.get("role", Role.STUDENT.value)),
            created_at=_parse_created_at(user_doc.data.get("createdAt")),
        )

        vendor_data: Optional[Dict[str, Any]] = None
        if identity.is_vendor:
            vendor_doc = await self._store.get_document(vendor_path(identity_id))
            vendor_data = vendor_doc.data if vendor_doc else None

        profile, degraded = self.build_profile(identity, user_doc.data, vendor_data)
        return identity, profile, degraded

    @staticmethod
    def build_profile(
        identity: Identity,
        user_data: Optional[Mapping[str, Any]],
        vendor_data: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[Profile, bool]:
        """Map stored documents onto the profile entity of the identity's role."""
        if identity.is_student:
            return StudentProfile.from_document(identity.id, user_data or {}), False

        if vendor_data is None:
            logger.warning(
                "Vendor record missing, using default vendor profile",
                extra={"identity_id": identity.id},
            )
            return VendorProfile.default(identity.id), True
        return VendorProfile.from_document(identity.id, vendor_data), False

    async def update_profile(self, identity: Identity, updates: Mapping[str, Any]) -> Profile:
        """
        Merge editable fields into the identity's profile.

        Args:
            identity: Owner of the profile
            updates: Document field name -> new value (e.g. ``{"displayName": "Ana"}``)

        Returns:
            Profile after the update

        Raises:
            ValueError: If a field is protected or not editable for the role
            EntityNotFoundError: If the profile document does not exist
        """
        protected = sorted(PROTECTED_FIELDS.intersection(updates))
        if protected:
            raise ValueError(f"Fields cannot be edited: {', '.join(protected)}")

        editable = (
            VendorProfile.EDITABLE_FIELDS if identity.is_vendor else StudentProfile.EDITABLE_FIELDS
        )
        unknown = sorted(set(updates) - editable)
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(unknown)}")

        cleaned = {key: str(value).strip() for key, value in updates.items()}
        path = vendor_path(identity.id) if identity.is_vendor else user_path(identity.id)

        if await self._store.get_document(path) is None:
            raise EntityNotFoundError(path)
        if cleaned:
            await self._store.set_document(path, cleaned, merge=True)
        if identity.is_vendor and cleaned.get("name"):
            # users record mirrors the vendor name as display name
            await self._store.set_document(
                user_path(identity.id), {"displayName": cleaned["name"]}, merge=True
            )

        logger.info(
            "Profile updated",
            extra={"identity_id": identity.id, "fields": sorted(cleaned)},
        )
        document = await self._store.get_document(path)
        if document is None:
            raise EntityNotFoundError(path)
        if identity.is_vendor:
            return VendorProfile.from_document(identity.id, document.data)
        return StudentProfile.from_document(identity.id, document.data)


def _parse_created_at(value: Any) -> datetime:
    if isinstance(value, datetime):
        created = value
    elif value:
        created = datetime.fromisoformat(str(value))
    else:
        return datetime.now(timezone.utc)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created
