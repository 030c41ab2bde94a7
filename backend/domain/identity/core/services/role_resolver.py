"""RoleResolver - decides which profile documents a new identity gets."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Union

from domain.identity.core.entities.profiles import StudentProfile, VendorProfile
from domain.identity.core.value_objects.role import Role
from domain.shared.paths import user_path, vendor_path

VENDOR_FIELDS = ("name", "category", "address", "phone", "hours", "description")


@dataclass(frozen=True)
class RoleData:
    """Role chosen at sign-up plus the role-specific profile fields.

    Examples:
        >>> RoleData.from_mapping({"role": "vendor", "name": "Campus Cafe"})
        RoleData(role=<Role.VENDOR: 'vendor'>, fields={'name': 'Campus Cafe'})
    """

    role: Role
    fields: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "RoleData":
        """Build RoleData from ``{"role": ..., **fields}``.

        Raises:
            ValueError: If role is missing or unknown
        """
        if "role" not in data:
            raise ValueError("Sign-up data must include a 'role'")
        fields = {k: v for k, v in data.items() if k != "role"}
        return RoleData(role=Role.parse(data["role"]), fields=fields)


@dataclass(frozen=True)
class ProfileWrite:
    """One document write produced by the resolver."""

    path: str
    data: Dict[str, Any]


class RoleResolver:
    """Maps sign-up role data onto profile document shapes.

    Pure: produces the writes, never performs them. Students get a single
    ``users/{id}`` document with their metrics. Vendors get an identity-keyed
    ``users/{id}`` record plus a separate ``vendors/{id}`` record holding the
    vendor profile, ratings and metrics. All metrics start at zero.
    """

    def resolve(
        self,
        identity_id: str,
        email: str,
        role_data: Union[RoleData, Mapping[str, Any]],
        created_at: datetime,
    ) -> List[ProfileWrite]:
        """Produce the documents to write for a new identity.

        Args:
            identity_id: Provider-assigned identity id
            email: Identity email
            role_data: RoleData or ``{"role": ..., **fields}`` mapping
            created_at: Sign-up timestamp (timezone-aware)

        Returns:
            Ordered list of writes; the ``users/{id}`` write always comes first

        Raises:
            ValueError: If the role is unknown or created_at is naive
        """
        if created_at.tzinfo is None:
            raise ValueError("created_at must be timezone-aware (use UTC)")
        if not isinstance(role_data, RoleData):
            role_data = RoleData.from_mapping(role_data)

        fields = role_data.fields
        base = {
            "email": email,
            "role": role_data.role.value,
            "createdAt": created_at.isoformat(),
        }

        if role_data.role is Role.STUDENT:
            first = str(fields.get("firstName", "")).strip()
            last = str(fields.get("lastName", "")).strip()
            profile = StudentProfile(
                identity_id=identity_id,
                first_name=first,
                last_name=last,
                display_name=str(fields.get("displayName", "")).strip()
                or _default_display_name(first, last, email),
            )
            return [ProfileWrite(user_path(identity_id), {**base, **profile.to_document()})]

        vendor = VendorProfile(
            identity_id=identity_id,
            **{key: str(fields.get(key, "")).strip() for key in VENDOR_FIELDS},
        )
        vendor_doc = {**vendor.to_document(), "createdAt": base["createdAt"]}
        user_doc = {
            **base,
            "displayName": vendor.name or _default_display_name("", "", email),
            "vendorId": identity_id,
        }
        return [
            ProfileWrite(user_path(identity_id), user_doc),
            ProfileWrite(vendor_path(identity_id), vendor_doc),
        ]


def _default_display_name(first: str, last: str, email: str) -> str:
    full = f"{first} {last}".strip()
    return full or email.split("@", 1)[0]
