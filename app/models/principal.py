"""Authenticated principal as issued by the identity provider."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LinkedIdentity:
    """A provider sub-identity attached to the principal (e.g. a Google or Kakao login)."""

    provider: str | None
    provider_user_id: str


@dataclass(frozen=True)
class Principal:
    """
    External identity before tenant-scoped resolution.

    subject_id is the provider's 'sub' claim. For most accounts it is also
    the internal user id; legacy accounts are reached through identities.
    """

    subject_id: str
    email: str | None = None
    name: str | None = None
    identities: tuple[LinkedIdentity, ...] = field(default_factory=tuple)
