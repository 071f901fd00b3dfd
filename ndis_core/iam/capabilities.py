# ndis_core/iam/capabilities.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional
from uuid import UUID

from ndis_core.iam.models import CompanyRole


@dataclass(frozen=True)
class AssignmentSet:
    """
    Sites and participants a staff member has been explicitly assigned to.
    """
    site_ids: FrozenSet[UUID] = field(default_factory=frozenset)
    participant_ids: FrozenSet[UUID] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ResourceScope:
    """
    What a resource is attached to, for capability checks.
    Any field may be None (e.g. a site-scoped run has no participant).
    """
    site_id: Optional[UUID] = None
    participant_id: Optional[UUID] = None
    assigned_user_id: Optional[int] = None


def is_assignment_restricted(role: str | None) -> bool:
    return role == CompanyRole.STAFF_READ_ONLY


def can_act_on_resource(
    *,
    role: str | None,
    resource: ResourceScope,
    assignments: AssignmentSet,
    actor_user_id: int | None = None,
) -> bool:
    """
    Pure capability check: (actor role, resource scope, assignment set) -> allow/deny.

    - No role (not a member): deny.
    - CompanyAdmin / Auditor / Reviewer: allow.
    - StaffReadOnly: allow only when the resource is assigned to the actor directly,
      or sits on a site / participant the actor is assigned to.
    """
    if not role:
        return False

    if not is_assignment_restricted(role):
        return True

    if actor_user_id is not None and resource.assigned_user_id == actor_user_id:
        return True
    if resource.site_id is not None and resource.site_id in assignments.site_ids:
        return True
    if resource.participant_id is not None and resource.participant_id in assignments.participant_ids:
        return True
    return False
