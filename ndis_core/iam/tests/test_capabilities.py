# ndis_core/iam/tests/test_capabilities.py
from uuid import uuid4

from ndis_core.iam.capabilities import AssignmentSet, ResourceScope, can_act_on_resource
from ndis_core.iam.models import CompanyRole

SITE = uuid4()
PARTICIPANT = uuid4()


def test_non_member_is_denied():
    assert not can_act_on_resource(role=None, resource=ResourceScope(site_id=SITE), assignments=AssignmentSet())


def test_assurance_roles_act_anywhere():
    for role in (CompanyRole.COMPANY_ADMIN, CompanyRole.AUDITOR, CompanyRole.REVIEWER):
        assert can_act_on_resource(role=role, resource=ResourceScope(site_id=SITE), assignments=AssignmentSet())


def test_staff_needs_an_assignment():
    staff = CompanyRole.STAFF_READ_ONLY
    resource = ResourceScope(site_id=SITE, participant_id=PARTICIPANT)

    assert not can_act_on_resource(role=staff, resource=resource, assignments=AssignmentSet())
    assert can_act_on_resource(
        role=staff, resource=resource, assignments=AssignmentSet(site_ids=frozenset({SITE}))
    )
    assert can_act_on_resource(
        role=staff, resource=resource, assignments=AssignmentSet(participant_ids=frozenset({PARTICIPANT}))
    )


def test_staff_may_act_on_resources_assigned_to_them():
    resource = ResourceScope(site_id=SITE, assigned_user_id=7)
    staff = CompanyRole.STAFF_READ_ONLY

    assert can_act_on_resource(role=staff, resource=resource, assignments=AssignmentSet(), actor_user_id=7)
    assert not can_act_on_resource(role=staff, resource=resource, assignments=AssignmentSet(), actor_user_id=8)
