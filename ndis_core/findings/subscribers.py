# ndis_core/findings/subscribers.py
from ndis_core.common.events import subscribe
from ndis_core.findings.services import FindingService


@subscribe("audit.response.non_conforming")
def create_finding_for_response(payload):
    FindingService.create_from_response(
        tenant_id=payload["tenant_id"],
        audit_id=payload["audit_id"],
        indicator_id=payload["indicator_id"],
        indicator_text=payload["indicator_text"],
        severity=payload["severity"],
        comment=payload["comment"],
        actor_user_id=payload.get("actor_user_id"),
        added_in_review=payload.get("added_in_review", False),
    )
