# ndis_core/audits/responses.py
from __future__ import annotations

import logging
from uuid import UUID

from django.db import IntegrityError, transaction
from rest_framework.exceptions import ValidationError

from ndis_core.audits.models import (
    NON_CONFORMING_RATINGS,
    Audit,
    AuditIndicatorResponse,
    AuditStatus,
    AuditTemplateIndicator,
    IndicatorRating,
)
from ndis_core.audits.scoring import SCORE_VERSION, score_for_rating
from ndis_core.audits.selectors import AuditSelector, AuditTemplateSelector
from ndis_core.changelog.services import ChangeLogService
from ndis_core.common.api.exceptions import PreconditionFailed
from ndis_core.common.events import publish

logger = logging.getLogger(__name__)

NON_CONFORMING_EVENT = "audit.response.non_conforming"


class IndicatorResponseService:
    """
    Indicator ratings for a running audit.

    A MINOR_NC / MAJOR_NC rating publishes NON_CONFORMING_EVENT; the findings app
    turns it into exactly one Finding per (audit, indicator), inside this transaction.
    """

    @staticmethod
    def _validate(*, rating: str, comment: str) -> str:
        if rating not in IndicatorRating.values:
            raise ValidationError({"rating": f"Invalid rating. Allowed: {list(IndicatorRating.values)}"})
        comment = (comment or "").strip()
        if rating != IndicatorRating.CONFORMANCE and not comment:
            raise ValidationError({"comment": "A comment is required for Observation, Minor NC and Major NC ratings."})
        return comment

    @staticmethod
    def _indicator_for(audit: Audit, indicator_id: UUID) -> AuditTemplateIndicator:
        run = AuditSelector.get_run_or_none(audit=audit)
        if run is None:
            raise PreconditionFailed("No template selected for this audit.")
        return AuditTemplateSelector.get_indicator_in_template(template_id=run.template_id, indicator_id=indicator_id)

    @staticmethod
    def _upsert(
        *,
        audit: Audit,
        indicator: AuditTemplateIndicator,
        rating: str,
        comment: str,
        actor_user_id: int | None,
        added_in_review: bool,
    ) -> AuditIndicatorResponse:
        values = {
            "rating": rating,
            "comment": comment,
            "score_points": score_for_rating(rating),
            "score_version": SCORE_VERSION,
        }

        existing = AuditIndicatorResponse.objects.select_for_update().filter(audit=audit, indicator=indicator).first()
        if existing is None:
            try:
                with transaction.atomic(savepoint=True):
                    return AuditIndicatorResponse.objects.create(
                        tenant_id=audit.tenant_id,
                        audit=audit,
                        indicator=indicator,
                        created_by_id=actor_user_id,
                        added_in_review=added_in_review,
                        **values,
                    )
            except IntegrityError:
                logger.warning("Concurrent response insert audit=%s indicator=%s; updating", audit.id, indicator.id)
                existing = AuditIndicatorResponse.objects.select_for_update().get(audit=audit, indicator=indicator)

        for name, value in values.items():
            setattr(existing, name, value)
        existing.save(update_fields=[*values.keys(), "updated_at"])
        return existing

    @staticmethod
    def _publish_if_non_conforming(
        *,
        audit: Audit,
        indicator: AuditTemplateIndicator,
        response: AuditIndicatorResponse,
        actor_user_id: int | None,
    ) -> None:
        if response.rating not in NON_CONFORMING_RATINGS:
            return
        publish(
            NON_CONFORMING_EVENT,
            {
                "tenant_id": audit.tenant_id,
                "audit_id": audit.id,
                "indicator_id": indicator.id,
                "indicator_text": indicator.indicator_text,
                "severity": response.rating,
                "comment": response.comment,
                "actor_user_id": actor_user_id,
                "added_in_review": response.added_in_review,
            },
        )

    @staticmethod
    @transaction.atomic
    def save_response(
        *,
        tenant_id: UUID,
        audit_id: UUID,
        indicator_id: UUID,
        rating: str,
        comment: str = "",
        actor_user_id: int | None,
    ) -> AuditIndicatorResponse:
        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id)
        if audit.status != AuditStatus.IN_PROGRESS:
            raise PreconditionFailed("Audit must be in progress to save responses.")

        indicator = IndicatorResponseService._indicator_for(audit, indicator_id)
        comment = IndicatorResponseService._validate(rating=rating, comment=comment)

        response = IndicatorResponseService._upsert(
            audit=audit,
            indicator=indicator,
            rating=rating,
            comment=comment,
            actor_user_id=actor_user_id,
            added_in_review=False,
        )

        ChangeLogService.log(
            action="AUDIT_RESPONSE_SAVED",
            entity_type="audit_response",
            entity_id=response.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={"rating": rating, "indicator_id": str(indicator.id), "score_points": response.score_points},
        )
        IndicatorResponseService._publish_if_non_conforming(
            audit=audit, indicator=indicator, response=response, actor_user_id=actor_user_id
        )
        return response

    @staticmethod
    @transaction.atomic
    def add_in_review_response(
        *,
        tenant_id: UUID,
        audit_id: UUID,
        indicator_id: UUID,
        rating: str,
        comment: str = "",
        actor_user_id: int | None,
    ) -> AuditIndicatorResponse:
        """
        Reviewers may fill an indicator the auditor skipped; existing responses are frozen.
        """
        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id)
        if audit.status != AuditStatus.IN_REVIEW:
            raise PreconditionFailed("Audit must be in review to add responses.")

        indicator = IndicatorResponseService._indicator_for(audit, indicator_id)
        comment = IndicatorResponseService._validate(rating=rating, comment=comment)

        if AuditIndicatorResponse.objects.filter(audit=audit, indicator=indicator).exists():
            raise PreconditionFailed("This indicator already has a response. Responses cannot be modified in review.")

        response = IndicatorResponseService._upsert(
            audit=audit,
            indicator=indicator,
            rating=rating,
            comment=comment,
            actor_user_id=actor_user_id,
            added_in_review=True,
        )

        ChangeLogService.log(
            action="AUDIT_RESPONSE_ADDED_IN_REVIEW",
            entity_type="audit_response",
            entity_id=response.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={"rating": rating, "indicator_id": str(indicator.id), "audit_id": str(audit.id)},
        )
        IndicatorResponseService._publish_if_non_conforming(
            audit=audit, indicator=indicator, response=response, actor_user_id=actor_user_id
        )
        return response
