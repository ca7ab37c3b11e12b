"""
Approval Gate - the only path from pending_approval to approved.

Flow for change orders, payment certificates and contract payments:
1. Load the object under a row lock; tenant check before anything else
2. Actor must hold projects.cost.approve (or the bypass permission)
3. Object must be pending_approval
4. Evaluate the tenant's cost approval policy (fresh, never cached)
5. Over-budget block -> BLOCKED_BY_POLICY, object untouched
6. Dual approval required -> first sign-off is recorded, the same user
   cannot give the second one (DUAL_APPROVAL_REQUIRED), a different
   approver completes the transition
7. Otherwise approve directly

Rejections change nothing on the object and can be retried once the
approval gap is closed (e.g. a second approver is found or the policy changes).
"""
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from zena.api.core.config import settings
from zena.api.core.errors import BlockedByPolicy, DualApprovalRequired, Forbidden
from zena.api.core.logging import get_logger
from zena.api.core.security import CurrentUser
from zena.api.models.cost_object import CostObjectStatus, CostObjectType
from zena.api.models.project import Project
from zena.api.services import cost_object_service
from zena.api.services.audit_service import audit_log
from zena.api.services.cost_policy_service import get_thresholds, project_over_budget_percent
from zena.api.services.permission_catalog import APPROVE_UNLIMITED, COST_APPROVE
from zena.api.services.policy_evaluator import PolicyDecision, evaluate
from zena.api.services.status_fsm import transition_status, validate_transition

logger = get_logger("approval")

STAGE_FIRST = "first"
STAGE_SECOND = "second"
STAGE_SINGLE = "single"
STAGE_BYPASS = "bypass"


@dataclass
class ApprovalOutcome:
    """Result of an approval attempt that was not rejected."""
    obj: object
    stage: str
    decision: PolicyDecision

    @property
    def completed(self) -> bool:
        return self.stage != STAGE_FIRST


class ApprovalGate:
    """Evaluates the cost approval policy at the moment of approval."""

    def __init__(self, db: Session):
        self.db = db

    def evaluate_for(self, current_user: CurrentUser, obj) -> PolicyDecision:
        """Policy decision for an object and actor, without side effects."""
        project = self.db.query(Project).filter(Project.id == obj.project_id).first()
        percent = project_over_budget_percent(self.db, obj.tenant_id, project) if project else None
        return evaluate(
            object_type=obj.object_type,
            amount=obj.amount,
            policy=get_thresholds(self.db, obj.tenant_id),
            over_budget_percent=percent,
            actor_permissions=current_user.permissions,
            over_budget_inclusive=settings.over_budget_inclusive,
        )

    def approve(
        self,
        current_user: CurrentUser,
        object_type: CostObjectType,
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> ApprovalOutcome:
        """
        Attempt to approve a cost object.

        Returns:
            ApprovalOutcome with stage first (sign-off recorded, still pending),
            second (dual approval completed), single or bypass

        Raises:
            NotFound(404): Object does not exist in the project
            TenantMismatch(403): Object belongs to another tenant
            Forbidden(403): Actor cannot approve cost objects
            InvalidStatusTransition(422): Object is not pending_approval
            BlockedByPolicy(422): Project over-budget tolerance exceeded
            DualApprovalRequired(403): Second approval attempted by the first approver
        """
        obj = cost_object_service.get_object(
            self.db, current_user, object_type, project_id, object_id, for_update=True
        )

        if not current_user.has(COST_APPROVE, APPROVE_UNLIMITED):
            raise Forbidden()

        validate_transition(obj.status, CostObjectStatus.APPROVED, str(obj.id))

        decision = self.evaluate_for(current_user, obj)
        logger.info(
            "Policy decision for %s %s (amount=%s) by %s: %s",
            type(obj).__name__, obj.id, obj.amount, current_user.actor, decision.as_dict()
        )
        request_meta = {"ip_address": ip_address, "user_agent": user_agent}

        if decision.blocked:
            self._audit(obj, current_user, "policy_blocked", {
                "code": "policy.over_budget",
                "amount": str(obj.amount),
                "threshold_percent": str(decision.over_budget_threshold_compared),
                "over_budget_percent": str(decision.over_budget_percent),
            }, **request_meta)
            self.db.commit()
            raise BlockedByPolicy(
                f"Approval blocked: project is {decision.over_budget_percent}% over budget "
                f"(tolerance {decision.over_budget_threshold_compared}%)",
                extra={"decision": decision.as_dict()}
            )

        if decision.requires_dual_approval:
            if obj.first_approved_by is None:
                return self._record_first_signoff(obj, current_user, decision, request_meta)

            if obj.first_approved_by == current_user.actor:
                self._audit(obj, current_user, "approval_blocked", {
                    "code": "policy.threshold_exceeded",
                    "amount": str(obj.amount),
                    "threshold": str(decision.threshold_compared),
                    "reason": "same_approver",
                }, **request_meta)
                self.db.commit()
                raise DualApprovalRequired(
                    "Second approval must be performed by a different approver",
                    extra={"decision": decision.as_dict(), "first_approved_by": obj.first_approved_by}
                )

            now = cost_object_service.utcnow()
            obj.second_approved_by = current_user.actor
            obj.second_approved_at = now
            return self._finalize(obj, current_user, decision, STAGE_SECOND, request_meta)

        stage = STAGE_BYPASS if decision.bypassed else STAGE_SINGLE
        return self._finalize(obj, current_user, decision, stage, request_meta)

    def _record_first_signoff(self, obj, current_user: CurrentUser, decision: PolicyDecision, request_meta) -> ApprovalOutcome:
        obj.first_approved_by = current_user.actor
        obj.first_approved_at = cost_object_service.utcnow()
        obj.requires_dual_approval = True
        self._audit(obj, current_user, "first_approved", {
            "amount": str(obj.amount),
            "threshold": str(decision.threshold_compared),
            "requires_dual_approval": True,
        }, **request_meta)
        self.db.commit()
        self.db.refresh(obj)
        return ApprovalOutcome(obj=obj, stage=STAGE_FIRST, decision=decision)

    def _finalize(self, obj, current_user: CurrentUser, decision: PolicyDecision, stage: str, request_meta) -> ApprovalOutcome:
        old_status = transition_status(obj, CostObjectStatus.APPROVED)
        obj.approved_by = current_user.actor
        obj.approved_at = cost_object_service.utcnow()
        self._audit(obj, current_user, "approved", {
            "old_status": old_status.value,
            "new_status": CostObjectStatus.APPROVED.value,
            "stage": stage,
            "first_approved_by": obj.first_approved_by,
            "second_approved_by": obj.second_approved_by,
            "policy_risk": decision.policy_risk,
        }, **request_meta)
        self.db.commit()
        self.db.refresh(obj)
        logger.info("%s %s approved (stage=%s) by %s", type(obj).__name__, obj.id, stage, current_user.actor)
        return ApprovalOutcome(obj=obj, stage=stage, decision=decision)

    def _audit(self, obj, current_user: CurrentUser, action: str, details: dict,
               ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
        audit_log(
            db=self.db,
            tenant_id=obj.tenant_id,
            project_id=obj.project_id,
            entity_type=type(obj).__name__,
            entity_id=obj.id,
            event_type=cost_object_service.event_name(obj, action),
            actor=current_user.actor,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
            commit=False
        )
