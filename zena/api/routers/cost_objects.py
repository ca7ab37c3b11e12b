"""
Cost object endpoints - change orders, payment certificates and contract payments.

All three kinds share one lifecycle, so one router is built per kind:

    draft -> pending_approval -> approved | rejected
                 |      ^
                 v      |
           blocked_by_policy

Approval goes through the ApprovalGate; everything else through cost_object_service.
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from zena.api.core.security import CurrentUser, get_client_ip, get_current_user, get_user_agent, require_permission
from zena.api.db.session import get_db
from zena.api.models.cost_object import CostObjectStatus, CostObjectType
from zena.api.schemas.cost_object import (
    ApprovalResponse,
    CostObjectCreate,
    CostObjectResponse,
    CostObjectUpdate,
    PolicyPreviewResponse,
    StatusReason,
)
from zena.api.services import cost_object_service
from zena.api.services.approval_gate import ApprovalGate
from zena.api.services.permission_catalog import COST_APPROVE, COST_EDIT, COST_VIEW


def _request_meta(request: Request) -> dict:
    return {"ip_address": get_client_ip(request), "user_agent": get_user_agent(request)}


def build_router(object_type: CostObjectType, path: str, tag: str) -> APIRouter:
    router = APIRouter(prefix=f"/api/v1/projects/{{project_id}}/{path}", tags=[tag])

    @router.post("", response_model=CostObjectResponse, status_code=201)
    def create_cost_object(
        project_id: uuid.UUID,
        data: CostObjectCreate,
        request: Request,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_EDIT))
    ):
        """Create a draft."""
        project = cost_object_service.get_project(db, current_user, project_id)
        return cost_object_service.create_object(
            db, current_user, object_type, project, data.model_dump(), **_request_meta(request)
        )

    @router.get("", response_model=List[CostObjectResponse])
    def list_cost_objects(
        project_id: uuid.UUID,
        status_filter: Optional[CostObjectStatus] = Query(None, alias="status"),
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_VIEW))
    ):
        project = cost_object_service.get_project(db, current_user, project_id)
        return cost_object_service.list_objects(db, current_user, object_type, project, status_filter)

    @router.get("/{object_id}", response_model=CostObjectResponse)
    def get_cost_object(
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_VIEW))
    ):
        return cost_object_service.get_object(db, current_user, object_type, project_id, object_id)

    @router.patch("/{object_id}", response_model=CostObjectResponse)
    def update_cost_object(
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        data: CostObjectUpdate,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_EDIT))
    ):
        """Edit a draft. Submitted objects are frozen."""
        obj = cost_object_service.get_object(db, current_user, object_type, project_id, object_id, for_update=True)
        return cost_object_service.update_object(db, current_user, obj, data.model_dump(exclude_unset=True))

    @router.delete("/{object_id}", status_code=204)
    def delete_cost_object(
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_EDIT))
    ):
        obj = cost_object_service.get_object(db, current_user, object_type, project_id, object_id, for_update=True)
        cost_object_service.delete_object(db, current_user, obj)
        return Response(status_code=204)

    @router.post("/{object_id}/submit", response_model=CostObjectResponse)
    def submit_cost_object(
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        request: Request,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_EDIT))
    ):
        """draft -> pending_approval"""
        obj = cost_object_service.get_object(db, current_user, object_type, project_id, object_id, for_update=True)
        return cost_object_service.submit_object(db, current_user, obj, **_request_meta(request))

    @router.post("/{object_id}/approve", response_model=ApprovalResponse)
    def approve_cost_object(
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        request: Request,
        response: Response,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(get_current_user)
    ):
        """
        Approve through the cost approval policy.

        Returns 202 when only the first of two required sign-offs was recorded,
        200 once the object is approved.
        """
        outcome = ApprovalGate(db).approve(
            current_user, object_type, project_id, object_id, **_request_meta(request)
        )
        if not outcome.completed:
            response.status_code = status.HTTP_202_ACCEPTED
        return ApprovalResponse(
            stage=outcome.stage,
            completed=outcome.completed,
            decision=outcome.decision.as_dict(),
            cost_object=CostObjectResponse.model_validate(outcome.obj),
        )

    @router.post("/{object_id}/reject", response_model=CostObjectResponse)
    def reject_cost_object(
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        data: StatusReason,
        request: Request,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_APPROVE))
    ):
        obj = cost_object_service.get_object(db, current_user, object_type, project_id, object_id, for_update=True)
        return cost_object_service.reject_object(db, current_user, obj, data.reason, **_request_meta(request))

    @router.post("/{object_id}/block", response_model=CostObjectResponse)
    def block_cost_object(
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        data: StatusReason,
        request: Request,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_APPROVE))
    ):
        """Put a pending object on policy hold."""
        obj = cost_object_service.get_object(db, current_user, object_type, project_id, object_id, for_update=True)
        return cost_object_service.hold_object(db, current_user, obj, data.reason, **_request_meta(request))

    @router.post("/{object_id}/resubmit", response_model=CostObjectResponse)
    def resubmit_cost_object(
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        request: Request,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_EDIT))
    ):
        """blocked_by_policy -> pending_approval; earlier sign-offs are discarded."""
        obj = cost_object_service.get_object(db, current_user, object_type, project_id, object_id, for_update=True)
        return cost_object_service.resubmit_object(db, current_user, obj, **_request_meta(request))

    @router.get("/{object_id}/policy-preview", response_model=PolicyPreviewResponse)
    def preview_policy(
        project_id: uuid.UUID,
        object_id: uuid.UUID,
        db: Session = Depends(get_db),
        current_user: CurrentUser = Depends(require_permission(COST_VIEW))
    ):
        """Decision the approval gate would take if the caller approved now."""
        obj = cost_object_service.get_object(db, current_user, object_type, project_id, object_id)
        decision = ApprovalGate(db).evaluate_for(current_user, obj)
        return PolicyPreviewResponse(object_id=obj.id, decision=decision.as_dict())

    return router


change_orders_router = build_router(CostObjectType.CHANGE_ORDER, "change-orders", "change-orders")
certificates_router = build_router(CostObjectType.CERTIFICATE, "certificates", "certificates")
payments_router = build_router(CostObjectType.PAYMENT, "payments", "payments")
