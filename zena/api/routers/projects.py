"""
Project and contract endpoints.
"""
import uuid
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import List, Optional
from zena.api.core.config import settings
from zena.api.core.security import CurrentUser, get_client_ip, get_user_agent, require_permission
from zena.api.db.session import get_db
from zena.api.models.project import Contract, Project
from zena.api.schemas.project import (
    ContractCreate,
    ContractResponse,
    OverBudgetResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)
from zena.api.services.audit_service import audit_log
from zena.api.services.cost_object_service import get_project as load_project
from zena.api.services.cost_policy_service import get_thresholds, project_over_budget_percent
from zena.api.services.permission_catalog import COST_EDIT, COST_VIEW, PROJECT_READ, PROJECT_WRITE
from zena.api.services.policy_evaluator import exceeds_over_budget

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.post("", response_model=ProjectResponse, status_code=201)
def create_project(
    project_data: ProjectCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(PROJECT_WRITE))
):
    """Create a project in the caller's tenant."""
    project = Project(
        tenant_id=current_user.tenant_id,
        name=project_data.name,
        code=project_data.code,
        description=project_data.description,
        budget_total=project_data.budget_total,
        created_by=current_user.actor
    )
    db.add(project)
    db.flush()

    audit_log(
        db=db,
        tenant_id=current_user.tenant_id,
        project_id=project.id,
        entity_type="Project",
        entity_id=project.id,
        event_type="project.created",
        actor=current_user.actor,
        details={"name": project.name, "budget_total": str(project.budget_total)},
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        commit=False
    )
    db.commit()
    db.refresh(project)
    return project


@router.get("", response_model=List[ProjectResponse])
def list_projects(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(PROJECT_READ))
):
    """List the tenant's projects, optionally filtered by status."""
    query = db.query(Project).filter(Project.tenant_id == current_user.tenant_id)
    if status:
        query = query.filter(Project.status == status)
    return query.order_by(Project.name).all()


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(PROJECT_READ))
):
    return load_project(db, current_user, project_id)


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: uuid.UUID,
    project_data: ProjectUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(PROJECT_WRITE))
):
    """Update a project. Budget changes feed straight into the over-budget gate."""
    project = load_project(db, current_user, project_id)

    # Update only provided fields
    changes = {}
    for field, value in project_data.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "status", "budget_total"):
            continue
        setattr(project, field, value)
        changes[field] = str(value) if value is not None else None

    audit_log(
        db=db,
        tenant_id=current_user.tenant_id,
        project_id=project.id,
        entity_type="Project",
        entity_id=project.id,
        event_type="project.updated",
        actor=current_user.actor,
        details={"changes": changes},
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        commit=False
    )
    db.commit()
    db.refresh(project)
    return project


@router.post("/{project_id}/contracts", response_model=ContractResponse, status_code=201)
def create_contract(
    project_id: uuid.UUID,
    contract_data: ContractCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(COST_EDIT))
):
    project = load_project(db, current_user, project_id)
    contract = Contract(
        tenant_id=current_user.tenant_id,
        project_id=project.id,
        code=contract_data.code,
        name=contract_data.name,
        base_amount=contract_data.base_amount,
        created_by=current_user.actor
    )
    db.add(contract)
    db.flush()

    audit_log(
        db=db,
        tenant_id=current_user.tenant_id,
        project_id=project.id,
        entity_type="Contract",
        entity_id=contract.id,
        event_type="contract.created",
        actor=current_user.actor,
        details={"code": contract.code, "base_amount": str(contract.base_amount)},
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        commit=False
    )
    db.commit()
    db.refresh(contract)
    return contract


@router.get("/{project_id}/contracts", response_model=List[ContractResponse])
def list_contracts(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(COST_VIEW))
):
    project = load_project(db, current_user, project_id)
    return db.query(Contract).filter(
        Contract.tenant_id == current_user.tenant_id,
        Contract.project_id == project.id
    ).order_by(Contract.code).all()


@router.get("/{project_id}/over-budget", response_model=OverBudgetResponse)
def get_over_budget(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(COST_VIEW))
):
    """
    Over-budget percentage against the tenant's tolerance.

    policy_risk reports whether approvals on this project currently trip the
    over-budget check; blocks_approval whether the policy turns that into a block.
    """
    project = load_project(db, current_user, project_id)
    thresholds = get_thresholds(db, current_user.tenant_id)
    percent = project_over_budget_percent(db, current_user.tenant_id, project)
    risk = exceeds_over_budget(
        percent, thresholds.over_budget_threshold_percent, inclusive=settings.over_budget_inclusive
    )
    return OverBudgetResponse(
        project_id=project.id,
        budget_total=project.budget_total,
        over_budget_percent=percent,
        over_budget_threshold_percent=thresholds.over_budget_threshold_percent,
        policy_risk=risk,
        blocks_approval=risk and thresholds.over_budget_blocks_approval,
    )
