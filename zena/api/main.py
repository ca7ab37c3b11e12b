"""
Zena cost governance API (FastAPI).

Responsibilities:
- Gate approvals of change orders, payment certificates and contract payments
  through the tenant's cost approval policy (dual approval, over-budget block)
- Administer roles, role profiles and user role assignments against the
  permission catalog
- Inspect effective permissions with the roles that grant them
- Keep per-user preferences consistent under concurrent partial updates
- Log every state change to audit_log

V1 Endpoints:
- GET/PUT/PATCH /api/v1/admin/cost-approval-policy
- GET    /api/v1/admin/cost-governance-overview
- GET    /api/v1/admin/permissions
- GET    /api/v1/admin/permissions/inspect
- CRUD   /api/v1/admin/roles, PUT /api/v1/admin/roles/{role_id}/permissions
- CRUD   /api/v1/admin/role-profiles
- GET    /api/v1/admin/users, PUT /api/v1/admin/users/{user_id}/roles,
         PUT /api/v1/admin/users/{user_id}/assign-profile
- GET    /api/v1/me, GET/PATCH /api/v1/me/preferences
- CRUD   /api/v1/projects, /api/v1/projects/{project_id}/contracts,
         GET /api/v1/projects/{project_id}/over-budget
- CRUD   /api/v1/projects/{project_id}/{change-orders|certificates|payments}
         plus /submit, /approve, /reject, /block, /resubmit, /policy-preview

Local dev: python -m uvicorn zena.api.main:app --reload
"""
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from zena.api.core.config import settings
from zena.api.core.errors import request_validation_handler, unhandled_error_handler
from zena.api.core.logging import logger
from zena.api.routers import (
    cost_objects,
    cost_policy,
    governance,
    preferences,
    projects,
    role_profiles,
    roles,
    users,
)

# Create FastAPI app
app = FastAPI(
    title="Zena Cost Governance API",
    description="Cost approval policy, approval gate and RBAC administration",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# Include routers
app.include_router(cost_policy.router)
app.include_router(governance.router)
app.include_router(roles.router)
app.include_router(role_profiles.router)
app.include_router(users.router)
app.include_router(preferences.router)  # before me_router, more specific prefix
app.include_router(users.me_router)
app.include_router(projects.router)
app.include_router(cost_objects.change_orders_router)
app.include_router(cost_objects.certificates_router)
app.include_router(cost_objects.payments_router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "zena-api"}


@app.on_event("startup")
async def startup():
    """Startup event."""
    logger.info("Zena cost governance API starting...")
    logger.info(
        "Over-budget boundary: %s, governance window: %s days",
        "inclusive" if settings.over_budget_inclusive else "exclusive",
        settings.GOVERNANCE_WINDOW_DAYS
    )


@app.on_event("shutdown")
async def shutdown():
    """Shutdown event."""
    logger.info("Zena cost governance API shutting down...")
