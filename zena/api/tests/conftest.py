"""
Shared fixtures: in-memory SQLite database, seeded roles, tenants, users and tokens.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-use")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from zena.api.core.security import create_access_token
from zena.api.db.base import Base
from zena.api.db.session import get_db
from zena.api.main import app
from zena.api.models import (
    COST_OBJECT_MODELS,
    Contract,
    CostApprovalPolicy,
    CostObjectStatus,
    CostObjectType,
    Project,
    Role,
    RolePermission,
    Tenant,
    User,
)
from zena.api.services.permission_catalog import APPROVE_UNLIMITED, COST_APPROVE, COST_VIEW, PROJECT_READ
from zena.api.services.rbac_service import seed_system_roles


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    seed_system_roles(session)
    yield session
    session.close()


@pytest.fixture
def client(session_factory, db):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def system_role(db, slug):
    return db.query(Role).filter(Role.tenant_id.is_(None), Role.slug == slug).one()


def make_user(db, tenant, name, *roles):
    user = User(tenant_id=tenant.id, name=name, email=f"{name}@{tenant.name}.test")
    user.roles = list(roles)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth(user):
    """Authorization header for a user."""
    return {"Authorization": f"Bearer {create_access_token(user.id, user.tenant_id)}"}


@pytest.fixture
def tenant(db):
    tenant = Tenant(name="acme")
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def other_tenant(db):
    tenant = Tenant(name="globex")
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def admin(db, tenant):
    return make_user(db, tenant, "admin", system_role(db, "admin"))


@pytest.fixture
def approver(db, tenant):
    return make_user(db, tenant, "approver", system_role(db, "cost_controller"))


@pytest.fixture
def second_approver(db, tenant):
    return make_user(db, tenant, "second", system_role(db, "cost_controller"))


@pytest.fixture
def viewer(db, tenant):
    return make_user(db, tenant, "viewer", system_role(db, "viewer"))


@pytest.fixture
def bypass_user(db, tenant):
    role = Role(tenant_id=tenant.id, name="Finance Director", slug="finance_director")
    role.permission_rows = [
        RolePermission(permission=key) for key in (APPROVE_UNLIMITED, COST_APPROVE, COST_VIEW, PROJECT_READ)
    ]
    db.add(role)
    db.commit()
    return make_user(db, tenant, "director", role)


@pytest.fixture
def outsider(db, other_tenant):
    return make_user(db, other_tenant, "outsider", system_role(db, "cost_controller"))


@pytest.fixture
def project(db, tenant, admin):
    project = Project(
        tenant_id=tenant.id,
        name="Riverside Tower",
        code="RT-01",
        budget_total=Decimal("1000000"),
        created_by=str(admin.id),
    )
    db.add(project)
    db.commit()
    return project


@pytest.fixture
def contract(db, project):
    contract = Contract(
        tenant_id=project.tenant_id,
        project_id=project.id,
        code="C-001",
        name="Main works",
        base_amount=Decimal("800000"),
        created_by=project.created_by,
    )
    db.add(contract)
    db.commit()
    return contract


def set_policy(db, tenant, **values):
    policy = db.query(CostApprovalPolicy).filter(CostApprovalPolicy.tenant_id == tenant.id).first()
    if policy is None:
        policy = CostApprovalPolicy(tenant_id=tenant.id)
        db.add(policy)
    for name, value in values.items():
        setattr(policy, name, value)
    db.commit()
    return policy


def make_cost_object(db, contract, amount, object_type=CostObjectType.CHANGE_ORDER,
                     status=CostObjectStatus.PENDING_APPROVAL, code="CO-001", amount_delta=None):
    model = COST_OBJECT_MODELS[object_type]
    extra = {}
    if amount_delta is not None:
        extra["amount_delta"] = Decimal(str(amount_delta))
    obj = model(
        tenant_id=contract.tenant_id,
        project_id=contract.project_id,
        contract_id=contract.id,
        code=code,
        title=f"{code} works",
        amount=Decimal(str(amount)),
        status=status,
        created_by=contract.created_by,
        **extra
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj
