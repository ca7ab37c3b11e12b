"""
Run Alembic migrations with sync psycopg2 connection, then seed system roles.
"""
import os
from alembic.config import Config
from alembic import command

# Force sync postgresql URL for migrations
db_url = os.getenv("DATABASE_URL", "")
sync_url = db_url.replace("postgresql+asyncpg://", "postgresql+psycopg2://")

# Create Alembic config
alembic_cfg = Config("alembic.ini")
alembic_cfg.set_main_option("sqlalchemy.url", sync_url)

# Run migrations
print(f"Running migrations with URL: {sync_url.split('@')[0]}@...")
command.upgrade(alembic_cfg, "head")
print("Migrations completed successfully")

from zena.api.db.session import SessionLocal  # noqa: E402
from zena.api.services.rbac_service import seed_system_roles  # noqa: E402

db = SessionLocal()
try:
    seed_system_roles(db)
    print("System roles seeded")
finally:
    db.close()
