"""
Initialize database schema for Zena.
Creates all tables from SQLAlchemy models and seeds the system roles.
"""
import sys

from zena.api.db.base import Base
from zena.api.db.session import SessionLocal, engine
from zena.api.services.rbac_service import seed_system_roles

# Import all models to ensure they're registered
import zena.api.models  # noqa: F401

print("Creating all database tables...")
print(f"Database URL: {engine.url.render_as_string(hide_password=True)}")

try:
    Base.metadata.create_all(bind=engine)
    print("All tables created successfully")

    print("\nCreated tables:")
    for table in Base.metadata.sorted_tables:
        print(f"  - {table.name}")

    db = SessionLocal()
    try:
        roles = seed_system_roles(db)
        print(f"\nSeeded {len(roles)} system roles:")
        for role in roles:
            print(f"  - {role.slug}: {len(role.permissions)} permissions")
    finally:
        db.close()

except Exception as e:
    print(f"Error initializing database: {e}")
    sys.exit(1)
