from importlib import import_module

from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Table modules register themselves on Base.metadata when imported; create_all()
# and Alembic autogenerate only see what has been imported by then.
for _name in ("forecast", "user_report"):
    import_module(f"queuecast.models.{_name}")
