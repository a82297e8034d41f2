import os

# Set a dummy DATABASE_URL before any imports so the lazy engine doesn't need psycopg2
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from sqlalchemy.orm import configure_mappers  # noqa: E402
from sqlalchemy.orm import instrumentation as sa_instrumentation  # noqa: E402
from sqlalchemy.orm.state import InstanceState  # noqa: E402

# Import all models to register them with the mapper
from tmdash.models.account import Account  # noqa: E402, F401
from tmdash.models.card import Card  # noqa: E402, F401
from tmdash.models.event import Event  # noqa: E402, F401
from tmdash.models.purchase import Purchase  # noqa: E402, F401
from tmdash.models.setting import AppSetting  # noqa: E402, F401
from tmdash.models.job import JobRun  # noqa: E402, F401

# Configure all mappers so InstrumentedAttribute.impl is populated
configure_mappers()


def _patched_new(cls, *args, **kwargs):
    """Patch __new__ so SQLAlchemy instances created without __init__ still work."""
    instance = object.__new__(cls)
    manager = sa_instrumentation.manager_of_class(cls)
    if manager is not None:
        instance._sa_instance_state = InstanceState(instance, manager)
    return instance


# Apply patch to models used in tests with __new__
Card.__new__ = staticmethod(_patched_new)
