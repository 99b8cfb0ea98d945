"""
Module ORM Registry (``rental_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before
``rental_kernel.db.engine.create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by the kernel's
``create_tables()``; MUST NOT be imported at kernel import time.
"""


def import_all_orm_models() -> None:
    """Import every ``rental_modules.*.orm`` module.  Idempotent."""
    import rental_modules.schedules.orm  # noqa: F401
