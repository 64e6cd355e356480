# watercan/db/init_db.py
from watercan.db.base import Base

# Registers every table on Base.metadata
from watercan.models import customer, inventory, order, transaction  # noqa: F401


def create_tables(bind):
    Base.metadata.create_all(bind=bind)


def drop_tables(bind):
    Base.metadata.drop_all(bind=bind)
