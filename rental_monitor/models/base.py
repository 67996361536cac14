from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for the monitor's ORM models.

    The models are used for Alembic metadata and for building Core insert,
    select and delete statements; rows are mapped into pydantic schemas by the
    readers rather than handed out as ORM instances.
    """

    pass
