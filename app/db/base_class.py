# /app/db/base_class.py

from sqlalchemy.orm import declarative_base, declared_attr


class _Base:
    # Tables are named after their model with a trailing "s" unless a model
    # overrides `__tablename__` (e.g. "students" for Student).
    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower() + "s"


Base = declarative_base(cls=_Base)
