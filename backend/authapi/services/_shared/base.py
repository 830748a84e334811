from __future__ import annotations

from authapi.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


class BaseService:
    """
    Base class for application services.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    - Token denials are values, not exceptions; only failures raise.
    """

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()
