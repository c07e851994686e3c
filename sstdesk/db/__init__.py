from sstdesk.db.base import Base

__all__ = ["Base"]
