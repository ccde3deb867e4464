"""
Tagline Store

Top-level owner of the tag table, the disk usage counters and the service state.
One Store is passed explicitly to the address table, the disk load tracker and
the tagline service; nothing here lives in module globals.
"""

from contextlib import contextmanager
from typing import Optional

from sqlalchemy.orm import Session

from tagline.config import StoreConfig
from tagline.database import get_session_factory
from tagline.models import ServiceState, StoreMetadata


class Store:
    """Metadata session plus the geometry of the block store."""

    def __init__(self, session: Session, config: Optional[StoreConfig] = None):
        """
        Args:
            session: SQLAlchemy session holding the store tables
            config: Store geometry (block size, disks, blocks per disk)
        """
        self.db = session
        self.config = config or StoreConfig()

    @classmethod
    def open(cls, database_url: str, config: Optional[StoreConfig] = None) -> "Store":
        session_factory = get_session_factory(database_url)
        return cls(session_factory(), config)

    def metadata(self) -> StoreMetadata:
        meta = self.db.get(StoreMetadata, 1)
        if meta is None:
            meta = StoreMetadata(id=1, state=ServiceState.UNINITIALIZED, max_tags=0, disk_count=0)
            self.db.add(meta)
            self.db.flush()
        return meta

    @property
    def state(self) -> ServiceState:
        return ServiceState(self.metadata().state)

    @contextmanager
    def transaction(self):
        """Commit the metadata changes of one operation, or roll all of them back."""
        try:
            yield self.db
            self.db.commit()
        except BaseException:
            self.db.rollback()
            raise

    def close(self) -> None:
        self.db.close()
