"""
Tagline Store Models

The store keeps its metadata in SQLAlchemy tables:
- taglines: tags created so far (bounded by max_tags)
- block_mappings: (tag, block_offset) -> (disk_id, physical_block)
- disk_usage: next free physical block per disk
- store_metadata: singleton row with the service state and tag limit
"""

from sqlalchemy import Column, Integer, Enum, ForeignKey, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import declarative_base, relationship
from dataclasses import dataclass
from datetime import datetime
import enum

Base = declarative_base()

# ============================================================================
# ENUM DEFINITIONS
# ============================================================================

class ServiceState(str, enum.Enum):
    """Tagline service lifecycle state"""
    UNINITIALIZED = "UNINITIALIZED"
    READY = "READY"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class PhysicalLocation:
    """One fixed-size block on one disk."""
    disk_id: int
    physical_block: int

# ============================================================================
# CORE MODEL DEFINITIONS
# ============================================================================

class TagLine(Base):
    """Logical sequence of blocks identified by a tag number"""
    __tablename__ = "taglines"

    tag = Column(Integer, primary_key=True, autoincrement=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    blocks = relationship(
        "BlockMapping",
        back_populates="tagline",
        cascade="all, delete-orphan",
        order_by="BlockMapping.block_offset",
    )


class BlockMapping(Base):
    """Logical block offset of a tagline mapped onto a physical disk block"""
    __tablename__ = "block_mappings"

    id = Column(Integer, primary_key=True)
    tag = Column(Integer, ForeignKey("taglines.tag"), nullable=False)
    block_offset = Column(Integer, nullable=False)

    # Physical placement
    disk_id = Column(Integer, nullable=False)
    physical_block = Column(Integer, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    tagline = relationship("TagLine", back_populates="blocks")

    __table_args__ = (
        UniqueConstraint("tag", "block_offset", name="uq_block_mappings_logical"),
        UniqueConstraint("disk_id", "physical_block", name="uq_block_mappings_physical"),
        Index("idx_block_mappings_tag", "tag"),
    )

    @property
    def location(self) -> PhysicalLocation:
        return PhysicalLocation(disk_id=self.disk_id, physical_block=self.physical_block)


class DiskUsage(Base):
    """Allocation counter of one disk in the array"""
    __tablename__ = "disk_usage"

    disk_id = Column(Integer, primary_key=True, autoincrement=False)
    next_block = Column(Integer, nullable=False, default=0)  # never decremented
    capacity_blocks = Column(Integer, nullable=False)


class StoreMetadata(Base):
    """
    Store-wide settings.
    Single-row table holding the service state and the tag limit.
    """
    __tablename__ = "store_metadata"

    id = Column(Integer, primary_key=True, default=1)  # Always 1 (singleton)
    state = Column(Enum(ServiceState), nullable=False, default=ServiceState.UNINITIALIZED)
    max_tags = Column(Integer, nullable=False, default=0)
    disk_count = Column(Integer, nullable=False, default=0)

    initialized_at = Column(DateTime)
    closed_at = Column(DateTime)
