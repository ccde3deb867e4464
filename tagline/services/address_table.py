"""
Address Table
Per-tag mapping from logical block offset to physical location.
The authoritative index of the store; lookups never allocate.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select

from tagline.errors import CapacityExceeded, UnknownTag
from tagline.models import BlockMapping, PhysicalLocation, TagLine
from tagline.store import Store

logger = logging.getLogger(__name__)


class AddressTable:
    """
    Logical (tag, offset) -> PhysicalLocation index.
    `record` is the only mutator of mappings.
    """

    def __init__(self, store: Store):
        self.store = store
        self.db = store.db

    def lookup(self, tag: int, offset: int) -> Optional[PhysicalLocation]:
        """Return the physical location of (tag, offset), or None if unmapped."""
        mapping = self._mapping(tag, offset)
        return mapping.location if mapping else None

    def _mapping(self, tag: int, offset: int) -> Optional[BlockMapping]:
        return self.db.scalars(
            select(BlockMapping).where(
                BlockMapping.tag == tag, BlockMapping.block_offset == offset
            )
        ).first()

    def tag_exists(self, tag: int) -> bool:
        return self.db.get(TagLine, tag) is not None

    def tag_count(self) -> int:
        return self.db.scalar(select(func.count()).select_from(TagLine)) or 0

    def create_tag(self, tag: int) -> TagLine:
        """
        Create an empty tagline.

        Raises:
            CapacityExceeded: tag limit reached, or the tag already exists
        """
        if self.tag_exists(tag):
            raise CapacityExceeded(f"Tagline {tag} already exists")

        max_tags = self.store.metadata().max_tags
        if self.tag_count() >= max_tags:
            raise CapacityExceeded(f"Tag limit reached ({max_tags} taglines)")

        tagline = TagLine(tag=tag)
        self.db.add(tagline)
        self.db.flush()
        logger.debug(f"Created tagline {tag}")
        return tagline

    def record(self, tag: int, offset: int, location: PhysicalLocation) -> None:
        """
        Insert or overwrite the mapping for (tag, offset).

        Raises:
            UnknownTag: the tagline was never created
            ValueError: location is already mapped to another logical block
        """
        mapping = self._mapping(tag, offset)
        if mapping is not None and mapping.location == location:
            return

        owner = self.db.scalars(
            select(BlockMapping).where(
                BlockMapping.disk_id == location.disk_id,
                BlockMapping.physical_block == location.physical_block,
            )
        ).first()
        if owner is not None:
            raise ValueError(
                f"Physical block {location.physical_block} on disk {location.disk_id} "
                f"is already mapped to tagline {owner.tag} block {owner.block_offset}"
            )

        if mapping is None:
            tagline = self.db.get(TagLine, tag)
            if tagline is None:
                raise UnknownTag(f"Tagline {tag} was never created")
            mapping = BlockMapping(block_offset=offset)
            tagline.blocks.append(mapping)
        mapping.disk_id = location.disk_id
        mapping.physical_block = location.physical_block
        self.db.flush()

    def mapped_blocks(self, tag: int) -> List[Tuple[int, PhysicalLocation]]:
        """Offset-ordered mappings of one tagline."""
        mappings = self.db.scalars(
            select(BlockMapping)
            .where(BlockMapping.tag == tag)
            .order_by(BlockMapping.block_offset)
        ).all()
        return [(m.block_offset, m.location) for m in mappings]

    def clear(self) -> None:
        """Drop every tagline and mapping (store teardown only)."""
        for tagline in self.db.scalars(select(TagLine)).all():
            self.db.delete(tagline)
        self.db.flush()
