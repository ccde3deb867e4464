"""
Error kinds raised by the tagline driver.

Every failure in the address table, the allocator or the block I/O adapter is
raised to the caller of the tagline service unchanged.
"""


class TaglineError(Exception):
    """Base class for tagline driver failures."""

    kind = "TaglineError"


class UnknownTag(TaglineError):
    """Read of a tag that was never written."""

    kind = "UnknownTag"


class BlockOutOfRange(TaglineError):
    """Offset beyond the per-tagline maximum, or never written for a known tag."""

    kind = "BlockOutOfRange"


class CapacityExceeded(TaglineError):
    """Tag limit reached or a disk's physical capacity exhausted."""

    kind = "CapacityExceeded"


class BusFailure(TaglineError):
    """The RAID bus reported (or could not deliver) a failed request."""

    kind = "BusFailure"


class NotReady(TaglineError):
    """Operation attempted while the store is not initialized."""

    kind = "NotReady"


ERROR_KINDS = {
    cls.kind: cls
    for cls in (UnknownTag, BlockOutOfRange, CapacityExceeded, BusFailure, NotReady)
}
