"""
TAGLINE: virtual block store over a RAID array.

Maps logical (tag, block offset) addresses onto (disk, physical block)
locations, spreads new blocks over the least-filled disks and drives the
RAID bus to move the data.
"""
