"""
RAID: the simulated disk array behind the tagline driver.

Components:
- opcodes: 64-bit bus request/response codec
- disk: memory and file backed disks
- array: request execution against the disks
- bus: in-process and TCP bus transports
- data_handler: TCP bus server
"""
