"""
Shared utilities for the TAGLINE components.

This package contains common functionality used by the tagline driver and the RAID array:
- socket_protocol: newline-delimited JSON framing for the RAID bus over TCP
- logging_config: per-process logging setup
"""
