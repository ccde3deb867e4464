"""Address translation, allocation and block IO services."""
