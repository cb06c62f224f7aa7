"""Built-in collectors.

Importing this package registers every built-in collector with the global
collector registry, in the order listed here.
"""

from collectors import multipath, meminfo, zombies, bonding, filesum  # noqa: F401

__all__ = ["multipath", "meminfo", "zombies", "bonding", "filesum"]
