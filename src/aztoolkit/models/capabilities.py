"""Capabilities a resource kind can carry.

Resource kinds differ only in which of these they support; the Resource
class checks the set instead of relying on subclassing.
"""

from enum import StrEnum


class Capability(StrEnum):
    DELETABLE = "deletable"
    UPDATABLE = "updatable"
    HAS_SUB_MODULES = "has_sub_modules"
    SERVICE_LINKED = "service_linked"  # can be the consumer of a service linker


__all__ = ["Capability"]
