"""Resource identity and addressing.

Philosophy:
- A ResourceId is a value: subscription, resource group, module path, name
- Equality and hashing use the normalized (lower-case) string form
- Azure resource ids are case-insensitive, so are we

Public API:
    ResourceId: Identity value used as cache key everywhere
    name_from_resource_id: Last segment of a resource id string
    resource_group_from_resource_id: Resource group segment of a resource id string

Example:
    >>> rid = ResourceId("sub-1", "my-rg", "providers/Microsoft.Web/sites", "my-app")
    >>> str(rid)
    '/subscriptions/sub-1/resourceGroups/my-rg/providers/Microsoft.Web/sites/my-app'
    >>> rid == ResourceId.parse(str(rid).upper())
    True
"""

from dataclasses import dataclass, field

from aztoolkit.exceptions import InvariantViolation


@dataclass(frozen=True, eq=False)
class ResourceId:
    """Identity of a resource.

    Attributes:
        subscription_id: Azure subscription id
        resource_group: Resource group name, None for subscription-scoped resources
        module_path: Path of the owning module below the resource group,
            e.g. "providers/Microsoft.Web/sites" or
            "providers/Microsoft.Web/sites/my-app/slots"
        name: Resource name (empty for the subscription itself)
    """

    subscription_id: str
    resource_group: str | None
    module_path: str
    name: str
    _normalized: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.subscription_id or not self.subscription_id.strip():
            raise InvariantViolation("Subscription id cannot be blank")
        if self.resource_group is not None and not self.resource_group.strip():
            raise InvariantViolation("Resource group cannot be blank")
        if self.module_path.strip("/") and not self.name.strip():
            raise InvariantViolation(f"Resource name cannot be blank (module '{self.module_path}')")
        object.__setattr__(self, "module_path", self.module_path.strip("/"))
        object.__setattr__(self, "_normalized", str(self).lower())

    @classmethod
    def for_subscription(cls, subscription_id: str) -> "ResourceId":
        """Id of a subscription, the root of every resource tree."""
        return cls(subscription_id, None, "", "")

    @classmethod
    def parse(cls, resource_id: str) -> "ResourceId":
        """Parse an Azure resource id string.

        Args:
            resource_id: Id such as /subscriptions/s/resourceGroups/rg/providers/ns/type/name

        Returns:
            ResourceId

        Raises:
            InvariantViolation: If the string is not a subscription-rooted id
        """
        segments = [s for s in (resource_id or "").strip().split("/") if s]
        if len(segments) < 2 or segments[0].lower() != "subscriptions":
            raise InvariantViolation(f"Invalid resource id: '{resource_id}'")

        subscription_id = segments[1]
        rest = segments[2:]
        resource_group = None
        if len(rest) >= 2 and rest[0].lower() == "resourcegroups":
            resource_group = rest[1]
            rest = rest[2:]

        if not rest:
            return cls(subscription_id, resource_group, "", "")
        if len(rest) == 1:
            raise InvariantViolation(f"Invalid resource id: '{resource_id}'")
        return cls(subscription_id, resource_group, "/".join(rest[:-1]), rest[-1])

    @property
    def is_subscription(self) -> bool:
        return not self.module_path and self.resource_group is None

    @property
    def module_name(self) -> str:
        """Last segment of the module path ("sites", "slots", "flexibleServers")."""
        return self.module_path.rsplit("/", 1)[-1]

    @property
    def relative_path(self) -> str:
        """Path of this resource below its resource group (module path + name)."""
        if not self.module_path:
            return ""
        return f"{self.module_path}/{self.name}"

    @property
    def normalized(self) -> str:
        return self._normalized

    def child_module_path(self, segment: str) -> str:
        """Module path of a sub-module hanging off this resource."""
        if not self.relative_path:
            return segment.strip("/")
        return f"{self.relative_path}/{segment.strip('/')}"

    def child(self, segment: str, name: str) -> "ResourceId":
        """Id of a sub-resource named `name` in sub-module `segment`."""
        return ResourceId(self.subscription_id, self.resource_group, self.child_module_path(segment), name)

    def __str__(self) -> str:
        parts = [f"/subscriptions/{self.subscription_id}"]
        if self.resource_group is not None:
            parts.append(f"/resourceGroups/{self.resource_group}")
        if self.module_path:
            parts.append(f"/{self.module_path}/{self.name}")
        return "".join(parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceId):
            return NotImplemented
        return self._normalized == other._normalized

    def __hash__(self) -> int:
        return hash(self._normalized)


def name_from_resource_id(resource_id: str) -> str:
    """Return the resource name of an id string.

    Example:
        >>> name_from_resource_id("/subscriptions/s/resourceGroups/rg/providers/ns/type/app")
        'app'
    """
    return ResourceId.parse(resource_id).name


def resource_group_from_resource_id(resource_id: str) -> str | None:
    """Return the resource group of an id string, None when subscription-scoped."""
    return ResourceId.parse(resource_id).resource_group


__all__ = ["ResourceId", "name_from_resource_id", "resource_group_from_resource_id"]
