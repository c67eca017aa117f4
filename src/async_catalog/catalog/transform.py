from dataclasses import dataclass, field
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class EntityTransformation:
    """
    Bidirectional mapping between the public field names of an entity and the
    names the catalog API uses on the wire. Unmapped names are identical on
    both sides. Only top-level fields are renamed.
    """

    public_to_wire: Mapping[str, str] = field(default_factory=dict)

    @property
    def wire_to_public(self) -> Dict[str, str]:
        return {wire: public for public, wire in self.public_to_wire.items()}

    def wire_name(self, segment: str) -> str:
        return self.public_to_wire.get(segment, segment)

    def public_name(self, segment: str) -> str:
        return self.wire_to_public.get(segment, segment)

    def to_public(self, entity: Mapping[str, Any]) -> Dict[str, Any]:
        return {self.public_name(key): value for key, value in entity.items()}


PRODUCT_TRANSFORMATION = EntityTransformation(
    {"_id": "id", "name": "title", "_createdDate": "createdDate"}
)

COLLECTION_TRANSFORMATION = EntityTransformation({"_id": "id"})
