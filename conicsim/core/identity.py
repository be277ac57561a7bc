"""
Object Identity
===============

Identities of the objects that can orbit something (bodies and craft) and the
craft lookup table owned by a loaded scenario.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterator, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .craft import Craft

logger = logging.getLogger(__name__)

MAX_ID_LENGTH = 32


class ObjectKind(IntEnum):
    """Kind of an orbital object."""
    BODY = 0
    SHIP = 1


@dataclass(frozen=True)
class OrbitalObjID:
    """Identity of a body or a craft."""
    kind: ObjectKind
    id: str

    @classmethod
    def body(cls, body_id: str) -> 'OrbitalObjID':
        return cls(ObjectKind.BODY, validate_id(body_id))

    @classmethod
    def ship(cls, ship_id: str) -> 'OrbitalObjID':
        return cls(ObjectKind.SHIP, validate_id(ship_id))

    def __str__(self) -> str:
        return f"{self.kind.name.lower()}:{self.id}"


def validate_id(object_id: str) -> str:
    """Check an id is a non-empty string of at most MAX_ID_LENGTH characters."""
    if not isinstance(object_id, str) or not object_id:
        raise ValueError(f"Invalid object id: {object_id!r}")
    if len(object_id) > MAX_ID_LENGTH:
        raise ValueError(
            f"Object id {object_id!r} longer than {MAX_ID_LENGTH} characters"
        )
    return object_id


class CraftRegistry:
    """
    Craft id -> Craft lookup table.

    Created when a scenario is loaded, mutated only by craft creation and
    removal, cleared when the scenario is unloaded.
    """

    def __init__(self):
        self._crafts: Dict[str, 'Craft'] = {}

    def add(self, craft: 'Craft'):
        craft_id = craft.craft_id
        if craft_id in self._crafts:
            raise ValueError(f"Craft {craft_id!r} already exists")
        self._crafts[craft_id] = craft

    def remove(self, craft_id: str) -> Optional['Craft']:
        return self._crafts.pop(craft_id, None)

    def get(self, craft_id: str) -> Optional['Craft']:
        craft = self._crafts.get(craft_id)
        if craft is None:
            logger.debug("Unknown craft %r", craft_id)
        return craft

    def clear(self):
        self._crafts.clear()

    def ids(self):
        return list(self._crafts)

    def __contains__(self, craft_id: str) -> bool:
        return craft_id in self._crafts

    def __iter__(self) -> Iterator['Craft']:
        return iter(list(self._crafts.values()))

    def __len__(self) -> int:
        return len(self._crafts)
