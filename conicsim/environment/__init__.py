"""
Environment Module
==================

Gravitating bodies and their spheres of influence.
"""

from .catalog import BodyCatalog, BodyRecord, BodyType, default_catalog
from .influence import InfluenceSet, resolve
from .orbiting import OrbitingRegistry

__all__ = [
    'BodyCatalog',
    'BodyRecord',
    'BodyType',
    'default_catalog',
    'InfluenceSet',
    'resolve',
    'OrbitingRegistry',
]
