"""
Orbiting Objects
================

Per-host record of the bodies and craft currently orbiting it.
"""

import logging
import threading
from typing import Dict, List, Optional

from ..core.identity import OrbitalObjID
from .catalog import BodyCatalog

logger = logging.getLogger(__name__)


class OrbitingRegistry:
    """
    Host id -> orbiting objects.

    An object has at most one host, so the membership forms a forest. Each
    host's set has its own lock: attaches to the same host serialize, attaches
    to different hosts do not contend.
    """

    def __init__(self):
        self._members: Dict[str, List[OrbitalObjID]] = {}
        self._host_of: Dict[OrbitalObjID, str] = {}
        self._host_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_catalog(cls, catalog: BodyCatalog) -> 'OrbitingRegistry':
        """Registry seeded with the body hierarchy listed in the catalog."""
        registry = cls()
        for body in catalog:
            registry._members.setdefault(body.id, [])
            if body.host is not None:
                registry.attach(body.host, OrbitalObjID.body(body.id))
        return registry

    def _host_lock(self, host: str) -> threading.Lock:
        with self._lock:
            lock = self._host_locks.get(host)
            if lock is None:
                lock = self._host_locks[host] = threading.Lock()
            return lock

    def attach(self, host: str, obj: OrbitalObjID):
        """
        Register `obj` as orbiting `host`.

        Raises:
            ValueError: `obj` already orbits another host, or orbits itself
        """
        if obj.id == host:
            raise ValueError(f"{obj} cannot orbit itself")

        with self._host_lock(host):
            with self._lock:
                current = self._host_of.get(obj)
                if current is not None and current != host:
                    raise ValueError(f"{obj} already orbits {current!r}")
                self._host_of[obj] = host
            members = self._members.setdefault(host, [])
            if obj not in members:
                members.append(obj)

    def detach(self, obj: OrbitalObjID) -> Optional[str]:
        """
        Remove `obj` from its host's set.

        Returns:
            Former host id, or None if `obj` was not orbiting anything
        """
        with self._lock:
            host = self._host_of.get(obj)
        if host is None:
            return None

        with self._host_lock(host):
            members = self._members.get(host, [])
            if obj in members:
                members.remove(obj)
            with self._lock:
                self._host_of.pop(obj, None)
        return host

    def host_of(self, obj: OrbitalObjID) -> Optional[str]:
        with self._lock:
            return self._host_of.get(obj)

    def members(self, host: str) -> List[OrbitalObjID]:
        with self._host_lock(host):
            return list(self._members.get(host, []))

    def count(self, host: str) -> int:
        return len(self.members(host))

    def hosts(self) -> List[str]:
        with self._lock:
            return list(self._members)

    def clear(self):
        with self._lock:
            self._members.clear()
            self._host_of.clear()
            self._host_locks.clear()

    def __contains__(self, obj: OrbitalObjID) -> bool:
        return self.host_of(obj) is not None
