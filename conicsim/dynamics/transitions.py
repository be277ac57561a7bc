"""
Orbit Transitions
=================

Patched-conic switch between free propagation under summed gravity and a
closed analytic orbit around a single host.

Every tick, each propagated craft is checked against its current main
influencer. A bound relative state (e < 1) captures the craft: its orbital
elements are computed, it is registered with the host, and its influence
set and acceleration are dropped. Reverting to edit mode undoes all of that
at once and resumes free propagation from the current position.
"""

import logging
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from ..core.craft import Craft
from ..core.events import CraftEnteredOrbit, CraftRevertedToEdit, EventBus
from ..environment.catalog import BodyCatalog
from ..environment.influence import InfluenceSet, resolve
from ..environment.orbiting import OrbitingRegistry
from .elements import (
    DegenerateGeometryError,
    OrbitalElements,
    UnboundOrbitError,
    eccentricity_vector,
    solve_elements,
)
from .integrators import acceleration_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrbitCapture:
    """The craft is on a bound orbit around `host`."""
    craft_id: str
    host: str
    influence: InfluenceSet
    eccentricity: float
    elements: OrbitalElements


@dataclass(frozen=True)
class StillPropagated:
    """No transition this tick. `eccentricity` is None when undeterminable."""
    craft_id: str
    influence: InfluenceSet
    eccentricity: Optional[float]
    reason: str = ""


TransitionDecision = Union[OrbitCapture, StillPropagated]


class OrbitTransitions:
    """
    Orbit transition state machine.

    A tick runs in two phases. Evaluation reads only the craft's own state
    and the tick-stable catalog, so crafts can be evaluated in parallel.
    Application then performs the captures one at a time.
    """

    def __init__(self,
                 catalog: BodyCatalog,
                 registry: OrbitingRegistry,
                 events: EventBus = None,
                 max_workers: int = 1):
        """
        Initialize the state machine.

        Args:
            catalog: Bodies at the current tick
            registry: Orbiting-set registry updated on transitions
            events: Bus receiving transition events
            max_workers: Threads used by the evaluation phase
        """
        self.catalog = catalog
        self.registry = registry
        self.events = events
        self.max_workers = max_workers

    def influence_and_acceleration(self,
                                   position: np.ndarray) -> Tuple[InfluenceSet, np.ndarray]:
        """Fresh influence set at `position` and the summed acceleration of its bodies."""
        influence = resolve(position, self.catalog)
        acc = acceleration_of(position, self.catalog.influencer_pairs(influence.influencers))
        return influence, acc

    def initialize(self, craft: Craft):
        """Give a newly created craft its influence set and acceleration."""
        influence, acc = self.influence_and_acceleration(craft.state.position)
        craft.start_propagation(influence, acc)

    def evaluate(self, craft: Craft, epoch_days: float = 0.0) -> TransitionDecision:
        """
        Decide whether a propagated craft is now on a bound orbit.

        Read-only: neither the craft nor the registry is modified.

        Args:
            craft: Propagated craft
            epoch_days: Current simulation time, stamped on captured elements

        Returns:
            OrbitCapture or StillPropagated
        """
        influence = resolve(craft.state.position, self.catalog)
        host = self.catalog[influence.main_influencer]
        rel = craft.state.relative_to(host.position, host.velocity)

        try:
            e = float(np.linalg.norm(
                eccentricity_vector(rel.position, rel.velocity, host.mu)))
        except DegenerateGeometryError as exc:
            return StillPropagated(craft.craft_id, influence, None, str(exc))

        logger.debug("%r: e=%.6f relative to %r", craft.craft_id, e, host.id)
        if e >= 1.0:
            return StillPropagated(craft.craft_id, influence, e, "unbound")

        try:
            elements = solve_elements(rel.position, rel.velocity, host.mu, epoch_days)
        except (DegenerateGeometryError, UnboundOrbitError) as exc:
            logger.warning("Orbit of %r around %r not determinable this tick: %s",
                           craft.craft_id, host.id, exc)
            return StillPropagated(craft.craft_id, influence, e, str(exc))

        return OrbitCapture(craft.craft_id, host.id, influence, e, elements)

    def capture(self, craft: Craft, decision: OrbitCapture, tick: int = 0) -> bool:
        """
        Put a craft on the orbit found by evaluate().

        Returns:
            False if the craft was already orbiting
        """
        with craft.lock:
            if craft.is_orbiting:
                return False
            self.registry.attach(decision.host, craft.object_id)
            craft.enter_orbit(decision.elements, decision.host)

        logger.info("%r entered orbit around %r (e=%.4f, a=%.1f km)",
                    craft.craft_id, decision.host,
                    decision.eccentricity, decision.elements.semimajor_axis)
        if self.events is not None:
            self.events.publish(CraftEnteredOrbit(
                craft_id=craft.craft_id,
                host=decision.host,
                elements=decision.elements,
                tick=tick,
            ))
        return True

    def revert(self, craft: Craft, tick: int = 0) -> bool:
        """
        Return an orbiting craft to free propagation (edit mode).

        Returns:
            False if the craft was not orbiting
        """
        with craft.lock:
            if not craft.is_orbiting:
                return False
            former_host = self.registry.detach(craft.object_id)
            influence, acc = self.influence_and_acceleration(craft.state.position)
            craft.leave_orbit(influence, acc)

        logger.info("%r reverted to edit mode (was orbiting %r)", craft.craft_id, former_host)
        if self.events is not None:
            self.events.publish(CraftRevertedToEdit(
                craft_id=craft.craft_id,
                former_host=former_host,
                tick=tick,
            ))
        return True

    def forget(self, craft: Craft):
        """Drop a removed craft's registry membership."""
        self.registry.detach(craft.object_id)

    def step(self,
             crafts: Iterable[Craft],
             tick: int = 0,
             epoch_days: float = 0.0) -> List[TransitionDecision]:
        """
        Run the transition check for every propagated craft.

        Args:
            crafts: All crafts; orbiting ones are skipped
            tick: Current tick
            epoch_days: Current simulation time

        Returns:
            The decision taken for each propagated craft
        """
        propagated = [c for c in crafts if not c.is_orbiting]

        if self.max_workers > 1 and len(propagated) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                decisions = list(pool.map(lambda c: self.evaluate(c, epoch_days), propagated))
        else:
            decisions = [self.evaluate(c, epoch_days) for c in propagated]

        for craft, decision in zip(propagated, decisions):
            if isinstance(decision, OrbitCapture):
                self.capture(craft, decision, tick)
            else:
                acc = acceleration_of(
                    craft.state.position,
                    self.catalog.influencer_pairs(decision.influence.influencers),
                )
                craft.start_propagation(decision.influence, acc)

        return decisions
