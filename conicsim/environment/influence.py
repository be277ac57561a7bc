"""
Gravitational Influence
=======================

Which bodies are gravitationally relevant at a point, and which one of them
dominates.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple

from .catalog import BodyCatalog


@dataclass(frozen=True)
class InfluenceSet:
    """
    Bodies whose dominance sphere contains a point.

    `influencers` is ordered outermost first (the primary body leads);
    `main_influencer` is the innermost of them.
    """
    influencers: Tuple[str, ...]
    main_influencer: str

    def __contains__(self, body_id: str) -> bool:
        return body_id in self.influencers

    def __len__(self) -> int:
        return len(self.influencers)


def resolve(position: np.ndarray, catalog: BodyCatalog) -> InfluenceSet:
    """
    Resolve the influence set at a position.

    Every body whose sphere contains the position is an influencer. The main
    influencer is a candidate that is not an ancestor of any other candidate,
    ties broken by the smaller dominance radius. The primary body has an
    infinite sphere, so it is always present as the fallback.

    Args:
        position: Point to evaluate [km]
        catalog: Bodies at the current tick

    Returns:
        InfluenceSet
    """
    position = np.asarray(position, dtype=float)

    candidates = [body for body in catalog if body.contains(position)]
    if not candidates:
        candidates = [catalog.primary_body]

    ids = [body.id for body in candidates]
    innermost = [
        body for body in candidates
        if not any(catalog.is_ancestor(body.id, other) for other in ids)
    ]
    main = min(innermost, key=lambda body: body.dominance_radius)

    ordered = sorted(candidates, key=lambda body: body.dominance_radius, reverse=True)
    return InfluenceSet(
        influencers=tuple(body.id for body in ordered),
        main_influencer=main.id,
    )
