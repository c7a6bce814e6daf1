from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional


@dataclass(frozen=True)
class PawnPower:
    id: str
    name: str
    description: str
    cost: int

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "description": self.description, "cost": self.cost}


RELENTLESS_PAWN = PawnPower(
    id="relentless-pawn",
    name="Relentless Pawn",
    description="After capturing a piece, this pawn can move again immediately.",
    cost=0,
)

STURDY_PAWN = PawnPower(
    id="sturdy-pawn",
    name="Sturdy Pawn",
    description="Survives the first attack against it, negating the capture and losing this ability.",
    cost=0,
)

BUILTIN_POWERS: Dict[str, PawnPower] = {p.id: p for p in (RELENTLESS_PAWN, STURDY_PAWN)}


def find_power(power_id: Optional[str], known: Iterable[PawnPower] = ()) -> Optional[PawnPower]:
    """Resolve a piece's power id against the built-ins and any extra known powers."""
    if power_id is None:
        return None
    if power_id in BUILTIN_POWERS:
        return BUILTIN_POWERS[power_id]
    for power in known:
        if power.id == power_id:
            return power
    return None
