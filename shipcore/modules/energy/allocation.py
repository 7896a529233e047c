"""
Energy Point Allocation Engine

Purpose
-------
Pure, in-memory rules for a ship's Energy Point (EP) tokens. A ship owns a
fixed set of discrete token records; each is either inactive (reserve) or
active, and an active token either sits in the ship pool or is held by one
crew member.

    ship pool      = active tokens with no holder
    crew ledger    = active tokens grouped by holder (derived, never stored)
    pool invariant : ship pool + all crew holdings <= max_energy_points

Responsibilities
----------------
- Derived reads: ship pool size, per-crew counts, crew ledger
- Bulk creation of blank token records
- Activating the ship pool (always reclaims every crew holding)
- Moving tokens between the ship pool and one crew member

Design Notes
------------
- Works on anything shaped like ``TokenRecord``: ORM ``EPToken`` rows when
  called from services, ``TokenState`` dataclasses in tests and previews.
- Requests outside the valid range are saturated, never rejected. Clamps
  are logged at DEBUG only.
- Tokens are visited in slot order so repeated operations touch the same
  records.
- No I/O, no permission checks. See EnergyService for the persisted,
  authorized entry points.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Callable,
    Collection,
    Dict,
    List,
    MutableSequence,
    Optional,
    Protocol,
)

from shipcore.core.logging.logger import get_logger

if TYPE_CHECKING:
    from shipcore.database.models import Ship

logger = get_logger(__name__)


class TokenRecord(Protocol):
    """Structural type of one EP token record."""

    slot: int
    active: bool
    holder_id: Optional[str]


@dataclass
class TokenState:
    """Detached token record."""

    slot: int
    active: bool = False
    holder_id: Optional[str] = None


@dataclass(frozen=True)
class AllocationChange:
    """
    Outcome of one allocation request.

    Attributes:
        requested: Count the caller asked for
        previous: Count before the change
        applied: Count after clamping and applying
        crew_reset: True when crew holdings were reclaimed by the change
    """

    requested: int
    previous: int
    applied: int
    crew_reset: bool = False

    @property
    def clamped(self) -> bool:
        return self.requested != self.applied

    @property
    def changed(self) -> bool:
        return self.previous != self.applied or self.crew_reset


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def is_valid_token_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class EnergyPool:
    """
    Allocation view over one ship's token records.

    The pool mutates the records in place and appends new records to the
    sequence it was given, so wrapping ``ship.ep_tokens`` writes straight
    through to the ORM relationship.

    Args:
        tokens: The ship's token records
        max_energy_points: EP capacity of the ship
    """

    def __init__(
        self,
        tokens: MutableSequence[TokenRecord],
        max_energy_points: int,
    ) -> None:
        self._tokens = tokens
        self._max = max(int(max_energy_points or 0), 0)

    @classmethod
    def for_ship(cls, ship: Ship) -> EnergyPool:
        return cls(ship.ep_tokens, ship.max_energy_points)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def tokens(self) -> List[TokenRecord]:
        return sorted(self._tokens, key=lambda t: t.slot)

    @property
    def record_count(self) -> int:
        return len(self._tokens)

    def get_max_allowed_ep_tokens(self) -> int:
        """Ceiling for the EP bar and for every allocation."""
        return self._max

    def ship_ep_count(self) -> int:
        return sum(1 for t in self._tokens if t.active and t.holder_id is None)

    def crew_ep_count(self, crew_id: str) -> int:
        return sum(1 for t in self._tokens if t.active and t.holder_id == crew_id)

    def _crew_held(self, roster: Optional[Collection[str]]) -> List[TokenRecord]:
        return [
            t
            for t in self._tokens
            if t.active
            and t.holder_id is not None
            and (roster is None or t.holder_id in roster)
        ]

    def crew_ledger(self, roster: Optional[Collection[str]] = None) -> Dict[str, int]:
        """
        Active token count per crew holder; holders with zero are absent.

        With ``roster``, holders not on it (crew that left the ship) are
        skipped.
        """
        ledger: Dict[str, int] = {}
        for token in self._crew_held(roster):
            ledger[token.holder_id] = ledger.get(token.holder_id, 0) + 1
        return ledger

    def crew_has_tokens(self, roster: Optional[Collection[str]] = None) -> bool:
        return bool(self._crew_held(roster))

    def active_count(self) -> int:
        return sum(1 for t in self._tokens if t.active)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_blank_tokens(
        self,
        total_count: int,
        factory: Callable[[int], TokenRecord] = TokenState,
    ) -> List[TokenRecord]:
        """
        Ensure ``total_count`` token records exist.

        Only missing slots are filled, so calling again never duplicates
        records. Existing records are left as they are.

        Args:
            total_count: Number of records the ship should own
            factory: Builds a blank record for a slot number

        Returns:
            The records created by this call; empty when ``total_count`` is
            not a positive integer
        """
        if not is_valid_token_count(total_count):
            logger.debug(
                "Blank EP token request ignored",
                extra={"total_count": repr(total_count)},
            )
            return []

        taken = {t.slot for t in self._tokens}
        created: List[TokenRecord] = []
        for slot in range(total_count):
            if slot in taken:
                continue
            token = factory(slot)
            token.active = False
            token.holder_id = None
            self._tokens.append(token)
            created.append(token)

        logger.debug(
            "Blank EP tokens ensured",
            extra={"total_count": total_count, "created_count": len(created)},
        )
        return created

    def set_active_ep_tokens(
        self, new_count: int, roster: Optional[Collection[str]] = None
    ) -> AllocationChange:
        """
        Make exactly ``new_count`` tokens active, all in the ship pool.

        Every crew holding is reclaimed, stale ones included. ``crew_reset``
        on the result tells the caller crew members (on ``roster`` when
        given) actually lost tokens.
        """
        previous = self.ship_ep_count()
        had_crew_tokens = self.crew_has_tokens(roster)

        ceiling = min(self._max, self.record_count)
        applied = _clamp(int(new_count), 0, ceiling)
        if applied != new_count:
            logger.debug(
                "Ship EP request clamped",
                extra={"requested": new_count, "applied": applied, "ceiling": ceiling},
            )

        for position, token in enumerate(self.tokens):
            token.holder_id = None
            token.active = position < applied

        return AllocationChange(
            requested=new_count,
            previous=previous,
            applied=applied,
            crew_reset=had_crew_tokens,
        )

    def set_crew_ep_count(self, crew_id: str, new_count: int) -> AllocationChange:
        """
        Move tokens between the ship pool and one crew member.

        The target is clamped to what the pool plus the member's current
        holding can cover, and never above ``max_energy_points``.
        """
        current = self.crew_ep_count(crew_id)
        available = self.ship_ep_count()

        ceiling = min(self._max, available + current)
        applied = _clamp(int(new_count), 0, ceiling)
        if applied != new_count:
            logger.debug(
                "Crew EP request clamped",
                extra={
                    "crew_id": crew_id,
                    "requested": new_count,
                    "applied": applied,
                    "ceiling": ceiling,
                },
            )

        ordered = self.tokens
        if applied > current:
            free = [t for t in ordered if t.active and t.holder_id is None]
            for token in free[: applied - current]:
                token.holder_id = crew_id
        elif applied < current:
            held = [t for t in ordered if t.active and t.holder_id == crew_id]
            for token in reversed(held[applied:]):
                token.holder_id = None

        return AllocationChange(requested=new_count, previous=current, applied=applied)
