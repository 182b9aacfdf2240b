"""Currency conversion over a versioned, date-indexed rate table"""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from finance_tracker.domain.exceptions import MissingRateError
from finance_tracker.domain.models import Conversion, RateSnapshot
from finance_tracker.domain.money import require_minor_units, round_half_up

REFERENCE_CURRENCY = "USD"

# Units of each currency per 1 USD
DEFAULT_SNAPSHOTS: Tuple[RateSnapshot, ...] = (
    RateSnapshot(
        effective_date=date(2025, 7, 1),
        rates={"USD": Decimal("1"), "EUR": Decimal("0.91"), "AZN": Decimal("1.70")},
    ),
    RateSnapshot(
        effective_date=date(2025, 8, 1),
        rates={"USD": Decimal("1"), "EUR": Decimal("0.92"), "AZN": Decimal("1.7015")},
    ),
    RateSnapshot(
        effective_date=date(2025, 8, 19),
        rates={"USD": Decimal("1"), "EUR": Decimal("0.92"), "AZN": Decimal("1.7015")},
    ),
)


class RateProvider(Protocol):
    """Anything that can quote a currency against the reference currency on a date"""

    def rate_at(self, currency: str, effective_date: date) -> Decimal: ...


class RateTable:
    """
    Immutable set of rate snapshots.

    Lookups resolve the snapshot nearest to the requested date (absolute day
    difference, no interpolation); on a tie the later snapshot wins. Adding a
    snapshot returns a new table with the next version number, so a table
    handed to a request never changes underneath it.
    """

    def __init__(self, snapshots: Iterable[RateSnapshot], version: int = 1):
        ordered = sorted(snapshots, key=lambda s: s.effective_date)
        if not ordered:
            raise ValueError("Rate table needs at least one snapshot")
        self._snapshots: Tuple[RateSnapshot, ...] = tuple(ordered)
        self.version = version

    @classmethod
    def default(cls) -> "RateTable":
        return cls(DEFAULT_SNAPSHOTS)

    @property
    def snapshots(self) -> List[RateSnapshot]:
        return list(self._snapshots)

    def snapshot_at(self, effective_date: date) -> RateSnapshot:
        closest = self._snapshots[0]
        closest_diff = abs((effective_date - closest.effective_date).days)
        for snapshot in self._snapshots[1:]:
            diff = abs((effective_date - snapshot.effective_date).days)
            if diff <= closest_diff:
                closest, closest_diff = snapshot, diff
        return closest

    def rate_at(self, currency: str, effective_date: date) -> Decimal:
        snapshot = self.snapshot_at(effective_date)
        try:
            return snapshot.rates[currency]
        except KeyError as e:
            raise MissingRateError(
                f"Exchange rate not available for {currency} on {snapshot.effective_date.isoformat()}"
            ) from e

    def with_snapshot(self, snapshot: RateSnapshot) -> "RateTable":
        """Return the next table version with snapshot added (replacing one on the same date)"""
        kept = [s for s in self._snapshots if s.effective_date != snapshot.effective_date]
        return RateTable(kept + [snapshot], version=self.version + 1)


def apply_rates(amount_minor: int, source_rate: Decimal, target_rate: Decimal) -> int:
    """Convert through the reference currency using already-resolved rates"""
    if source_rate == target_rate:
        return amount_minor
    return round_half_up(Decimal(amount_minor) * target_rate / source_rate)


def convert(
    amount_minor: int,
    source_currency: str,
    target_currency: str,
    rates: RateProvider,
    effective_date: Optional[date] = None,
) -> Conversion:
    """
    Convert an integer minor-unit amount between currencies.

    Same-currency conversion returns the amount unchanged at rate 1 without
    touching the rate table. Otherwise both rates come from the snapshot
    nearest effective_date (default: today).

    Raises:
        InvalidAmountError: amount_minor is not an int
        MissingRateError: either currency is absent from the resolved snapshot
    """
    require_minor_units(amount_minor)
    if effective_date is None:
        effective_date = date.today()

    if source_currency == target_currency:
        return Conversion(
            amount_minor=amount_minor,
            rate=Decimal("1"),
            rate_to_reference=Decimal("1") if source_currency == REFERENCE_CURRENCY else None,
            source_currency=source_currency,
            target_currency=target_currency,
            effective_date=effective_date,
        )

    source_rate = rates.rate_at(source_currency, effective_date)
    target_rate = rates.rate_at(target_currency, effective_date)

    return Conversion(
        amount_minor=apply_rates(amount_minor, source_rate, target_rate),
        rate=target_rate / source_rate,
        rate_to_reference=source_rate,
        source_currency=source_currency,
        target_currency=target_currency,
        effective_date=effective_date,
    )


def snapshot_to_dict(snapshot: RateSnapshot) -> Dict[str, str]:
    return {code: str(rate) for code, rate in sorted(snapshot.rates.items())}
