"""Price provider and adapter protocols: the source-agnostic interface layer.

Architecture
------------
The price system uses an adapter pattern to decouple data sources from
consumers:

    RawSource → PriceAdapter → list[PricePoint] → build_series → PriceSeries

- **DataSourceProvider** is the consumer-facing protocol. The fallback
  fetcher depends only on this interface and tries providers in order.

- **PriceAdapter** transforms a raw payload (JSON, CSV rows) from one source
  into date-sorted ``PricePoint`` records.

- **build_series** is the single place where a provider's points become a
  ``PriceSeries``. It enforces the window: a short, empty or out-of-order
  series is an ``InsufficientDataError``, never a silent success.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Any, Protocol, Sequence, runtime_checkable

from pydantic import ValidationError

from investment_notice.core.exceptions import InsufficientDataError
from investment_notice.core.models import FetchWindow, PricePoint, PriceSeries


@runtime_checkable
class PriceAdapter(Protocol):
    """Transforms raw data from one source into PricePoint records.

    Returns
    -------
    list[PricePoint]
        Records sorted by date ascending.
    """

    def adapt(self, raw_data: Any) -> list[PricePoint]: ...


@runtime_checkable
class DataSourceProvider(Protocol):
    """Fetch N trading days of daily prices for a symbol.

    Implementations raise ``UnavailableError`` for transport, rate-limit,
    API-level or credential failures and ``InsufficientDataError`` when the
    data received cannot satisfy the window. They never retry.
    """

    @property
    def name(self) -> str: ...

    async def fetch(self, symbol: str, window: FetchWindow) -> PriceSeries: ...


def date_range_for(window: FetchWindow, today: date | None = None) -> tuple[date, date]:
    """Calendar range wide enough to hold ``window.count`` trading days.

    Five trading days per seven calendar days, plus ten days of slack for
    holidays.
    """
    end = window.end or today or date.today()
    span = math.ceil(window.count * 7 / 5) + 10
    return end - timedelta(days=span), end


def build_series(
    points: Sequence[PricePoint],
    symbol: str,
    window: FetchWindow,
    source: str,
) -> PriceSeries:
    """Validate adapted points against the window and wrap them.

    Points after ``window.end`` are dropped and only the last
    ``window.count`` are kept.

    Raises
    ------
    InsufficientDataError
        Duplicate or non-monotonic dates, or fewer than ``window.minimum``
        points remain.
    """
    if window.end is not None:
        points = [p for p in points if p.date <= window.end]

    context = {"provider": source, "symbol": symbol, "required": window.minimum}

    for prev, cur in zip(points, points[1:]):
        if cur.date <= prev.date:
            kind = "duplicate" if cur.date == prev.date else "non-monotonic"
            raise InsufficientDataError(
                f"{source} returned {kind} dates for {symbol}: "
                f"{prev.date} then {cur.date}",
                context={**context, "received": len(points), "reason": kind},
            )

    points = list(points)[-window.count :]
    if len(points) < window.minimum:
        raise InsufficientDataError(
            f"{source} returned {len(points)} points for {symbol}, "
            f"need at least {window.minimum}",
            context={**context, "received": len(points)},
        )

    try:
        return PriceSeries(symbol=symbol, source=source, points=tuple(points))
    except ValidationError as e:
        raise InsufficientDataError(
            f"{source} returned an invalid series for {symbol}: {e}",
            context={**context, "received": len(points)},
        ) from e
