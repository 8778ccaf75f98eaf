"""
InvertirOnline quote source.

Fetches the detailed quote of a BCBA-listed instrument. A usable quote has
either a non-empty list of bid/ask pairs (`puntas`) or a last traded price
(`ultimoPrecio`); anything else is a QuoteError.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import httpx

from .auth import BrokerError, DEFAULT_TIMEOUT, base_url_from_env

logger = logging.getLogger(__name__)

DEFAULT_MARKET = "bCBA"


class QuoteError(BrokerError):
    pass


@dataclass(frozen=True)
class QuotePunta:
    precio_compra: float
    precio_venta: float
    cantidad_compra: Optional[float] = None
    cantidad_venta: Optional[float] = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "QuotePunta":
        return cls(
            precio_compra=float(data["precioCompra"]),
            precio_venta=float(data["precioVenta"]),
            cantidad_compra=_opt_float(data.get("cantidadCompra")),
            cantidad_venta=_opt_float(data.get("cantidadVenta")),
        )

    @property
    def mid(self) -> float:
        return (self.precio_compra + self.precio_venta) / 2.0


@dataclass(frozen=True)
class QuoteData:
    ticker: str
    puntas: list[QuotePunta] = field(default_factory=list)
    ultimo_precio: Optional[float] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, ticker: str, data: Mapping[str, Any]) -> "QuoteData":
        puntas_raw = data.get("puntas")
        puntas: list[QuotePunta] = []
        if isinstance(puntas_raw, list):
            try:
                puntas = [QuotePunta.from_payload(p) for p in puntas_raw]
            except (KeyError, TypeError, ValueError) as e:
                raise QuoteError(f"Invalid puntas for {ticker}: {e}") from e
        return cls(
            ticker=ticker,
            puntas=puntas,
            ultimo_precio=_opt_float(data.get("ultimoPrecio")),
            raw=dict(data),
        )

    @property
    def has_puntas(self) -> bool:
        return bool(self.puntas)

    @property
    def price(self) -> float:
        """Best-level mid when bid/ask pairs exist, otherwise the last traded price."""
        if self.puntas:
            return self.puntas[0].mid
        if self.ultimo_precio:
            return self.ultimo_precio
        raise QuoteError(f"No price data available for {self.ticker}")


def _opt_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def quote_url(ticker: str, *, base_url: Optional[str] = None, market: str = DEFAULT_MARKET) -> str:
    root = (base_url or base_url_from_env()).rstrip("/")
    return f"{root}/api/v2/{market}/Titulos/{ticker}/CotizacionDetalle"


async def fetch_quote(
    token: str,
    ticker: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    base_url: Optional[str] = None,
    market: str = DEFAULT_MARKET,
    timeout: float = DEFAULT_TIMEOUT,
) -> QuoteData:
    """
    Fetch the detailed quote for `ticker` with a bearer `token`.

    Raises:
        QuoteError: non-2xx response, unreadable body, or no price data at all
    """
    logger.info(f"Fetching quote for {ticker}...")
    url = quote_url(ticker, base_url=base_url, market=market)
    headers = {"Authorization": f"Bearer {token}"}

    try:
        if client is not None:
            response = await client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=timeout) as c:
                response = await c.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch {ticker}: {e}")
        raise QuoteError(f"Failed to fetch {ticker}: {e}") from e

    if response.is_error:
        logger.error(f"Failed to fetch {ticker}: {response.status_code} {response.reason_phrase}")
        raise QuoteError(f"Failed to fetch {ticker}: {response.reason_phrase}")

    try:
        data = response.json()
    except ValueError as e:
        raise QuoteError(f"Invalid quote response for {ticker}: {e}") from e
    if not isinstance(data, dict):
        raise QuoteError(f"Invalid quote response for {ticker}: expected an object")

    quote = QuoteData.from_payload(ticker, data)
    if not quote.has_puntas:
        if not quote.ultimo_precio:
            logger.error(
                f"No puntas or ultimoPrecio data for {ticker}: "
                f"puntas={data.get('puntas')!r} ultimoPrecio={data.get('ultimoPrecio')!r}"
            )
            raise QuoteError(f"No price data available for {ticker}")
        logger.info(f"Using ultimoPrecio for {ticker} (puntas not available)")

    logger.info(f"Quote for {ticker} fetched successfully")
    return quote


__all__ = ["QuoteData", "QuotePunta", "QuoteError", "fetch_quote", "quote_url"]
