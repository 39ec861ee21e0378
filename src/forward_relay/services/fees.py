"""Network fee ceiling enforcement."""

from __future__ import annotations

import logging

from forward_relay.core.settings import GWEI
from forward_relay.services.chain import ChainBackend
from forward_relay.services.errors import ErrorKind, RelayError

logger = logging.getLogger(__name__)


class FeePolicyGuard:
    """Reject admission while the suggested gas price exceeds the ceiling."""

    def __init__(self, chain: ChainBackend, *, max_gas_price_wei: int) -> None:
        self._chain = chain
        self._ceiling = int(max_gas_price_wei)

    @property
    def ceiling(self) -> int:
        return self._ceiling

    async def check(self) -> int:
        """Return the current gas price, raising ``FeeTooHigh`` above the ceiling."""
        gas_price = await self._chain.gas_price()
        logger.debug(
            "Gas price %.2f gwei (ceiling %.2f gwei)", gas_price / GWEI, self._ceiling / GWEI
        )
        if gas_price > self._ceiling:
            logger.warning("Gas price too high: %.2f gwei", gas_price / GWEI)
            raise RelayError(
                ErrorKind.FEE_TOO_HIGH, f"gas price {gas_price} wei > ceiling {self._ceiling} wei"
            )
        return gas_price
