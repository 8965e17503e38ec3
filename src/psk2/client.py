"""
AsyncPskSender / PskSender: convenience clients bundling a transport and
payment options.
"""

import asyncio
from typing import Any, Optional

from psk2.amounts import AmountLike
from psk2.chunked import deliver, send
from psk2.encoding import SharedSecret
from psk2.models.payment import PaymentConfig, PaymentResult, QuoteResult
from psk2.quote import quote
from psk2.transport.base import TransferTransport
from psk2.transport.http import DEFAULT_CONNECTOR_URL, HttpTransport


class AsyncPskSender:
    """Async PSK sender (primary)."""

    def __init__(
        self,
        transport: Optional[TransferTransport] = None,
        connector_url: str = DEFAULT_CONNECTOR_URL,
        token: Optional[str] = None,
        config: Optional[PaymentConfig] = None,
    ):
        self._owns_transport = transport is None
        self.transport: TransferTransport = transport or HttpTransport(base_url=connector_url, token=token)
        self.config = config or PaymentConfig()

    async def quote(
        self,
        destination_account: str,
        shared_secret: SharedSecret,
        *,
        source_amount: Optional[AmountLike] = None,
        destination_amount: Optional[AmountLike] = None,
    ) -> QuoteResult:
        return await quote(
            self.transport,
            shared_secret=shared_secret,
            destination_account=destination_account,
            source_amount=source_amount,
            destination_amount=destination_amount,
            config=self.config,
        )

    async def send(self, destination_account: str, shared_secret: SharedSecret, source_amount: AmountLike) -> PaymentResult:
        """Pay a fixed source amount."""
        return await send(
            self.transport,
            source_amount=source_amount,
            shared_secret=shared_secret,
            destination_account=destination_account,
            config=self.config,
        )

    async def deliver(
        self, destination_account: str, shared_secret: SharedSecret, destination_amount: AmountLike,
    ) -> PaymentResult:
        """Pay until the receiver has a fixed destination amount."""
        return await deliver(
            self.transport,
            destination_amount=destination_amount,
            shared_secret=shared_secret,
            destination_account=destination_account,
            config=self.config,
        )

    async def close(self) -> None:
        if self._owns_transport and isinstance(self.transport, HttpTransport):
            await self.transport.close()


class PskSender:
    """Sync wrapper around AsyncPskSender. Runs the event loop internally."""

    def __init__(self, **kwargs: Any):
        self._async = AsyncPskSender(**kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def config(self) -> PaymentConfig:
        return self._async.config

    def quote(self, destination_account: str, shared_secret: SharedSecret, **kwargs: Any) -> QuoteResult:
        return self._run(self._async.quote(destination_account, shared_secret, **kwargs))

    def send(self, destination_account: str, shared_secret: SharedSecret, source_amount: AmountLike) -> PaymentResult:
        return self._run(self._async.send(destination_account, shared_secret, source_amount))

    def deliver(
        self, destination_account: str, shared_secret: SharedSecret, destination_amount: AmountLike,
    ) -> PaymentResult:
        return self._run(self._async.deliver(destination_account, shared_secret, destination_amount))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
