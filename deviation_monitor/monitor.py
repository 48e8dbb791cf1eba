"""Core monitoring loop: poll, measure deviation, alert, sleep."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional

from .analyzer import AlertEvent, DeviationResult, compute_deviation_percent, should_alert
from .config import MonitorConfig
from .extractor import PriceSource, SourceFetchError
from .notifier import NotificationError, Notifier

logger = logging.getLogger(__name__)


class MonitorState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class PriceSample:
    """One observation of the monitored price."""
    value: float
    timestamp: datetime
    fallback: bool = False


class DeviationMonitor:
    """
    Polls a single price until the daily closing hour.

    Each cycle fetches the price (falling back to the reference price when
    the fetch fails), logs it with its deviation and balance, and notifies
    when the deviation reaches the threshold. The cutoff is checked only at
    the top of the loop, so a cycle in progress always completes. The price
    source is started once and closed exactly once when the loop exits.
    """

    def __init__(
        self,
        config: MonitorConfig,
        source: PriceSource,
        notifier: Notifier,
        now: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.source = source
        self.notifier = notifier
        self._now = now
        self._sleep = sleep
        self.state = MonitorState.STOPPED
        self.cycles = 0

    def _past_cutoff(self) -> bool:
        return self._now().hour >= self.config.closing_hour

    async def _sample(self) -> PriceSample:
        try:
            value = await self.source.fetch_current_price()
        except SourceFetchError as e:
            logger.warning(
                f"Price fetch failed, using reference price {self.config.reference_price}: {e}"
            )
            return PriceSample(self.config.reference_price, self._now(), fallback=True)
        except Exception as e:
            logger.exception(
                f"Unexpected price source failure, using reference price "
                f"{self.config.reference_price}: {e}"
            )
            return PriceSample(self.config.reference_price, self._now(), fallback=True)
        return PriceSample(value, self._now())

    def _log_sample(self, sample: PriceSample, deviation: DeviationResult) -> None:
        rounded_deviation = round(deviation.percent, 2)
        balance = round(self.config.quantity * sample.value, 2)
        logger.info(
            f"{sample.timestamp.isoformat(sep=' ', timespec='seconds')} "
            f"price={sample.value} deviation={rounded_deviation}% balance={balance}",
            extra={
                "timestamp": sample.timestamp,
                "price": sample.value,
                "deviation": rounded_deviation,
                "balance": balance,
                "fallback": sample.fallback,
            },
        )

    async def _dispatch(self, event: AlertEvent) -> None:
        logger.info(
            f"🚨 Alert triggered: deviation {event.percent:.2f}% >= "
            f"{self.config.alert_threshold_percent}%"
        )
        try:
            await self.notifier.notify(event)
        except NotificationError as e:
            logger.error(f"Notification failed: {e}")
        except Exception as e:
            logger.exception(f"Unexpected notifier failure: {e}")

    async def run_cycle(self) -> Optional[AlertEvent]:
        """
        Run a single poll cycle.

        Returns the AlertEvent that was dispatched, or None.
        """
        sample = await self._sample()
        deviation = DeviationResult(
            compute_deviation_percent(sample.value, self.config.reference_price)
        )
        self._log_sample(sample, deviation)
        self.cycles += 1

        if not deviation.is_defined:
            logger.debug(
                f"Deviation undefined against reference {self.config.reference_price}, no alert"
            )

        if not should_alert(deviation.percent, self.config.alert_threshold_percent):
            return None

        event = AlertEvent.build(deviation.percent, sample.value, self.config.quantity)
        await self._dispatch(event)
        return event

    async def run(self) -> None:
        """Poll until the closing hour, then release the price source."""
        try:
            await self.source.start()
            self.state = MonitorState.RUNNING
            logger.info(
                f"Monitor started. Polling every {self.config.poll_interval_seconds:g}s "
                f"until {self.config.closing_hour:02d}:00"
            )

            while self.state is MonitorState.RUNNING:
                if self._past_cutoff():
                    logger.info(f"Closing hour {self.config.closing_hour:02d}:00 reached")
                    self.state = MonitorState.STOPPED
                    break

                await self.run_cycle()

                logger.debug(f"Next check in {self.config.poll_interval_seconds:g}s")
                await self._sleep(self.config.poll_interval_seconds)
        finally:
            self.state = MonitorState.STOPPED
            await self.source.close()
            logger.info(f"Monitor stopped after {self.cycles} cycles")

    async def run_once(self) -> Optional[AlertEvent]:
        """Run one cycle regardless of the hour, then release the price source."""
        try:
            await self.source.start()
            return await self.run_cycle()
        finally:
            await self.source.close()
