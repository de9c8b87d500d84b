import asyncio
import logging
import time
from typing import Iterable, List, Optional, Union

from alleyway.config import Settings, get_settings
from alleyway.geocoding.resolver import GeocodingResolver
from alleyway.models.entities import GeneratedItinerary
from alleyway.models.geocoding import BatchGeocodingItem, BatchGeocodingReport, GeocodingResult

logger = logging.getLogger(__name__)


class FixedDelayPacer:
    """Keeps at least delay_s between successive calls. The first call never waits."""

    def __init__(self, delay_s: float):
        self.delay_s = delay_s
        self._last: Optional[float] = None

    async def wait(self) -> None:
        if self._last is not None:
            remaining = self.delay_s - (time.monotonic() - self._last)
            if remaining > 0:
                await asyncio.sleep(remaining)
        self._last = time.monotonic()


def default_pacer(settings: Optional[Settings] = None) -> FixedDelayPacer:
    settings = settings or get_settings()
    return FixedDelayPacer(settings.geocoding_pacing_ms / 1000)


async def geocode_itinerary(
    itinerary: GeneratedItinerary,
    resolver: GeocodingResolver,
    pacer: Optional[FixedDelayPacer] = None,
    city: Optional[str] = None,
) -> BatchGeocodingReport:
    """Sets lat/lng in place on every activity that lacks them. One failure never stops the pass."""
    pacer = pacer or default_pacer()
    city = city or itinerary.city
    report = BatchGeocodingReport()
    start = time.perf_counter()

    for _, _, activity in itinerary.iter_activities():
        if activity.has_coordinates:
            report.skipped += 1
            report.geocoded += 1
            continue

        await pacer.wait()
        try:
            result = await resolver.resolve(activity.address, city, activity.name)
        except Exception as e:
            logger.error("Geocoding failed for %r: %s", activity.name, e)
            report.failed += 1
            report.failures.append(activity.name)
            continue

        if result is None:
            report.failed += 1
            report.failures.append(activity.name)
            continue
        activity.lat = result.lat
        activity.lng = result.lng
        report.geocoded += 1

    report.elapsed_ms = int((time.perf_counter() - start) * 1000)
    logger.info(
        "Itinerary geocoding complete: %d success, %d failed, %dms",
        report.geocoded, report.failed, report.elapsed_ms,
    )
    return report


async def batch_geocode(
    items: Iterable[Union[BatchGeocodingItem, dict]],
    resolver: GeocodingResolver,
    pacer: Optional[FixedDelayPacer] = None,
) -> List[Optional[GeocodingResult]]:
    """One optional result per item, in input order."""
    pacer = pacer or default_pacer()
    results: List[Optional[GeocodingResult]] = []
    for raw in items:
        item = BatchGeocodingItem.model_validate(raw)
        await pacer.wait()
        try:
            results.append(await resolver.resolve(item.address, item.city, item.name))
        except Exception as e:
            logger.error("Geocoding failed for %r: %s", item.name or item.address, e)
            results.append(None)
    return results


def geocode_itinerary_sync(
    itinerary: GeneratedItinerary,
    resolver: Optional[GeocodingResolver] = None,
    settings: Optional[Settings] = None,
) -> BatchGeocodingReport:
    settings = settings or get_settings()
    resolver = resolver or GeocodingResolver.from_settings(settings)
    return asyncio.run(geocode_itinerary(itinerary, resolver, default_pacer(settings)))
