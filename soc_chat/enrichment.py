from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from .classifier import InputKind
from .errors import EnrichmentError


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class Verdict(str, Enum):
    MALICIOUS = "malicious"
    SUSPICIOUS = "suspicious"
    HARMLESS = "harmless"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class EnrichmentResult:
    verdict: Verdict
    # label -> scalar, list, or nested mapping (e.g. last_analysis_stats)
    details: Dict[str, Any] = field(default_factory=dict)


# Canned per-kind profiles returned by the demo lookup.
_DEMO_PROFILES: Dict[InputKind, EnrichmentResult] = {
    InputKind.IP: EnrichmentResult(
        verdict=Verdict.MALICIOUS,
        details={
            "sources": ["AbuseIPDB", "Spamhaus"],
            "last_analysis_stats": {"malicious": 2, "harmless": 8, "suspicious": 1},
            "country": "US",
        },
    ),
    InputKind.URL: EnrichmentResult(
        verdict=Verdict.SUSPICIOUS,
        details={
            "sources": ["Google Safebrowsing", "PhishTank"],
            "last_analysis_stats": {"malicious": 1, "harmless": 9, "suspicious": 2},
            "content_type": "text/html",
        },
    ),
    InputKind.HASH: EnrichmentResult(
        verdict=Verdict.MALICIOUS,
        details={
            "sources": ["ESET", "Avira", "Kaspersky"],
            "last_analysis_stats": {"malicious": 11, "harmless": 41, "suspicious": 1},
            "file_type": "exe",
        },
    ),
}


class EnrichmentService:
    """Threat-intel lookup for a classified IOC.

    Implementations resolve to an EnrichmentResult or raise EnrichmentError.
    """

    async def enrich(self, value: str, kind: InputKind) -> EnrichmentResult:
        raise NotImplementedError


class DemoEnrichmentService(EnrichmentService):
    """Simulated VirusTotal-style lookup with a fixed round-trip latency."""

    def __init__(self, latency: float = 0.9, sleep: Optional[Sleep] = None) -> None:
        self._latency = latency
        self._sleep: Sleep = sleep or asyncio.sleep

    async def enrich(self, value: str, kind: InputKind) -> EnrichmentResult:
        await self._sleep(self._latency)
        profile = _DEMO_PROFILES.get(InputKind(kind))
        if profile is None:
            return EnrichmentResult(verdict=Verdict.UNKNOWN, details={})
        return EnrichmentResult(
            verdict=profile.verdict, details=copy.deepcopy(profile.details)
        )


async def enrich_with_retry(
    service: EnrichmentService,
    value: str,
    kind: InputKind,
    *,
    attempts: int = 3,
    timeout: Optional[float] = 10.0,
    backoff: float = 0.5,
    sleep: Optional[Sleep] = None,
) -> EnrichmentResult:
    """Run a lookup with a per-attempt timeout and bounded retries.

    Only transient errors and timeouts are retried; the delay doubles after
    each failed attempt. The last failure is raised as EnrichmentError, and
    any other exception from the provider is wrapped in one.
    """
    sleep = sleep or asyncio.sleep
    last_error: Optional[EnrichmentError] = None
    for attempt in range(1, attempts + 1):
        try:
            if timeout is None:
                return await service.enrich(value, kind)
            return await asyncio.wait_for(service.enrich(value, kind), timeout=timeout)
        except asyncio.TimeoutError:
            last_error = EnrichmentError(
                f"lookup timed out after {timeout}s", transient=True
            )
        except EnrichmentError as e:
            if not e.transient:
                logger.warning("Enrichment of %s failed permanently: %s", kind, e)
                raise
            last_error = e
        except Exception as e:
            logger.exception("Enrichment provider raised unexpectedly for %s", kind)
            raise EnrichmentError(f"lookup failed: {e}", transient=False) from e

        logger.warning(
            "Enrichment attempt %d/%d for %s failed: %s",
            attempt,
            attempts,
            kind,
            last_error,
        )
        if attempt < attempts:
            await sleep(backoff * (2 ** (attempt - 1)))

    raise EnrichmentError(
        f"lookup failed after {attempts} attempts: {last_error}", transient=False
    )


__all__ = [
    "Verdict",
    "EnrichmentResult",
    "EnrichmentService",
    "DemoEnrichmentService",
    "enrich_with_retry",
]
