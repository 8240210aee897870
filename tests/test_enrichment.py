import asyncio

import pytest

from soc_chat.classifier import InputKind
from soc_chat.enrichment import (
    DemoEnrichmentService,
    EnrichmentResult,
    EnrichmentService,
    Verdict,
    enrich_with_retry,
)
from soc_chat.errors import EnrichmentError


class FlakyService(EnrichmentService):
    def __init__(self, failures, transient=True):
        self.failures = failures
        self.transient = transient
        self.calls = 0

    async def enrich(self, value, kind):
        self.calls += 1
        if self.calls <= self.failures:
            raise EnrichmentError("provider returned 503", transient=self.transient)
        return EnrichmentResult(verdict=Verdict.HARMLESS, details={})


class HangingService(EnrichmentService):
    def __init__(self):
        self.calls = 0

    async def enrich(self, value, kind):
        self.calls += 1
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_demo_lookup_waits_for_simulated_latency(fake_sleep):
    service = DemoEnrichmentService(latency=0.9, sleep=fake_sleep)
    result = await service.enrich("1.1.1.1", InputKind.IP)
    assert fake_sleep.calls == [0.9]
    assert result.verdict is Verdict.MALICIOUS
    assert result.details["country"] == "US"
    assert result.details["last_analysis_stats"] == {"malicious": 2, "harmless": 8, "suspicious": 1}


@pytest.mark.asyncio
async def test_demo_profiles_are_kind_specific(fake_sleep):
    service = DemoEnrichmentService(sleep=fake_sleep)
    url = await service.enrich("https://x.io", InputKind.URL)
    digest = await service.enrich("f" * 64, InputKind.HASH)
    assert url.verdict is Verdict.SUSPICIOUS
    assert url.details["sources"] == ["Google Safebrowsing", "PhishTank"]
    assert digest.verdict is Verdict.MALICIOUS
    assert digest.details["file_type"] == "exe"


@pytest.mark.asyncio
async def test_unknown_kind_yields_unknown_verdict_with_empty_details(fake_sleep):
    result = await DemoEnrichmentService(sleep=fake_sleep).enrich("hello", InputKind.UNKNOWN)
    assert result.verdict is Verdict.UNKNOWN
    assert result.details == {}


@pytest.mark.asyncio
async def test_demo_results_are_independent_copies(fake_sleep):
    service = DemoEnrichmentService(sleep=fake_sleep)
    first = await service.enrich("1.1.1.1", InputKind.IP)
    first.details["last_analysis_stats"]["malicious"] = 99
    second = await service.enrich("1.1.1.1", InputKind.IP)
    assert second.details["last_analysis_stats"]["malicious"] == 2


@pytest.mark.asyncio
async def test_transient_failures_are_retried_with_backoff(fake_sleep):
    service = FlakyService(failures=2)
    result = await enrich_with_retry(
        service, "1.1.1.1", InputKind.IP, attempts=3, backoff=0.5, sleep=fake_sleep
    )
    assert result.verdict is Verdict.HARMLESS
    assert service.calls == 3
    assert fake_sleep.calls == [0.5, 1.0]


@pytest.mark.asyncio
async def test_retries_are_bounded(fake_sleep):
    service = FlakyService(failures=10)
    with pytest.raises(EnrichmentError) as excinfo:
        await enrich_with_retry(service, "1.1.1.1", InputKind.IP, attempts=3, sleep=fake_sleep)
    assert service.calls == 3
    assert not excinfo.value.transient


@pytest.mark.asyncio
async def test_permanent_failures_are_not_retried(fake_sleep):
    service = FlakyService(failures=1, transient=False)
    with pytest.raises(EnrichmentError):
        await enrich_with_retry(service, "1.1.1.1", InputKind.IP, attempts=3, sleep=fake_sleep)
    assert service.calls == 1
    assert fake_sleep.calls == []


@pytest.mark.asyncio
async def test_timeouts_count_as_transient_failures(fake_sleep):
    service = HangingService()
    with pytest.raises(EnrichmentError, match="timed out"):
        await enrich_with_retry(
            service, "1.1.1.1", InputKind.IP, attempts=2, timeout=0.01, sleep=fake_sleep
        )
    assert service.calls == 2


class SocketResetService(EnrichmentService):
    def __init__(self):
        self.calls = 0

    async def enrich(self, value, kind):
        self.calls += 1
        raise ConnectionError("provider socket reset")


@pytest.mark.asyncio
async def test_unexpected_provider_errors_become_enrichment_errors(fake_sleep):
    service = SocketResetService()
    with pytest.raises(EnrichmentError) as excinfo:
        await enrich_with_retry(service, "1.1.1.1", InputKind.IP, attempts=3, sleep=fake_sleep)
    assert service.calls == 1
    assert not excinfo.value.transient
    assert isinstance(excinfo.value.__cause__, ConnectionError)
