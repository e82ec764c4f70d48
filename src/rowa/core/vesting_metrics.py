"""
Vesting instrumentation for ROWA.

Prometheus metrics tracking schedule creation, releases, revocations and the
committed allocation per category. The helpers are safe to call from the
lifecycle path and never raise.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

schedules_created_counter = Counter(
    "rowa_vesting_schedules_created_total", "Vesting schedules created", ["category"]
)

tokens_released_counter = Counter(
    "rowa_vesting_tokens_released_total",
    "Base units released to beneficiaries",
    ["category"],
)

revocations_counter = Counter(
    "rowa_vesting_revocations_total", "Vesting schedules revoked", ["category"]
)

committed_gauge = Gauge(
    "rowa_vesting_committed_amount", "Base units committed per category", ["category"]
)


def record_schedule_created(category: str, committed: int) -> None:
    schedules_created_counter.labels(category=category).inc()
    committed_gauge.labels(category=category).set(committed)


def record_release(category: str, amount: int) -> None:
    if amount <= 0:
        return
    tokens_released_counter.labels(category=category).inc(amount)


def record_revocation(category: str, committed: int) -> None:
    revocations_counter.labels(category=category).inc()
    committed_gauge.labels(category=category).set(committed)
