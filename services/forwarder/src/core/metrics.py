"""Prometheus metrics for the forwarder service."""

from shared.metrics import get_counter, get_gauge, get_histogram

SERVICE = "forwarder"

EVENTS_TOTAL = get_counter(
    "events_total", "Events received from the inbound channel", SERVICE
)
SAMPLES_RENDERED = get_counter(
    "samples_rendered_total", "Samples rendered into the active batch", SERVICE
)
RENDER_FAILURES = get_counter(
    "render_failures_total",
    "Template renders skipped because the value did not parse",
    SERVICE,
    labelnames=("metric",),
)
VALUES_ZEROED = get_counter(
    "values_zeroed_total", "Unparseable values forwarded as zero (legacy mode)", SERVICE
)

FLUSHES_TOTAL = get_counter("flushes_total", "Batches submitted successfully", SERVICE)
FLUSH_FAILURES = get_counter(
    "flush_failures_total", "Batches dropped after a failed submission", SERVICE
)
SAMPLES_SUBMITTED = get_counter(
    "samples_submitted_total", "Samples accepted by the gateway", SERVICE
)
SAMPLES_DROPPED = get_counter(
    "samples_dropped_total", "Samples lost to failed submissions or shutdown", SERVICE
)

BATCH_SIZE = get_histogram(
    "batch_size",
    "Samples per submitted batch",
    SERVICE,
    buckets=[1, 10, 50, 100, 250, 500, 1000, 5000],
)
SUBMIT_LATENCY = get_histogram(
    "submit_latency_seconds", "Time spent submitting a batch to the gateway", SERVICE
)
ACTIVE_BATCH_SAMPLES = get_gauge(
    "active_batch_samples", "Samples waiting in the current flush window", SERVICE
)
