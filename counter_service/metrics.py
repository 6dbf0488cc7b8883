from prometheus_client import Counter, Gauge, Histogram

ALLOCATIONS = Counter(
    "claim_counter_allocations_total",
    "Claim number allocation attempts",
    ["outcome"],  # issued | storage_unavailable | concurrency_violation
)

ALLOCATION_LATENCY = Histogram(
    "claim_counter_allocation_duration_seconds",
    "Time spent waiting for and running the serialized allocation",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

LAST_ISSUED = Gauge(
    "claim_counter_last_issued",
    "Last claim number issued by this instance",
)
