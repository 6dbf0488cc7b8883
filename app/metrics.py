from prometheus_client import Counter

SUBMISSIONS = Counter(
    "warranty_submissions_total",
    "Warranty form submissions by outcome",
    ["outcome"],  # accepted | rejected | honeypot | invalid_body | counter_unavailable
)

DOWNSTREAM_FAILURES = Counter(
    "warranty_downstream_failures_total",
    "Non-fatal CRM / email failures after a claim number was issued",
    ["step"],  # contact | ticket | association | attachments | email
)
