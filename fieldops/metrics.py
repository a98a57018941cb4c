from prometheus_client import Counter

AUDIT_EVENTS = Counter(
    "audit_events_total",
    "Audit events appended to the in-memory store",
    ["event_type", "success"],
)

AUDIT_EVICTIONS = Counter(
    "audit_events_evicted_total",
    "Audit events dropped from the head of the ring buffer",
)

# Failures are swallowed by the audit path; this is the only signal operators get
AUDIT_LOG_FAILURES = Counter(
    "audit_log_failures_total",
    "Audit logging failures by stage",
    ["stage"],
)
