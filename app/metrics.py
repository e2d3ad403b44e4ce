from prometheus_client import Counter

LIFECYCLE_OPERATIONS = Counter(
    "registry_lifecycle_operations_total",
    "Committed officer lifecycle operations",
    ["operation"],
)
LIFECYCLE_ROLLBACKS = Counter(
    "registry_lifecycle_rollbacks_total",
    "Officer lifecycle operations rolled back",
    ["operation"],
)
DECRYPTION_FAILURES = Counter(
    "registry_field_decryption_failures_total",
    "Encrypted fields masked on read because decryption failed",
)
