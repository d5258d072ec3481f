"""Prometheus instrumentation for secret reconciliation.

Metrics live in their own registry so embedding controllers decide if and
where to expose them. Labels are limited to the deployment name.
"""

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

REGISTRY = CollectorRegistry()

INSPECTED_SECRETS = Counter(
    "arangodb_operator_resources_inspected_secrets",
    "Number of Secret inspections per deployment",
    ["deployment"],
    registry=REGISTRY,
)
INSPECT_SECRETS_DURATION = Gauge(
    "arangodb_operator_resources_inspect_secrets_duration",
    "Amount of time taken by a single inspection of all Secrets for a deployment (in sec)",
    ["deployment"],
    registry=REGISTRY,
)


def export() -> bytes:
    """Render the registry in the Prometheus text format."""
    return generate_latest(REGISTRY)
