"""Prometheus metrics for PIN authorization, biometrics, round-ups and payment submissions"""

from prometheus_client import Counter, Histogram

# Authorization metrics
pin_authorization_counter = Counter(
    "pin_authorization_total",
    "PIN authorization attempts by outcome",
    ["outcome"],  # issued | incorrect_pin | locked | unavailable
)

pin_lockout_counter = Counter(
    "pin_lockouts_total",
    "Sessions that entered a lockout window",
)

verifier_failure_counter = Counter(
    "verifier_failures_total",
    "Credential verifier calls that returned no verdict",
)

biometric_outcome_counter = Counter(
    "biometric_outcomes_total",
    "Biometric bridge outcomes",
    ["outcome"],  # authorized | unavailable | failed | setup_incomplete
)

# Payment metrics
payment_submission_counter = Counter(
    "payment_submissions_total",
    "Payment submissions by outcome",
    ["outcome"],  # success | pending | rejection code
)

round_up_bucket_counter = Counter(
    "round_up_bucket_total",
    "Round-up amounts by bucket",
    ["bucket"],  # none, <KES 10, KES 10-50, KES 50-100, KES 100+
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_authorization(outcome: str) -> None:
    pin_authorization_counter.labels(outcome=outcome).inc()


def record_biometric(outcome: str) -> None:
    biometric_outcome_counter.labels(outcome=outcome).inc()


def record_submission(outcome: str, round_up_cents: int) -> None:
    """Record submission outcome and bucket the round-up for savings analysis"""
    payment_submission_counter.labels(outcome=outcome).inc()

    if round_up_cents == 0:
        bucket = "none"
    elif round_up_cents < 1_000:
        bucket = "<KES 10"
    elif round_up_cents < 5_000:
        bucket = "KES 10-50"
    elif round_up_cents < 10_000:
        bucket = "KES 50-100"
    else:
        bucket = "KES 100+"

    round_up_bucket_counter.labels(bucket=bucket).inc()
