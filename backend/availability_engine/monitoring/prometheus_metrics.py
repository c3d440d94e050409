"""
Prometheus metrics for the availability engine.

Service timings come from the @measure_operation decorator; the negotiation
lock and slot computation record their own counters.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "availability_engine_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "availability_engine_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "availability_engine_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

lesson_lock_total = Counter(
    "availability_engine_lesson_lock_total",
    "Lesson negotiation lock outcomes",
    ["action", "outcome"],
    registry=REGISTRY,
)

reschedule_transitions_total = Counter(
    "availability_engine_reschedule_transitions_total",
    "Reschedule negotiation transitions",
    ["transition", "outcome"],
    registry=REGISTRY,
)

computed_slots_total = Counter(
    "availability_engine_computed_slots_total",
    "Bookable slots emitted by slot computation",
    ["filter_by_duration"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade over the module-level collectors."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'AvailabilityService')
            operation: Operation/method name (e.g., 'compute_slots_for_date')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_lesson_lock(action: str, outcome: str) -> None:
        lesson_lock_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def record_reschedule_transition(transition: str, outcome: str) -> None:
        reschedule_transitions_total.labels(transition=transition, outcome=outcome).inc()

    @staticmethod
    def record_computed_slots(count: int, filter_by_duration: bool) -> None:
        computed_slots_total.labels(filter_by_duration=str(filter_by_duration).lower()).inc(count)

    @staticmethod
    def get_metrics() -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


# Singleton instance
prometheus_metrics = PrometheusMetrics()
