# backend/availability_engine/services/base.py
"""
Base Service Pattern for the availability engine

Provides common functionality for the store-backed services:
- Transaction management
- Logging
- Error translation (store failures become 503s)
- Performance monitoring
"""

from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException, UpstreamUnavailableException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class BaseService:
    """
    Base class for the store-backed engine services.

    Store failures inside a transaction surface as 503s; operations wrapped
    with measure_operation are timed into Prometheus.
    """

    def __init__(self, db: Session):
        """
        Args:
            db: Session shared by the service and its repositories
        """
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)
        self._metrics: Dict[str, Dict[str, float]] = {}

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit the unit of work on exit, roll it back on any error.

        Usage:
            with self.transaction():
                self.repository.save_availability(tutor_id, merged)

        Raises:
            UpstreamUnavailableException: The store rejected or lost the write
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except (SQLAlchemyError, RepositoryException) as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise UpstreamUnavailableException(
                "The availability store is temporarily unavailable",
                code="STORE_UNAVAILABLE",
            ) from e
        except Exception as e:
            self.logger.debug(f"Transaction rolled back: {type(e).__name__}")
            self.db.rollback()
            raise

    @contextmanager
    def upstream_guard(self, operation: str) -> Iterator[None]:
        """Translate repository failures on read paths into a retryable 503."""
        try:
            yield
        except RepositoryException as e:
            self.logger.error(f"{operation} failed: {str(e)}")
            raise UpstreamUnavailableException(
                "The availability store is temporarily unavailable",
                code="STORE_UNAVAILABLE",
                details={"operation": operation},
            ) from e

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("compute_slots_for_date")
            def compute_slots_for_date(self, ...):
                # Method implementation

        Args:
            operation_name: Name of the operation for metrics

        Returns:
            Decorator function
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                start_time = time.time()
                success = False
                error_type = None

                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.time() - start_time

                    if hasattr(self, "_record_metric"):
                        self._record_metric(operation_name, elapsed, success)

                    # Only log if it's actually slow
                    if elapsed > 1.0 and hasattr(self, "logger"):
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )

                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        stats = self._metrics.setdefault(
            operation, {"count": 0, "total_time": 0.0, "success_count": 0, "failure_count": 0}
        )
        stats["count"] += 1
        stats["total_time"] += elapsed
        if success:
            stats["success_count"] += 1
        else:
            stats["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """Per-operation counters collected by this service instance."""
        metrics = {}
        for operation, stats in self._metrics.items():
            count = stats["count"] or 1
            metrics[operation] = {
                **stats,
                "avg_time": stats["total_time"] / count,
                "success_rate": stats["success_count"] / count,
            }
        return metrics
