"""Flask application engine serving media attachments and notifications."""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, TimeoutError
from typing import Any

from flask import Blueprint, Flask, jsonify, make_response

from mediastash.attachment import AttachmentService
from mediastash.config import Config
from mediastash.db.db import DB
from mediastash.notification_result import NotificationResult
from mediastash.notifier import NotificationManager, NotificationRequest, Notifier

logger = logging.getLogger(__name__)


class Engine(Flask):
    def __init__(
        self,
        config: Config,
        db: DB,
        import_name: str,
        attachment_service: AttachmentService,
        notification_manager: NotificationManager | None = None,
    ) -> None:
        """Initialize the Engine.

        Args:
            config: Application configuration.
            db: Library database instance.
            import_name: Name of the application module.
            attachment_service: Service extracting and caching attachments.
            notification_manager: Notification fan-out; a new one is created if omitted.
        """
        super().__init__(import_name)
        self.config.from_mapping(config.model_dump(by_alias=True))
        self.db = db
        self.attachment_service = attachment_service
        self.notification_manager = notification_manager or NotificationManager()
        self.health_checks: list[tuple[str, Callable[[], None]]] = []
        self.telemetry_instrumented: bool = False
        self._register_default_health_endpoints()

    def notify(self, request: NotificationRequest) -> NotificationResult:
        """Send a notification to all registered notifiers."""
        return self.notification_manager.send_notification(request)

    def add_notifier(self, notifier: Notifier) -> None:
        """Register a notifier to receive notifications.

        Args:
            notifier: A callable conforming to the Notifier protocol.
        """
        self.notification_manager.add_notifier(notifier)

    def add_health_check(self, name: str, check_function: Callable[[], None]) -> None:
        """Register a health check function"""
        if not callable(check_function):
            raise TypeError(f"check_function must be callable, got {type(check_function)}")
        self.health_checks.append((name, check_function))

    def _register_default_health_endpoints(self) -> None:
        """Register default health endpoints."""
        health_bp = Blueprint("health", __name__)
        health_check_timeout = 10  # seconds

        def run_health_check(
            executor: ThreadPoolExecutor,
            check_func: Callable[[], None],
            timeout: int,
        ) -> str:
            """Run a health check with timeout, returning status string."""
            future = executor.submit(check_func)
            try:
                future.result(timeout=timeout)
                return "ok"
            except TimeoutError:
                return "failed: timeout"
            except Exception as e:
                return f"failed: {e!s}"

        @health_bp.route("/health/liveness")
        def liveness():
            """Simple liveness check - is the app running?"""
            return jsonify({"status": "alive"}), 200

        @health_bp.route("/health/readiness")
        def readiness():
            """Readiness check - can the app serve traffic?"""
            health_status: dict[str, Any] = {
                "status": "ready",
                "checks": {},
                "extractions_in_flight": self.attachment_service.coordinator.in_flight(),
            }

            all_checks = [("database", self.db.health_check), *self.health_checks]

            executor = ThreadPoolExecutor(max_workers=1)
            try:
                for check_name, check_func in all_checks:
                    status = run_health_check(executor, check_func, health_check_timeout)
                    health_status["checks"][check_name] = status
                    if status != "ok":
                        health_status["status"] = "not_ready"
            finally:
                executor.shutdown(wait=False)

            status_code = 200 if health_status["status"] == "ready" else 503
            return make_response(jsonify(health_status), status_code)

        @health_bp.route("/health")
        def health():
            """Simple /health alias for liveness."""
            return liveness()

        self.register_blueprint(health_bp)
