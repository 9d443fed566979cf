import atexit
import socket
import uuid
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import TYPE_CHECKING, Optional

from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.semconv.resource import ResourceAttributes

from mediastash.config import AttachmentsConfig, TelemetryConfig

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

    from mediastash.engine import Engine

_MISSING_EXPORTERS_MSG = (
    "Telemetry is enabled but no exporters are configured. "
    "Set endpoint or console_export=True to export traces."
)

# Probes hit these every few seconds; tracing them only adds noise
EXCLUDED_URLS = "health,health/liveness,health/readiness"


def build_resource(
    service_name: str,
    telemetry_config: TelemetryConfig,
    attachments_config: Optional[AttachmentsConfig] = None,
) -> Resource:
    """Describe this mediastash instance for exported traces.

    Besides the standard service attributes, the extraction setup (cache
    location, ffmpeg tools and timeouts) is recorded so traces of slow or
    failing extractions can be told apart per deployment.
    """
    attrs: dict[str, str | float] = {ResourceAttributes.SERVICE_NAME: service_name}

    try:
        attrs[ResourceAttributes.SERVICE_VERSION] = get_version("mediastash")
    except PackageNotFoundError:
        pass

    if telemetry_config.deployment_environment:
        attrs[ResourceAttributes.DEPLOYMENT_ENVIRONMENT] = telemetry_config.deployment_environment

    if telemetry_config.service_instance_id:
        attrs[ResourceAttributes.SERVICE_INSTANCE_ID] = telemetry_config.service_instance_id
    else:
        instance_uuid = str(uuid.uuid4())[:8]
        attrs[ResourceAttributes.SERVICE_INSTANCE_ID] = f"{socket.gethostname()}-{instance_uuid}"

    if attachments_config is not None:
        attrs["mediastash.attachments.cache_dir"] = attachments_config.cache_dir
        attrs["mediastash.attachments.ffmpeg_path"] = attachments_config.ffmpeg_path
        attrs["mediastash.attachments.ffprobe_path"] = attachments_config.ffprobe_path
        attrs["mediastash.attachments.probe_timeout"] = attachments_config.probe_timeout
        if attachments_config.wait_timeout is not None:
            attrs["mediastash.attachments.wait_timeout"] = attachments_config.wait_timeout

    return Resource.create(attrs)


def setup_telemetry(
    app: "Engine",
    telemetry_config: TelemetryConfig,
    attachments_config: Optional[AttachmentsConfig] = None,
) -> Optional["Tracer"]:
    """Setup OpenTelemetry tracing for the application.

    Instruments Flask (health probes excluded) and installs the tracer
    provider that the "attachment.extract" spans of extraction workers are
    exported through.

    Args:
        app: Flask application instance
        telemetry_config: Telemetry configuration specifying endpoint and export options
        attachments_config: Extraction setup recorded on the trace resource

    Returns:
        OpenTelemetry tracer instance if enabled, None otherwise
    """
    if not telemetry_config.enabled:
        return None

    if not telemetry_config.endpoint and not telemetry_config.console_export:
        raise ValueError(_MISSING_EXPORTERS_MSG)

    service_name = app.config.get("APP_NAME", "mediastash")
    provider = TracerProvider(
        resource=build_resource(service_name, telemetry_config, attachments_config)
    )

    if telemetry_config.endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        exporter = OTLPSpanExporter(
            endpoint=telemetry_config.endpoint, timeout=telemetry_config.timeout
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))

    if telemetry_config.console_export:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    FlaskInstrumentor().instrument_app(app, excluded_urls=EXCLUDED_URLS)
    app.telemetry_instrumented = True

    @app.teardown_appcontext
    def flush_telemetry(_exc: Optional[BaseException] = None) -> None:
        """Flush pending spans after request completion."""
        provider.force_flush()

    atexit.register(provider.shutdown)

    return trace.get_tracer(__name__)
