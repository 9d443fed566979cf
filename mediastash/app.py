"""Application factories."""

import atexit
import logging

from mediastash.attachment import (
    AttachmentService,
    ContainerProber,
    ExtractionCache,
    ExtractionCoordinator,
    FfmpegProber,
)
from mediastash.blueprints.notifications import create_notifications_blueprint
from mediastash.blueprints.videos import create_videos_blueprint
from mediastash.config import Config
from mediastash.db.db import DB
from mediastash.db.db_loader import get_db
from mediastash.engine import Engine
from mediastash.telemetry import setup_telemetry

logger = logging.getLogger(__name__)


def create_engine(config: Config, db: DB, prober: ContainerProber | None = None) -> Engine:
    """Assemble the engine: extraction subsystem, notifications, blueprints and telemetry.

    Args:
        config: Application configuration.
        db: Library database instance.
        prober: Container prober; an ffmpeg-backed one is built from config if omitted.
    """
    attachments_config = config.attachments
    cache = ExtractionCache(attachments_config.cache_dir)
    coordinator = ExtractionCoordinator(cache)
    atexit.register(coordinator.shutdown, wait=False)

    if prober is None:
        prober = FfmpegProber(
            ffmpeg_path=attachments_config.ffmpeg_path,
            ffprobe_path=attachments_config.ffprobe_path,
            timeout=attachments_config.probe_timeout,
        )

    attachment_service = AttachmentService(
        library=db,
        prober=prober,
        coordinator=coordinator,
        wait_timeout=attachments_config.wait_timeout,
    )

    app = Engine(config, db, __name__, attachment_service)
    app.secret_key = config.secret_key
    app.register_blueprint(create_videos_blueprint(attachment_service))
    app.register_blueprint(create_notifications_blueprint(app.notification_manager, db))

    setup_telemetry(app, config.telemetry, attachments_config)
    logger.info("Serving attachments from cache at '%s'", cache.root)
    return app


def create_app_from_config(config: Config) -> Engine:
    db = get_db(config.db)
    return create_engine(config, db)


def create_app(config_path: str) -> Engine:
    config = Config.parse_yaml(config_path)
    return create_app_from_config(config)
