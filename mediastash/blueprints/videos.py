import logging

from flask import Blueprint, make_response, send_file

from mediastash.attachment import (
    AttachmentService,
    ExtractionTimeoutError,
    ResourceNotFoundError,
    StorageFailure,
)

logger = logging.getLogger(__name__)


def create_videos_blueprint(attachment_service: AttachmentService):
    videos = Blueprint("videos", __name__, url_prefix="/Videos")

    @videos.route("/<video_id>/<media_source_id>/Attachments/<int:index>", methods=["GET"])
    def get_attachment(video_id: str, media_source_id: str, index: int):
        """Stream an attachment embedded in a video's media source.

        Responds 200 with the attachment bytes, 404 if the video, media source
        or attachment does not exist.
        """
        try:
            attachment, stream = attachment_service.get_attachment(video_id, media_source_id, index)
        except ResourceNotFoundError as e:
            return make_response(str(e), 404)
        except ValueError as e:
            return make_response(str(e), 400)
        except ExtractionTimeoutError as e:
            logger.warning("Attachment request timed out: %s", e)
            return make_response(str(e), 504)
        except StorageFailure:
            logger.exception(
                "Storage failure serving attachment %d of %s/%s", index, video_id, media_source_id
            )
            return make_response("Attachment storage failure", 500)

        try:
            return send_file(
                stream,
                mimetype=attachment.content_type,
                download_name=attachment.download_name,
                last_modified=attachment.created_at,
            )
        except BaseException:
            # The response never took ownership of the handle
            stream.close()
            raise

    return videos
