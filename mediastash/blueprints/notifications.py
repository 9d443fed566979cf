import logging

from flask import Blueprint, jsonify, make_response, request

from mediastash.db.db import DB
from mediastash.notifier import NotificationLevel, NotificationManager, NotificationRequest

logger = logging.getLogger(__name__)


def _parse_bool(value: str) -> bool:
    if value.lower() in ("true", "1"):
        return True
    if value.lower() in ("false", "0"):
        return False
    raise ValueError(f"Invalid boolean: '{value}'")


def _parse_ids(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def create_notifications_blueprint(notification_manager: NotificationManager, db: DB):
    notifications = Blueprint("notifications", __name__, url_prefix="/Notifications")

    @notifications.route("/<user_id>", methods=["GET"])
    def get_notifications(user_id: str):
        # Notifications are delivered by the notifiers, nothing is stored server side
        is_read = request.args.get("isRead", type=_parse_bool)
        start_index = request.args.get("startIndex", type=int)
        limit = request.args.get("limit", type=int)
        logger.debug(
            "Listing notifications of user %s (isRead=%s, startIndex=%s, limit=%s)",
            user_id,
            is_read,
            start_index,
            limit,
        )
        if (start_index is not None and start_index < 0) or (limit is not None and limit < 0):
            return make_response("startIndex and limit must be non-negative", 400)
        return jsonify({"Notifications": [], "TotalRecordCount": 0})

    @notifications.route("/<user_id>/Summary", methods=["GET"])
    def get_notifications_summary(user_id: str):
        return jsonify({"UnreadCount": 0, "MaxUnreadNotificationLevel": None})

    @notifications.route("/Types", methods=["GET"])
    def get_notification_types():
        types = notification_manager.get_notification_types()
        return jsonify([t.model_dump(by_alias=True) for t in types])

    @notifications.route("/Services", methods=["GET"])
    def get_notification_services():
        services = notification_manager.get_notification_services()
        return jsonify([s.model_dump(by_alias=True) for s in services])

    @notifications.route("/Admin", methods=["POST"])
    def create_admin_notification():
        """Send a notification to every administrator."""
        name = request.args.get("name")
        if not name:
            return make_response("Query parameter 'name' is required", 400)
        try:
            level = NotificationLevel.parse(request.args.get("level"))
        except ValueError as e:
            return make_response(str(e), 400)

        notification = NotificationRequest(
            name=name,
            description=request.args.get("description", ""),
            url=request.args.get("url"),
            level=level,
            user_ids=tuple(user.id for user in db.get_administrators()),
        )
        notification_manager.send_notification(notification)
        return "", 204

    @notifications.route("/<user_id>/Read", methods=["POST"])
    def set_read(user_id: str):
        ids = _parse_ids(request.args.get("ids"))
        logger.debug("Marking notifications %s of user %s as read", ids, user_id)
        return "", 204

    @notifications.route("/<user_id>/Unread", methods=["POST"])
    def set_unread(user_id: str):
        ids = _parse_ids(request.args.get("ids"))
        logger.debug("Marking notifications %s of user %s as unread", ids, user_id)
        return "", 204

    return notifications
