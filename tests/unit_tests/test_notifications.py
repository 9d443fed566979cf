import pytest

from mediastash.engine import Engine
from mediastash.notifier import (
    NotificationLevel,
    NotificationManager,
    NotificationRequest,
)
from tests.unit_tests.fake_app import container as container  # noqa: F401
from tests.unit_tests.fake_app import fake_prober as fake_prober  # noqa: F401
from tests.unit_tests.fake_app import test_app as test_app  # noqa: F401


class RecordingNotifier:
    def __init__(self) -> None:
        self.requests: list[NotificationRequest] = []

    def __call__(self, request: NotificationRequest) -> None:
        self.requests.append(request)


class TestNotificationManager:
    def test_fan_out_to_all_notifiers(self):
        manager = NotificationManager()
        first, second = RecordingNotifier(), RecordingNotifier()
        manager.add_notifier(first)
        manager.add_notifier(second)

        result = manager.send_notification(NotificationRequest(name="hello"))

        assert [r.name for r in first.requests] == ["hello"]
        assert [r.name for r in second.requests] == ["hello"]
        assert result.total_notifiers == 2
        assert result.notifiers_delivered == 2

    def test_failing_notifier_does_not_stop_others(self, caplog: pytest.LogCaptureFixture):
        manager = NotificationManager()

        def broken(request: NotificationRequest) -> None:
            raise RuntimeError("smtp down")

        recorder = RecordingNotifier()
        manager.add_notifier(broken)
        manager.add_notifier(recorder)

        result = manager.send_notification(NotificationRequest(name="hello"))

        assert len(recorder.requests) == 1
        assert result.notifiers_failed == 1
        assert result.notifier_results[0].notifier_name == "broken"
        assert result.notifier_results[0].error == "smtp down"
        assert "Notifier broken failed" in caplog.text

    def test_add_notifier_not_callable(self):
        with pytest.raises(TypeError, match="notifier must be callable"):
            NotificationManager().add_notifier("not a notifier")  # type: ignore[arg-type]

    def test_services_list_registered_notifiers(self):
        manager = NotificationManager()
        manager.add_notifier(RecordingNotifier())

        services = manager.get_notification_services()

        assert [(s.name, s.id) for s in services] == [("RecordingNotifier", "recordingnotifier")]

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, NotificationLevel.NORMAL),
            ("", NotificationLevel.NORMAL),
            ("Warning", NotificationLevel.WARNING),
            ("error", NotificationLevel.ERROR),
        ],
    )
    def test_level_parse(self, raw, expected):
        assert NotificationLevel.parse(raw) is expected

    def test_level_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown notification level"):
            NotificationLevel.parse("Critical")


class TestNotificationsEndpoints:
    def test_admin_notification_targets_administrators(self, test_app: Engine):
        recorder = RecordingNotifier()
        test_app.add_notifier(recorder)

        response = test_app.test_client().post(
            "/Notifications/Admin",
            query_string={
                "name": "Disk almost full",
                "description": "Cache volume at 95%",
                "url": "http://example.com/dashboard",
                "level": "Warning",
            },
        )

        assert response.status_code == 204
        (request,) = recorder.requests
        assert request.name == "Disk almost full"
        assert request.description == "Cache volume at 95%"
        assert request.url == "http://example.com/dashboard"
        assert request.level is NotificationLevel.WARNING
        assert request.user_ids == ("admin-1", "admin-2")
        assert request.date.tzinfo is not None

    def test_admin_notification_defaults_to_normal_level(self, test_app: Engine):
        recorder = RecordingNotifier()
        test_app.add_notifier(recorder)

        response = test_app.test_client().post(
            "/Notifications/Admin", query_string={"name": "n", "description": "d"}
        )

        assert response.status_code == 204
        assert recorder.requests[0].level is NotificationLevel.NORMAL
        assert recorder.requests[0].url is None

    def test_admin_notification_requires_name(self, test_app: Engine):
        response = test_app.test_client().post("/Notifications/Admin")
        assert response.status_code == 400

    def test_admin_notification_rejects_unknown_level(self, test_app: Engine):
        response = test_app.test_client().post(
            "/Notifications/Admin", query_string={"name": "n", "level": "Critical"}
        )
        assert response.status_code == 400

    def test_types(self, test_app: Engine):
        response = test_app.test_client().get("/Notifications/Types")

        assert response.status_code == 200
        types = response.get_json()
        assert {"Type", "Name", "Enabled", "Category", "IsBasedOnUserEvent"} <= set(types[0])
        assert "TaskFailed" in {t["Type"] for t in types}

    def test_services(self, test_app: Engine):
        test_app.add_notifier(RecordingNotifier())

        response = test_app.test_client().get("/Notifications/Services")

        assert response.get_json() == [{"Name": "RecordingNotifier", "Id": "recordingnotifier"}]

    def test_user_notifications_are_empty(self, test_app: Engine):
        response = test_app.test_client().get(
            "/Notifications/admin-1", query_string={"isRead": "false", "startIndex": 0, "limit": 10}
        )

        assert response.status_code == 200
        assert response.get_json() == {"Notifications": [], "TotalRecordCount": 0}

    def test_user_notifications_reject_negative_paging(self, test_app: Engine):
        response = test_app.test_client().get(
            "/Notifications/admin-1", query_string={"startIndex": -1}
        )
        assert response.status_code == 400

    def test_summary(self, test_app: Engine):
        response = test_app.test_client().get("/Notifications/admin-1/Summary")

        assert response.get_json() == {"UnreadCount": 0, "MaxUnreadNotificationLevel": None}

    @pytest.mark.parametrize("action", ["Read", "Unread"])
    def test_mark_read_and_unread(self, test_app: Engine, action: str):
        response = test_app.test_client().post(
            f"/Notifications/admin-1/{action}", query_string={"ids": "a, b,c"}
        )
        assert response.status_code == 204
