"""Tests for the in-memory notification center."""

import threading
from unittest.mock import patch

from trackstudio.services.notifications import NotificationCenter


class TestNotificationCenter:
    def setup_method(self):
        self.center = NotificationCenter(ttl=5)

    def test_notify_and_list(self):
        self.center.success("Saved")
        self.center.warning("Slow")

        active = self.center.active()
        assert [(n.type, n.message) for n in active] == [("success", "Saved"), ("warning", "Slow")]
        assert active[0].id != active[1].id

    def test_each_kind_helper(self):
        for kind in ("success", "info", "warning", "error"):
            notification = getattr(self.center, kind)(f"{kind} message")
            assert notification.type == kind

    @patch("trackstudio.services.notifications.time")
    def test_expired_notifications_are_dropped(self, mock_time):
        mock_time.monotonic.return_value = 100.0
        self.center.info("old")
        mock_time.monotonic.return_value = 103.0
        self.center.info("new")

        mock_time.monotonic.return_value = 106.0
        assert [n.message for n in self.center.active()] == ["new"]

        mock_time.monotonic.return_value = 109.0
        assert self.center.active() == []

    def test_dismiss(self):
        notification = self.center.error("Broken")
        assert self.center.dismiss(notification.id) is True
        assert self.center.active() == []

    def test_dismiss_unknown_is_noop(self):
        assert self.center.dismiss("missing") is False

    def test_clear(self):
        self.center.info("a")
        self.center.info("b")
        self.center.clear()
        assert self.center.active() == []

    def test_thread_safety(self):
        errors: list[Exception] = []

        def writer(prefix: str):
            try:
                for i in range(100):
                    self.center.info(f"{prefix}-{i}")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(f"t{t}",)) for t in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == 0
        assert len(self.center.active()) == 400
