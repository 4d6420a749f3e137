# =============================================================================
# tests/unit/test_notifications.py
# Unit Tests for Notices and the Notification Feed
# =============================================================================

from fleet_core.notifications import (
    NoticeLevel,
    Notification,
    NotificationFeed,
    Notifier,
    seed_notifications,
)


class TestNotifier:
    def test_history_and_sinks(self, notifier):
        received = []
        notifier.register_sink(received.append)

        notifier.success("Guardado", record_id="OT-2025-001")
        notifier.error("Falló")

        assert [n.level for n in notifier.history] == [NoticeLevel.SUCCESS, NoticeLevel.ERROR]
        assert received[0].record_id == "OT-2025-001"

    def test_failing_sink_does_not_break_emit(self, notifier):
        def broken(notice):
            raise RuntimeError("sink down")

        notifier.register_sink(broken)
        notifier.info("Hola")

        assert len(notifier.history) == 1

    def test_drain_empties_history(self, notifier):
        notifier.warning("uno")
        notifier.warning("dos")

        assert [n.message for n in notifier.drain()] == ["uno", "dos"]
        assert notifier.history == []

    def test_history_is_bounded(self):
        notifier = Notifier(history_size=3)
        for i in range(5):
            notifier.info(str(i))
        assert [n.message for n in notifier.history] == ["2", "3", "4"]


class TestNotificationFeed:
    def test_seeded_by_default(self):
        feed = NotificationFeed()
        assert len(feed.items) == len(seed_notifications())
        assert feed.unread_count == 1

    def test_push_is_newest_first(self):
        feed = NotificationFeed(seed=[])
        feed.push(Notification(type="system", title="a", message="a"))
        feed.push(Notification(type="system", title="b", message="b"))

        assert [n.title for n in feed.items] == ["b", "a"]

    def test_ids_are_unique(self):
        ids = {Notification(type="system", title="x", message="x").id for _ in range(50)}
        assert len(ids) == 50

    def test_mark_read(self):
        feed = NotificationFeed(seed=[])
        first = feed.push(Notification(type="fuel", title="a", message="a"))
        feed.push(Notification(type="fuel", title="b", message="b"))

        assert feed.mark_read(first.id)
        assert not feed.mark_read("missing")
        assert feed.unread_count == 1

    def test_mark_all_read_emits_notice(self, notifier):
        feed = NotificationFeed(notifier=notifier)
        feed.mark_all_read()

        assert feed.unread_count == 0
        assert notifier.history[-1].message == "Todas las notificaciones marcadas como leídas"

    def test_clear(self):
        feed = NotificationFeed()
        feed.clear()
        assert feed.items == []
