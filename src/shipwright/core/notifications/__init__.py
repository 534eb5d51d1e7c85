from .notifier import NotificationRouter, Notifier, TaskNotifier, build_notification_router

__all__ = ["NotificationRouter", "Notifier", "TaskNotifier", "build_notification_router"]
