"""
View components for chatwire.

Views render with rich and receive a ``ViewContext`` holding the client,
router and notifier.
"""

from .base import View, ViewContext
from .notify import Notification, NotificationKind, Notifier
from .layout import Drawer, MainLayout, MenuItem, Toolbar, MENU
from .index import IndexView
from .signin import SignInView
from .chat import ChatView
from .not_found import NotFoundView

__all__ = [
    "View",
    "ViewContext",
    "Notification",
    "NotificationKind",
    "Notifier",
    "Drawer",
    "MainLayout",
    "MenuItem",
    "Toolbar",
    "MENU",
    "IndexView",
    "SignInView",
    "ChatView",
    "NotFoundView",
]
