"""
Navigation: intents, the bus that carries them and the page stack owner.
"""

from sdui.navigation.bus import NavigationBus
from sdui.navigation.events import (
    ExecuteResultCallbackEvent,
    NavigateEvent,
    NavigationEvent,
    PopEvent,
    PopToEvent,
    ResultCallback,
)
from sdui.navigation.stack import NavHost, PageEntry, PageStack

__all__ = [
    "ExecuteResultCallbackEvent",
    "NavHost",
    "NavigateEvent",
    "NavigationBus",
    "NavigationEvent",
    "PageEntry",
    "PageStack",
    "PopEvent",
    "PopToEvent",
    "ResultCallback",
]
