from component_gallery_mcp.selection.broadcast import BroadcastSelectionSource, subscribed
from component_gallery_mcp.selection.polling import PollingSelectionSource
from component_gallery_mcp.selection.realtime_channel import RealtimeBroadcastChannel
from component_gallery_mcp.selection.settlement import Settlement
from component_gallery_mcp.selection.source import BroadcastChannel, SelectionSource, Subscription
from component_gallery_mcp.selection.waiter import SessionWaiter

__all__ = [
    "BroadcastChannel",
    "BroadcastSelectionSource",
    "PollingSelectionSource",
    "RealtimeBroadcastChannel",
    "SelectionSource",
    "SessionWaiter",
    "Settlement",
    "Subscription",
    "subscribed",
]
