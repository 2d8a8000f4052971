"""Plugin-side dispatcher: signing round trip, retries, rate limiting, correlation."""

from cgplugin.client.channel import LocalFrameChannel, MessageChannel, create_channel_pair
from cgplugin.client.correlator import Correlator
from cgplugin.client.dispatcher import OutgoingRequest, PluginClient
from cgplugin.client.rate_limit import MAX_REQUESTS_PER_MINUTE, RateLimiter, SlidingWindowRateLimiter
from cgplugin.client.sign_client import SigningEndpointClient
from cgplugin.client.slot import ClientSlot, default_slot, get_instance, initialize

__all__ = [
    "ClientSlot",
    "Correlator",
    "LocalFrameChannel",
    "MAX_REQUESTS_PER_MINUTE",
    "MessageChannel",
    "OutgoingRequest",
    "PluginClient",
    "RateLimiter",
    "SigningEndpointClient",
    "SlidingWindowRateLimiter",
    "create_channel_pair",
    "default_slot",
    "get_instance",
    "initialize",
]
