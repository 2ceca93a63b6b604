from .walker import BackfillReport, FeedWalker, PollReport, SeenItems, StopReason

__all__ = [
    "BackfillReport",
    "FeedWalker",
    "PollReport",
    "SeenItems",
    "StopReason",
]
