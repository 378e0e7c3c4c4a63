from .notice_feed import NoticeFeed

__all__ = ["NoticeFeed"]
