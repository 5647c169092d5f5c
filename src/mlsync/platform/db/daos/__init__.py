"""Data access objects for the index database."""

from .inbox_status_dao import InboxStatusDAO, InboxStatusRecord
from .tracks_dao import TracksDAO

__all__ = ["InboxStatusDAO", "InboxStatusRecord", "TracksDAO"]
