"""In-memory bookkeeping of which bot replies answer which message.

WHY: Two features need to find the bot's replies later: editing a
message updates (or removes) its X2I replies, and the original author
can delete a reply by reacting to it. Nothing is persisted, so after a
restart older replies are simply no longer tracked.

HOW: ReplyTracker maps the source message key ``(channel, ts)`` to a
ReplyRecord (author, reply timestamps and texts) and keeps a reverse
index from reply key to source key. A lock guards both maps because Bolt
runs handlers on worker threads. When max_age_s is set, every add()
drops records whose source message is older than that, oldest first.

RULES:
- Every public method takes the lock; returned records are copies
- Removing the last reply of a message drops the record
- Records older than max_age_s are forgotten; the record being added to
  is never pruned
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

MessageKey = Tuple[str, str]


@dataclass
class ReplyRecord:
    """Replies sent for one source message.

    Attributes:
        author: Slack user id of the source message's author.
        replies: Reply message timestamps, in posting order.
        texts: Text of each reply, parallel to ``replies``.
    """

    author: str
    replies: List[str] = field(default_factory=list)
    texts: List[str] = field(default_factory=list)


class ReplyTracker:
    """Replies per source message, optionally forgetting old messages.

    Args:
        max_age_s: Records whose source ``ts`` is older than this many
            seconds are dropped on add(). None keeps everything.
        clock: Returns the current time as a Unix timestamp.
    """

    def __init__(
        self,
        max_age_s: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_age_s = max_age_s
        self._clock = clock
        self._lock = threading.Lock()
        self._records: Dict[MessageKey, ReplyRecord] = {}
        self._sources: Dict[MessageKey, MessageKey] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _prune(self, keep: MessageKey) -> None:
        # Records are kept in insertion order, which follows message age
        cutoff = self._clock() - self.max_age_s
        for key in list(self._records):
            if key == keep:
                continue
            if float(key[1]) >= cutoff:
                break
            record = self._records.pop(key)
            for reply_ts in record.replies:
                self._sources.pop((key[0], reply_ts), None)

    def add(self, channel: str, source_ts: str, author: str, reply_ts: str, text: str) -> None:
        """Record one reply to ``source_ts``."""
        key = (channel, source_ts)
        with self._lock:
            if self.max_age_s is not None:
                self._prune(keep=key)
            record = self._records.setdefault(key, ReplyRecord(author=author))
            record.replies.append(reply_ts)
            record.texts.append(text)
            self._sources[(channel, reply_ts)] = key

    def get(self, channel: str, source_ts: str) -> Optional[ReplyRecord]:
        with self._lock:
            record = self._records.get((channel, source_ts))
            if record is None:
                return None
            return replace(record, replies=list(record.replies), texts=list(record.texts))

    def set_text(self, channel: str, reply_ts: str, text: str) -> None:
        with self._lock:
            source = self._sources.get((channel, reply_ts))
            if source is None:
                return
            record = self._records[source]
            record.texts[record.replies.index(reply_ts)] = text

    def author_of_reply(self, channel: str, reply_ts: str) -> Optional[str]:
        """Author of the message that ``reply_ts`` answers, if tracked."""
        with self._lock:
            source = self._sources.get((channel, reply_ts))
            if source is None:
                return None
            return self._records[source].author

    def remove_reply(self, channel: str, reply_ts: str) -> None:
        with self._lock:
            source = self._sources.pop((channel, reply_ts), None)
            if source is None:
                return
            record = self._records[source]
            i = record.replies.index(reply_ts)
            del record.replies[i]
            del record.texts[i]
            if not record.replies:
                del self._records[source]
