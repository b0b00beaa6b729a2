"""FIFO crawl frontier with a visited set, owned by a single crawl."""
from collections import deque
from typing import Deque, Iterable, Optional, Set

from ..utils.url_utils import is_http_url, normalize_url, strip_trailing_slash


class UrlFrontier:
    """
    Queue of URLs still to fetch for one crawl.

    Keys are compared in normalized form (lower-cased, trailing slash
    stripped); the original URL string is what gets handed out for fetching.
    """

    def __init__(self):
        self._queue: Deque[str] = deque()
        self._queued: Set[str] = set()
        self._visited: Set[str] = set()

    def seed(self, base_url: str, priority_paths: Iterable[str]) -> int:
        """
        Enqueue the priority paths rooted at ``base_url``.

        Call before any discovered link is enqueued so canonical sections are
        visited first even under a tight page ceiling.

        Returns:
            Number of URLs actually enqueued
        """
        root = strip_trailing_slash(base_url)
        return sum(1 for path in priority_paths if self.enqueue(root + path))

    def enqueue(self, url: str) -> bool:
        """Add a URL unless it is non-http(s), already visited or already queued."""
        if not is_http_url(url):
            return False

        key = normalize_url(url)
        if key in self._visited or key in self._queued:
            return False

        self._queue.append(url)
        self._queued.add(key)
        return True

    def next(self) -> Optional[str]:
        """Pop the oldest queued URL, or None when the frontier is empty."""
        if not self._queue:
            return None
        url = self._queue.popleft()
        self._queued.discard(normalize_url(url))
        return url

    def mark_visited(self, url: str):
        self._visited.add(normalize_url(url))

    def is_visited(self, url: str) -> bool:
        return normalize_url(url) in self._visited

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    def __len__(self) -> int:
        return len(self._queue)
