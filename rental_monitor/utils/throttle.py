"""
Fixed-delay pacing for calls against the upstream listing source.

Both the detail-fetch loop and the user batch loop need "do one thing, wait,
do the next thing". FixedDelay keeps that policy in one place and takes the
sleep function as a parameter so tests can record delays instead of waiting.
"""

import time
from typing import Callable, Iterable, Iterator, TypeVar

T = TypeVar("T")


class FixedDelay:
    """
    Sleep a fixed interval between consecutive operations.

    Example:
        >>> delay = FixedDelay(2.0)
        >>> for listing in delay.paced(listings):
        ...     client.get_details(listing.external_id)
    """

    def __init__(self, delay_seconds: float, sleep: Callable[[float], None] = time.sleep):
        self.delay_seconds = max(0.0, delay_seconds)
        self._sleep = sleep

    def wait(self) -> None:
        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)

    def paced(self, items: Iterable[T]) -> Iterator[T]:
        """
        Yield items, waiting between consecutive ones.

        There is no wait before the first item or after the last one.
        """
        first = True
        for item in items:
            if not first:
                self.wait()
            first = False
            yield item
