"""
Push-id generation.

Keys are 20 characters: 8 encode the creation time in milliseconds and 12
are random. Keys created later sort after earlier ones, and keys minted in
the same millisecond by one generator still sort in creation order because
the random tail is incremented instead of redrawn.
"""
import secrets
import threading
import time
from typing import List, Optional

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class PushIdGenerator:

    def __init__(self):
        self._lock = threading.Lock()
        self._last_ms = 0
        self._last_random: List[int] = [0] * 12

    def generate(self, now_ms: Optional[int] = None) -> str:
        with self._lock:
            now = int(time.time() * 1000) if now_ms is None else now_ms
            duplicate = now == self._last_ms
            self._last_ms = now

            time_chars = []
            for _ in range(8):
                time_chars.append(PUSH_CHARS[now % 64])
                now //= 64
            if now != 0:
                raise ValueError("Timestamp does not fit in a push id")
            time_chars.reverse()

            if not duplicate:
                self._last_random = [secrets.randbelow(64) for _ in range(12)]
            else:
                # Increment the random tail, carrying over 63 -> 0
                i = 11
                while i >= 0 and self._last_random[i] == 63:
                    self._last_random[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_random[i] += 1

            return "".join(time_chars) + "".join(PUSH_CHARS[n] for n in self._last_random)
