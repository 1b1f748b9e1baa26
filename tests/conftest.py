import os
import socket
import sys
import time

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from iquiz.errors import ConnectionClosed
from iquiz.framing import FramedChannel
from iquiz.questions import QuestionBank


class ScriptedChannel:
    """Stands in for a FramedChannel: replays client replies, records server frames."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.sent = []
        self.closed = False

    def send_text(self, text):
        self.sent.append(text)
        return 1024

    def receive_text(self):
        if not self.replies:
            raise ConnectionClosed("peer closed", received=0)
        return self.replies.pop(0)

    def close(self):
        self.closed = True


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def bank():
    """Eight questions whose answers are a0..a7."""
    return QuestionBank.from_pairs((f"p{i}?", f"a{i}") for i in range(8))


@pytest.fixture
def channel_pair():
    """Two connected FramedChannels over a socketpair."""
    left, right = socket.socketpair()
    a, b = FramedChannel(left), FramedChannel(right)
    yield a, b
    a.close()
    b.close()
