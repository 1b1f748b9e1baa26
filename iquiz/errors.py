"""Exception hierarchy for the quiz server and client."""

import argparse


class QuizError(Exception):
    """Base exception for the quiz application."""


class ArgumentError(QuizError, argparse.ArgumentTypeError):
    """Raised by argparse type= validators; argparse prints its message."""


class SocketSetupError(QuizError):
    """Raised when a socket cannot be created, bound, listened on or connected."""


class AcceptError(QuizError):
    """Raised when accepting a client connection fails."""


class ChannelIOError(QuizError):
    """Raised when a frame cannot be sent or received in full."""


class ConnectionClosed(ChannelIOError):
    """Raised when the peer closes the connection in the middle of a frame.

    ``received`` holds the number of bytes that did arrive before the close.
    """

    def __init__(self, message: str, received: int = 0):
        super().__init__(message)
        self.received = received


class InvalidArgument(QuizError, ValueError):
    """Raised when more distinct questions are requested than the bank holds."""


class QuestionBankError(QuizError):
    """Raised when the question file is missing or holds no usable questions."""
