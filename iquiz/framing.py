"""
Fixed-width message framing over a stream socket.

Every logical message travels as exactly ``frame_width`` bytes:

    - Text shorter than the frame is padded with NUL bytes.
    - Text longer than the frame is truncated.
    - The receiver reads until it has the whole frame, then cuts the text
      at the first NUL byte.

There is no length prefix. Both peers must agree on the frame width
(FRAME_WIDTH, 1024 bytes), so a peer that sends anything else
desynchronises the stream.
"""

import logging
import socket
from typing import Union

from iquiz.constants import ENCODING, FRAME_WIDTH
from iquiz.errors import ChannelIOError, ConnectionClosed

logger = logging.getLogger(__name__)

NUL = b"\x00"


# ---------- Frame helpers ----------


def pad_frame(payload: Union[str, bytes], width: int = FRAME_WIDTH,
              encoding: str = ENCODING) -> bytes:
    """
    Build one wire frame from a payload.

    Args:
        payload: Text (encoded with ``encoding``) or raw bytes.
        width: Frame width in bytes.
        encoding: Text encoding used when payload is a str.

    Returns:
        Exactly ``width`` bytes: the payload truncated to the width,
        followed by NUL padding. Text is cut back to a whole character,
        so a multi-byte character never straddles the frame end. Raw
        bytes are cut at exactly ``width``.
    """
    if isinstance(payload, str):
        data = payload.encode(encoding)
        if len(data) > width:
            data = data[:width].decode(encoding, errors="ignore").encode(encoding)
        payload = data
    return payload[:width].ljust(width, NUL)


def unpad_frame(frame: bytes, encoding: str = ENCODING) -> str:
    """Return the text held in a frame, stopping at the first NUL byte."""
    text = frame.split(NUL, 1)[0]
    return text.decode(encoding, errors="ignore")


# ---------- Channel ----------


class FramedChannel:
    """
    A connected stream socket that sends and receives whole frames.

    Partial writes and reads are looped over until the full frame width has
    been transferred. A call interrupted by a signal (InterruptedError) is
    retried. Any other socket failure raises ChannelIOError, after which the
    channel must not be used again.
    """

    def __init__(self, sock: socket.socket, frame_width: int = FRAME_WIDTH,
                 encoding: str = ENCODING):
        if frame_width <= 0:
            raise ValueError(f"frame width must be positive, got {frame_width}")
        self.sock = sock
        self.frame_width = frame_width
        self.encoding = encoding

    def send_frame(self, payload: Union[str, bytes]) -> int:
        """
        Pad ``payload`` to the frame width and write the whole frame.

        Returns the number of bytes written, always ``frame_width``.
        Raises ChannelIOError if the frame could not be written in full.
        """
        frame = memoryview(pad_frame(payload, self.frame_width, self.encoding))
        total_sent = 0

        while total_sent < self.frame_width:
            try:
                sent = self.sock.send(frame[total_sent:])
            except InterruptedError:
                continue
            except OSError as e:
                raise ChannelIOError(f"Write error: {e}") from e

            if sent == 0:
                raise ChannelIOError("Write error: connection broken")
            total_sent += sent

        logger.debug("Sent frame (%d bytes)", total_sent)
        return total_sent

    def receive_frame(self) -> bytes:
        """
        Read exactly one frame.

        Raises ConnectionClosed if the peer closes the connection before the
        frame is complete, ChannelIOError on any other read failure.
        """
        buf = bytearray()

        while len(buf) < self.frame_width:
            try:
                chunk = self.sock.recv(self.frame_width - len(buf))
            except InterruptedError:
                continue
            except OSError as e:
                raise ChannelIOError(f"Read error: {e}") from e

            if not chunk:
                raise ConnectionClosed(
                    f"Peer closed the connection after {len(buf)} of "
                    f"{self.frame_width} bytes",
                    received=len(buf),
                )
            buf.extend(chunk)

        logger.debug("Received frame (%d bytes)", len(buf))
        return bytes(buf)

    def send_text(self, text: str) -> int:
        return self.send_frame(text)

    def receive_text(self) -> str:
        """Read one frame and return its text without the NUL padding."""
        return unpad_frame(self.receive_frame(), self.encoding)

    def close(self) -> None:
        try:
            self.sock.close()
        except OSError:
            # Already closed by the peer or by us.
            pass

    def __enter__(self) -> "FramedChannel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
