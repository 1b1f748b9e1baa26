"""
iquiz - a fixed-frame TCP quiz server and console client.

The server asks five random, non-repeating questions from a question bank,
one connection at a time. Every message on the wire is exactly FRAME_WIDTH
bytes long (see iquiz.framing).
"""

__version__ = "1.0.0"
