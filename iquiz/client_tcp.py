"""
TCP quiz client.

Connects to the quiz server and walks the player through the quiz:

    1. Print the welcome message.
    2. Ask "Y" (start) or "q" (quit) and send the reply.
    3. For each of the five questions: print it, read an answer from the
       console, send it, print the verdict.
    4. Print the final score and close.

Usage:
    iquiz-client <server IPv4 address> <port>
"""

import argparse
import logging
import socket
import sys
from typing import Callable, List, Optional, TextIO

from colorama import Fore, Style, init

from iquiz.cli import ipv4_address, port_number, timeout_seconds
from iquiz.constants import QUESTIONS_PER_QUIZ, START_COMMAND
from iquiz.errors import ChannelIOError, SocketSetupError
from iquiz.framing import FramedChannel
from iquiz.logging_config import configure_logging

logger = logging.getLogger(__name__)

START_PROMPT = "Enter Y to start the quiz or q to quit: "
ANSWER_PROMPT = "Enter your answer: "


def colorize(text: str) -> str:
    """Pick a console color for a server message from its wording."""
    if text.startswith("Right Answer"):
        return Fore.GREEN + Style.BRIGHT + text + Style.RESET_ALL
    if text.startswith("Wrong Answer"):
        return Fore.RED + Style.BRIGHT + text + Style.RESET_ALL
    if text.startswith("Your quiz score"):
        return Fore.CYAN + Style.BRIGHT + text + Style.RESET_ALL
    if text.startswith("Q"):
        return Fore.YELLOW + text + Style.RESET_ALL
    return text


class QuizClient:
    """
    Console side of one quiz session.

    ``read_line`` is called with a prompt and must return the typed line
    without its newline (the built-in input() does exactly that). It raises
    EOFError when the console is closed.
    """

    def __init__(self, channel: FramedChannel,
                 read_line: Optional[Callable[[str], str]] = None,
                 out: Optional[TextIO] = None,
                 color: bool = True,
                 rounds: int = QUESTIONS_PER_QUIZ):
        self.channel = channel
        self.read_line = read_line or input
        self.out = out or sys.stdout
        self.color = color
        self.rounds = rounds

    def show(self, text: str, end: str = "") -> None:
        if self.color:
            text = colorize(text)
        print(text, end=end, file=self.out, flush=True)

    def notice(self, text: str, color: str) -> None:
        """Print a local status line, in ``color`` unless colors are off."""
        if self.color:
            text = color + text + Style.RESET_ALL
        print(text, file=self.out, flush=True)

    def ask(self, prompt: str) -> str:
        """Read one console line and return it newline-terminated, ready to send."""
        return self.read_line(prompt) + "\n"

    def run(self) -> bool:
        """
        Play one quiz.

        Returns True if the quiz was played to the end, False if the player
        chose to quit. Raises ChannelIOError on connection problems and
        EOFError if the console closes.
        """
        welcome = self.channel.receive_text()
        self.show(welcome, end="\n")

        decision = self.ask(START_PROMPT)
        self.channel.send_text(decision)
        if decision[:1] != START_COMMAND:
            # The server closes the connection without sending anything else.
            return False

        for _ in range(self.rounds):
            self.show(self.channel.receive_text())
            self.channel.send_text(self.ask(ANSWER_PROMPT))
            self.show(self.channel.receive_text())

        self.show(self.channel.receive_text())
        return True


def connect_to_server(host: str, port: int, timeout: Optional[float] = None) -> socket.socket:
    """
    Open a TCP connection to the quiz server.

    Raises SocketSetupError if the connection cannot be made.
    """
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except socket.timeout as e:
        raise SocketSetupError(f"Connection to {host}:{port} timed out") from e
    except ConnectionRefusedError as e:
        raise SocketSetupError(f"Connection refused by {host}:{port}. Is the server running?") from e
    except OSError as e:
        raise SocketSetupError(f"connect() error: {e}") from e

    sock.settimeout(timeout)
    return sock


# ---------- Command line ----------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iquiz-client",
        description="Take the Unix Programming quiz.",
    )
    parser.add_argument("address", type=ipv4_address, help="IPv4 address of the server")
    parser.add_argument("port", type=port_number, help="server TCP port")
    parser.add_argument("--timeout", type=timeout_seconds, default=None,
                        help="socket timeout in seconds (default: none)")
    parser.add_argument("--no-color", action="store_true", help="plain console output")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the TCP quiz client. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    configure_logging()
    init(autoreset=True)

    try:
        sock = connect_to_server(args.address, args.port, args.timeout)
    except SocketSetupError as e:
        logger.error("%s", e)
        return 1

    channel = FramedChannel(sock)
    client = QuizClient(channel, color=not args.no_color)
    try:
        client.run()
    except ChannelIOError as e:
        logger.error("%s", e)
        return 1
    except EOFError:
        client.notice("\nInput error.", Fore.RED)
        return 1
    except KeyboardInterrupt:
        client.notice("\nDisconnecting...", Fore.YELLOW)
        return 1
    finally:
        channel.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
