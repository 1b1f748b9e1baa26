"""
TCP quiz server.

Responsibilities:
- Load the question bank (packaged questions.txt or --questions FILE).
- Bind a listening TCP socket on <address> <port>.
- Accept clients and run one QuizSession per connection.

Control flow (high level):
1. main():
   - Parse arguments, load questions, open the listening socket.
   - Run serve_forever() until Ctrl-C.

2. serve_forever():
   - Accept one connection at a time and drive its session to the end
     before accepting the next one.
   - With --threaded, each connection gets its own daemon thread instead.

3. handle_connection():
   - Log the peer, wrap the socket in a FramedChannel and run the session.
   - A broken connection only ends that session; the server keeps
     accepting.
"""

import argparse
import logging
import random
import socket
import sys
import threading
from collections import deque
from typing import Deque, List, Optional, Tuple

from iquiz.cli import ipv4_address, port_number, timeout_seconds
from iquiz.constants import BACKLOG, DEFAULT_QUESTIONS_FILE, FRAME_WIDTH, QUESTIONS_PER_QUIZ
from iquiz.errors import (
    AcceptError,
    ChannelIOError,
    InvalidArgument,
    QuestionBankError,
    SocketSetupError,
)
from iquiz.framing import FramedChannel
from iquiz.logging_config import configure_logging
from iquiz.questions import QuestionBank, load_question_bank
from iquiz.session import QuizSession, SessionResult

logger = logging.getLogger(__name__)

# How often a blocked accept() wakes up to check for stop().
ACCEPT_POLL_INTERVAL = 0.5

# Finished sessions kept in QuizServer.results, oldest dropped first.
RECENT_RESULTS = 100


def describe_peer(addr: Tuple) -> str:
    """Return "(host, service)" for a client address, as getnameinfo reports it."""
    try:
        host, service = socket.getnameinfo(addr, 0)
    except OSError:
        return "(?UNKNOWN?)"
    return f"({host}, {service})"


class QuizServer:
    """
    Listening socket plus the accept loop.

    The bank and the master random source are the only state shared between
    sessions. The bank is immutable; each session gets its own
    random.Random seeded from the master one.
    """

    def __init__(self, host: str, port: int, bank: QuestionBank,
                 rng: Optional[random.Random] = None,
                 questions_per_quiz: int = QUESTIONS_PER_QUIZ,
                 threaded: bool = False,
                 timeout: Optional[float] = None,
                 frame_width: int = FRAME_WIDTH,
                 recent_results: int = RECENT_RESULTS):
        if questions_per_quiz > len(bank):
            raise InvalidArgument(
                f"quiz needs {questions_per_quiz} questions but the bank holds {len(bank)}"
            )
        self.host = host
        self.port = port
        self.bank = bank
        self.rng = rng or random.Random()
        self.questions_per_quiz = questions_per_quiz
        self.threaded = threaded
        self.timeout = timeout
        self.frame_width = frame_width

        self.sock: Optional[socket.socket] = None
        self.running = False
        self.results: Deque[SessionResult] = deque(maxlen=recent_results)
        self._lock = threading.Lock()

    # ---------- Socket setup ----------

    def open(self) -> Tuple[str, int]:
        """
        Create, bind and listen.

        Returns the bound (address, port), useful when port 0 was requested.
        Raises SocketSetupError on failure.
        """
        try:
            srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise SocketSetupError(f"socket() error: {e}") from e

        try:
            srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            srv.bind((self.host, self.port))
            srv.listen(BACKLOG)
            srv.settimeout(ACCEPT_POLL_INTERVAL)
        except OSError as e:
            srv.close()
            raise SocketSetupError(f"bind() error on {self.host}:{self.port}: {e}") from e

        self.sock = srv
        self.running = True
        return srv.getsockname()[:2]

    def stop(self) -> None:
        """Stop the accept loop and close the listening socket."""
        self.running = False
        if self.sock is not None:
            try:
                self.sock.close()
            except OSError:
                pass

    # ---------- Accept loop ----------

    def accept(self) -> Optional[Tuple[socket.socket, Tuple]]:
        """
        Wait for one client.

        Returns None when the poll interval passes without a connection.
        Raises AcceptError if accept() itself fails.
        """
        try:
            conn, addr = self.sock.accept()
        except socket.timeout:
            return None
        except OSError as e:
            raise AcceptError(f"accept() error: {e}") from e

        conn.settimeout(self.timeout)
        return conn, addr

    def serve_forever(self) -> None:
        if self.sock is None:
            self.open()

        while self.running:
            logger.info("<waiting for clients to connect>")
            accepted = None
            while self.running and accepted is None:
                try:
                    accepted = self.accept()
                except AcceptError as e:
                    if not self.running:
                        break
                    logger.error("%s", e)

            if accepted is None:
                break

            conn, addr = accepted
            if self.threaded:
                threading.Thread(
                    target=self.handle_connection,
                    args=(conn, addr),
                    daemon=True,
                ).start()
            else:
                self.handle_connection(conn, addr)

    def handle_connection(self, conn: socket.socket, addr: Tuple) -> Optional[SessionResult]:
        """
        Run one quiz session on an accepted connection.

        Frame I/O errors are logged and end only this session.
        """
        peer = describe_peer(addr)
        logger.info("Connection from %s", peer)

        session = QuizSession(
            FramedChannel(conn, self.frame_width),
            self.bank,
            rng=self._session_rng(),
            questions_per_quiz=self.questions_per_quiz,
            peer=peer,
        )
        try:
            result = session.run()
        except ChannelIOError as e:
            logger.warning("Session with %s aborted: %s", peer, e)
            return None

        with self._lock:
            self.results.append(result)
        return result

    def _session_rng(self) -> random.Random:
        with self._lock:
            return random.Random(self.rng.getrandbits(64))


# ---------- Command line ----------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iquiz-server",
        description="Serve the Unix Programming quiz over TCP.",
    )
    parser.add_argument("address", type=ipv4_address, help="IPv4 address to bind to")
    parser.add_argument("port", type=port_number, help="TCP port to listen on")
    parser.add_argument("--questions", default=DEFAULT_QUESTIONS_FILE,
                        help="question file, one '<question>|<answer>' per line")
    parser.add_argument("--seed", type=int, default=None,
                        help="seed for question selection (reproducible quizzes)")
    parser.add_argument("--threaded", action="store_true",
                        help="serve each connection in its own thread")
    parser.add_argument("--timeout", type=timeout_seconds, default=None,
                        help="per-connection socket timeout in seconds (default: none)")
    parser.add_argument("--verbose", action="store_true", help="log every frame")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the TCP quiz server.

    Returns the process exit status: 0 after Ctrl-C, 1 if the server could
    not start. argparse exits with 2 on bad arguments.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        bank = load_question_bank(args.questions)
        server = QuizServer(
            args.address,
            args.port,
            bank,
            rng=random.Random(args.seed),
            threaded=args.threaded,
            timeout=args.timeout,
        )
        host, port = server.open()
    except (QuestionBankError, InvalidArgument, SocketSetupError) as e:
        logger.error("%s", e)
        return 1

    print(f"Listening on ({host}, {port})")
    print("<ctrl-C to terminate>")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        server.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
