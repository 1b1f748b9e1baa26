"""
Server-side quiz session: the per-connection protocol state machine.

Phases (i = 0 .. questions_per_quiz - 1):

    GREETING -> AWAITING_START_DECISION -> QUITTING -> CLOSED
                                        -> ASKING_QUESTION(i) -> AWAITING_ANSWER(i)
                                           -> SCORING(i) -> ASKING_QUESTION(i+1) ...
                                           -> REPORTING_SCORE -> CLOSED

Transcript, one frame per line:
    server: welcome / instructions
    client: "Y\\n" to start, anything else to quit
    server: "Q1: <prompt>\\n"
    client: "<answer>\\n"
    server: "Right Answer.\\n" | "Wrong Answer. Right answer is <expected>\\n"
    ... (five rounds)
    server: "Your quiz score is <score>/5. Goodbye!\\n"

Any frame I/O error ends the session: the connection is closed and the
ChannelIOError propagates to the caller.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, List, Optional

from iquiz.constants import (
    QUESTION_TEMPLATE,
    QUESTIONS_PER_QUIZ,
    RIGHT_ANSWER_MESSAGE,
    SCORE_TEMPLATE,
    START_COMMAND,
    WELCOME_MESSAGE,
    WRONG_ANSWER_TEMPLATE,
)
from iquiz.framing import FramedChannel
from iquiz.questions import Question, QuestionBank
from iquiz.selector import select_distinct

logger = logging.getLogger(__name__)


class Phase(Enum):
    GREETING = auto()
    AWAITING_START_DECISION = auto()
    ASKING_QUESTION = auto()
    AWAITING_ANSWER = auto()
    SCORING = auto()
    REPORTING_SCORE = auto()
    QUITTING = auto()
    CLOSED = auto()


@dataclass
class SessionResult:
    """Outcome of one finished session."""

    peer: str
    started: bool = False
    score: int = 0
    asked: int = 0
    selection: List[int] = field(default_factory=list)


def trim_answer(text: str) -> str:
    """Cut a received answer at its first newline; nothing else is stripped."""
    return text.split("\n", 1)[0]


class QuizSession:
    """
    Drives one client connection through the quiz.

    The session owns its channel and closes it when run() returns or fails.
    The question bank is only read.
    """

    def __init__(self, channel: FramedChannel, bank: QuestionBank,
                 rng: Optional[random.Random] = None,
                 questions_per_quiz: int = QUESTIONS_PER_QUIZ,
                 peer: str = "?"):
        self.channel = channel
        self.bank = bank
        self.rng = rng
        self.questions_per_quiz = questions_per_quiz
        self.peer = peer

        self.phase = Phase.GREETING
        self.score = 0
        self.current_question_index = 0
        self.selection: List[int] = []
        self.started = False
        self._last_answer_correct = False

        self._handlers: Dict[Phase, Callable[[], None]] = {
            Phase.GREETING: self._greet,
            Phase.AWAITING_START_DECISION: self._await_start_decision,
            Phase.ASKING_QUESTION: self._ask_question,
            Phase.AWAITING_ANSWER: self._await_answer,
            Phase.SCORING: self._send_verdict,
            Phase.REPORTING_SCORE: self._report_score,
            Phase.QUITTING: self._quit,
        }

    # ---------- Driving ----------

    def run(self) -> SessionResult:
        """Run the session until it is closed. Frame errors propagate."""
        try:
            while self.phase is not Phase.CLOSED:
                self.step()
        finally:
            self.phase = Phase.CLOSED
            self.channel.close()
        return self.result()

    def step(self) -> None:
        """Execute the current phase and move to the next one."""
        self._handlers[self.phase]()

    def result(self) -> SessionResult:
        return SessionResult(
            peer=self.peer,
            started=self.started,
            score=self.score,
            asked=self.current_question_index,
            selection=list(self.selection),
        )

    def current_question(self) -> Question:
        return self.bank[self.selection[self.current_question_index]]

    # ---------- Phases ----------

    def _greet(self) -> None:
        self.channel.send_text(WELCOME_MESSAGE)
        self.phase = Phase.AWAITING_START_DECISION

    def _await_start_decision(self) -> None:
        decision = self.channel.receive_text()

        if decision[:1] == START_COMMAND:
            self.selection = select_distinct(len(self.bank), self.questions_per_quiz, self.rng)
            self.started = True
            logger.debug("Session %s selected questions %s", self.peer, self.selection)
            self.phase = Phase.ASKING_QUESTION
        else:
            self.phase = Phase.QUITTING

    def _ask_question(self) -> None:
        question = self.current_question()
        self.channel.send_text(
            QUESTION_TEMPLATE.format(number=self.current_question_index + 1, prompt=question.prompt)
        )
        self.phase = Phase.AWAITING_ANSWER

    def _await_answer(self) -> None:
        answer = trim_answer(self.channel.receive_text())
        self._last_answer_correct = answer == self.current_question().expected_answer
        if self._last_answer_correct:
            self.score += 1
        self.phase = Phase.SCORING

    def _send_verdict(self) -> None:
        if self._last_answer_correct:
            self.channel.send_text(RIGHT_ANSWER_MESSAGE)
        else:
            expected = self.current_question().expected_answer
            self.channel.send_text(WRONG_ANSWER_TEMPLATE.format(expected=expected))

        self.current_question_index += 1
        if self.current_question_index < self.questions_per_quiz:
            self.phase = Phase.ASKING_QUESTION
        else:
            self.phase = Phase.REPORTING_SCORE

    def _report_score(self) -> None:
        self.channel.send_text(
            SCORE_TEMPLATE.format(score=self.score, total=self.questions_per_quiz)
        )
        logger.info("Quitting the quiz. %s scored %d/%d",
                    self.peer, self.score, self.questions_per_quiz)
        self.phase = Phase.CLOSED

    def _quit(self) -> None:
        logger.info("Closing connection. %s did not start the quiz", self.peer)
        self.phase = Phase.CLOSED
