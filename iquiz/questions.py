"""
Question bank: an immutable, ordered list of (prompt, expected answer) pairs.

The bank is loaded once at server start from a text file and then shared
read-only by every session.

File format (one question per line):
    <prompt>|<expected answer>

Blank lines and lines starting with '#' are ignored.
"""

import logging
import os
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple

from iquiz.constants import DEFAULT_QUESTIONS_FILE, ENCODING
from iquiz.errors import QuestionBankError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Question:
    """One bank entry. Answers are compared verbatim, case included."""

    prompt: str
    expected_answer: str


class QuestionBank:
    """Read-only sequence of questions, indexed 0..K-1."""

    def __init__(self, questions: Iterable[Question]):
        self._questions: Tuple[Question, ...] = tuple(questions)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "QuestionBank":
        return cls(Question(prompt, answer) for prompt, answer in pairs)

    def __len__(self) -> int:
        return len(self._questions)

    def __getitem__(self, index: int) -> Question:
        return self._questions[index]

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __repr__(self) -> str:
        return f"QuestionBank({len(self._questions)} questions)"


# ---------- Load questions from questions.txt ----------


def parse_questions(lines: Iterable[str], source: str = "<lines>") -> List[Question]:
    """
    Parse question lines of the form ``<prompt>|<expected answer>``.

    Invalid lines are skipped with a warning rather than aborting the load.
    """
    questions: List[Question] = []

    for lineno, raw_line in enumerate(lines, 1):
        line = raw_line.strip()

        # Skip empty lines and comment lines
        if not line or line.startswith("#"):
            continue

        parts = line.split("|")
        if len(parts) != 2:
            logger.warning("Skipping invalid question line %s:%d: %s", source, lineno, line)
            continue

        prompt = parts[0].strip()
        answer = parts[1].strip()
        if not prompt or not answer:
            logger.warning("Skipping question with empty prompt or answer %s:%d: %s",
                           source, lineno, line)
            continue

        questions.append(Question(prompt, answer))

    return questions


def load_question_bank(path: str = DEFAULT_QUESTIONS_FILE) -> QuestionBank:
    """
    Load the question bank from ``path``.

    Raises QuestionBankError if the file cannot be read or holds no valid
    questions.
    """
    qpath = os.path.abspath(path)
    try:
        with open(qpath, "r", encoding=ENCODING) as f:
            questions = parse_questions(f, source=qpath)
    except OSError as e:
        raise QuestionBankError(f"Cannot read question file {qpath}: {e}") from e

    if not questions:
        raise QuestionBankError(f"No valid questions in {qpath}")

    logger.info("Loaded %d questions from %s", len(questions), qpath)
    return QuestionBank(questions)
