"""
Tests for the server-side quiz session state machine.
Run: python -m pytest tests/test_session.py -v
"""

import random
import threading

import pytest

from iquiz.constants import WELCOME_MESSAGE
from iquiz.errors import ConnectionClosed, InvalidArgument
from iquiz.questions import QuestionBank
from iquiz.selector import select_distinct
from iquiz.session import Phase, QuizSession, trim_answer

from conftest import ScriptedChannel

SEED = 7


def expected_selection(bank, seed=SEED, count=5):
    return select_distinct(len(bank), count, random.Random(seed))


def correct_answers(bank, seed=SEED):
    return [bank[i].expected_answer + "\n" for i in expected_selection(bank, seed)]


def run_session(bank, replies, seed=SEED, **kwargs):
    channel = ScriptedChannel(replies)
    session = QuizSession(channel, bank, rng=random.Random(seed), peer="(test, 1)", **kwargs)
    return session, channel, session.run()


class TestStartDecision:

    def test_quit_sends_welcome_only(self, bank):
        """Client sends "q": welcome, then close, no question frame."""
        session, channel, result = run_session(bank, ["q\n"])
        assert channel.sent == [WELCOME_MESSAGE]
        assert channel.closed
        assert session.phase is Phase.CLOSED
        assert not result.started
        assert result.asked == 0

    @pytest.mark.parametrize("reply", ["", "\n", "q", "n\n", "y\n", "yes\n", " Y\n", "quit\n"])
    def test_anything_but_capital_y_quits(self, bank, reply):
        _, channel, result = run_session(bank, [reply])
        assert channel.sent == [WELCOME_MESSAGE]
        assert result.score == 0 and result.asked == 0

    def test_start_accepts_anything_beginning_with_y(self, bank):
        _, channel, result = run_session(bank, ["Yes please\n"] + correct_answers(bank))
        assert result.started
        assert result.asked == 5


class TestFullQuiz:

    def test_all_correct_scores_five(self, bank):
        _, channel, result = run_session(bank, ["Y\n"] + correct_answers(bank))
        assert channel.sent[-1] == "Your quiz score is 5/5. Goodbye!\n"
        assert result.score == 5
        assert channel.sent.count("Right Answer.\n") == 5

    def test_transcript_order_and_format(self, bank):
        selection = expected_selection(bank)
        _, channel, result = run_session(bank, ["Y\n"] + correct_answers(bank))

        assert result.selection == selection
        assert channel.sent[0] == WELCOME_MESSAGE
        questions = channel.sent[1:-1:2]
        verdicts = channel.sent[2:-1:2]
        assert questions == [f"Q{n + 1}: {bank[i].prompt}\n" for n, i in enumerate(selection)]
        assert verdicts == ["Right Answer.\n"] * 5
        assert len(channel.sent) == 12

    def test_wrong_answers_reveal_expected(self, bank):
        selection = expected_selection(bank)
        answers = correct_answers(bank)
        answers[1] = "nope\n"
        answers[4] = "\n"
        _, channel, result = run_session(bank, ["Y\n"] + answers)

        verdicts = channel.sent[2:-1:2]
        assert verdicts[1] == f"Wrong Answer. Right answer is {bank[selection[1]].expected_answer}\n"
        assert verdicts[4] == f"Wrong Answer. Right answer is {bank[selection[4]].expected_answer}\n"
        assert result.score == 3
        assert channel.sent[-1] == "Your quiz score is 3/5. Goodbye!\n"

    def test_score_matches_exact_answers(self, bank):
        rng = random.Random(1)
        for seed in range(30):
            answers = [a if rng.random() < 0.5 else "wrong\n" for a in correct_answers(bank, seed)]
            _, _, result = run_session(bank, ["Y\n"] + answers, seed=seed)
            assert 0 <= result.score <= 5
            assert result.score == sum(a != "wrong\n" for a in answers)
            assert len(set(result.selection)) == 5

    def test_answers_are_case_sensitive(self, bank):
        answers = [a.upper() for a in correct_answers(bank)]
        _, _, result = run_session(bank, ["Y\n"] + answers)
        assert result.score == 0

    def test_whole_bank_quiz(self):
        small = QuestionBank.from_pairs([("2+2?", "4"), ("3+3?", "6")])
        order = select_distinct(2, 2, random.Random(SEED))
        answers = [small[i].expected_answer + "\n" for i in order]
        _, channel, result = run_session(small, ["Y\n"] + answers, questions_per_quiz=2)
        assert sorted(result.selection) == [0, 1]
        assert channel.sent[-1] == "Your quiz score is 2/2. Goodbye!\n"


class TestAnswerTrimming:

    def test_only_the_newline_is_trimmed(self):
        assert trim_answer("fork\n") == "fork"
        assert trim_answer("fork") == "fork"
        assert trim_answer("fork\r\n") == "fork\r"
        assert trim_answer("fork  \n") == "fork  "
        assert trim_answer("fork\nextra") == "fork"

    def test_carriage_return_makes_answer_wrong(self, bank):
        answers = [a.replace("\n", "\r\n") for a in correct_answers(bank)]
        _, _, result = run_session(bank, ["Y\n"] + answers)
        assert result.score == 0

    def test_trailing_spaces_make_answer_wrong(self, bank):
        answers = [a.replace("\n", "  \n") for a in correct_answers(bank)]
        _, _, result = run_session(bank, ["Y\n"] + answers)
        assert result.score == 0

    def test_answer_without_newline_is_accepted(self, bank):
        answers = [a.rstrip("\n") for a in correct_answers(bank)]
        _, _, result = run_session(bank, ["Y\n"] + answers)
        assert result.score == 5


class TestPhases:

    def test_step_by_step(self, bank):
        channel = ScriptedChannel(["Y\n"] + correct_answers(bank))
        session = QuizSession(channel, bank, rng=random.Random(SEED))

        assert session.phase is Phase.GREETING
        session.step()
        assert session.phase is Phase.AWAITING_START_DECISION
        session.step()
        assert session.phase is Phase.ASKING_QUESTION
        for i in range(5):
            assert session.current_question_index == i
            session.step()
            assert session.phase is Phase.AWAITING_ANSWER
            session.step()
            assert session.phase is Phase.SCORING
            session.step()
        assert session.phase is Phase.REPORTING_SCORE
        assert session.current_question_index == 5
        session.step()
        assert session.phase is Phase.CLOSED

    def test_quit_phase(self, bank):
        session = QuizSession(ScriptedChannel(["q\n"]), bank)
        session.step()
        session.step()
        assert session.phase is Phase.QUITTING
        session.step()
        assert session.phase is Phase.CLOSED


class TestFailures:

    def test_disconnect_mid_quiz_closes_and_raises(self, bank):
        channel = ScriptedChannel(["Y\n", correct_answers(bank)[0]])
        session = QuizSession(channel, bank, rng=random.Random(SEED))
        with pytest.raises(ConnectionClosed):
            session.run()
        assert channel.closed
        assert session.phase is Phase.CLOSED
        assert session.score == 1

    def test_disconnect_before_decision(self, bank):
        channel = ScriptedChannel([])
        with pytest.raises(ConnectionClosed):
            QuizSession(channel, bank).run()
        assert channel.sent == [WELCOME_MESSAGE]

    def test_bank_smaller_than_quiz(self):
        small = QuestionBank.from_pairs([("2+2?", "4"), ("3+3?", "6")])
        with pytest.raises(InvalidArgument):
            QuizSession(ScriptedChannel(["Y\n"]), small).run()


def test_session_over_real_sockets(bank, channel_pair):
    server_side, client_side = channel_pair
    session = QuizSession(server_side, bank, rng=random.Random(SEED))
    worker = threading.Thread(target=session.run, daemon=True)
    worker.start()

    assert client_side.receive_text() == WELCOME_MESSAGE
    client_side.send_text("Y\n")
    for answer in correct_answers(bank):
        assert client_side.receive_text().startswith("Q")
        client_side.send_text(answer)
        assert client_side.receive_text() == "Right Answer.\n"
    assert client_side.receive_text() == "Your quiz score is 5/5. Goodbye!\n"

    worker.join(timeout=5)
    assert not worker.is_alive()
    with pytest.raises(ConnectionClosed):
        client_side.receive_frame()
