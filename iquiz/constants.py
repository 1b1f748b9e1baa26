"""Protocol and server constants shared by the server and the client."""

import os

ENCODING = "utf-8"

# Every frame on the wire is exactly this many bytes.
FRAME_WIDTH = 1024

BACKLOG = 10
QUESTIONS_PER_QUIZ = 5
START_COMMAND = "Y"

DEFAULT_QUESTIONS_FILE = os.path.join(os.path.dirname(__file__), "questions.txt")

WELCOME_MESSAGE = (
    "Welcome to Unix Programming Quiz!\n"
    "The quiz comprises five questions posed to you one after the other.\n"
    "You have only one attempt to answer a question.\n"
    "Your final score will be sent to you after conclusion of the quiz.\n"
    "To start the quiz, press Y and <enter>.\n"
    "To quit the quiz, press q and <enter>.\n"
)

QUESTION_TEMPLATE = "Q{number}: {prompt}\n"
RIGHT_ANSWER_MESSAGE = "Right Answer.\n"
WRONG_ANSWER_TEMPLATE = "Wrong Answer. Right answer is {expected}\n"
SCORE_TEMPLATE = "Your quiz score is {score}/{total}. Goodbye!\n"
