"""Hard-coded configuration constants not meant to be user-configurable."""

STATE_DIR_NAME = ".diffgate"
QUIZ_RESULTS_FILE_NAME = "quiz-results.json"
DEFAULT_CONFIG_DIR = "~/.diffgate"
DEFAULT_COMMIT_HISTORY_COUNT = 10
DEFAULT_QUIZ_QUESTION_COUNT = 5
MAX_QUIZ_QUESTION_COUNT = 20
