"""Fixed game rules."""

# Penalty letters spell B-O-M-B; the fourth one eliminates.
PENALTY_WORD = "BOMB"
ELIMINATION_LETTERS = len(PENALTY_WORD)

MIN_PLAYERS_TO_START = 2

MAX_NAME_LENGTH = 30
MAX_JOIN_MESSAGE_LENGTH = 200
MAX_PAGE_TITLE_LENGTH = 300
