PROGRAM_NAME = "Go Alchemy"
VERSION = "0.1.2"

# board point occupancy
BLACK = 1
WHITE = -1
EMPTY = 0

DEFAULT_BOARD_SIZE = 19
MIN_BOARD_SIZE = 2
MAX_BOARD_SIZE = 52  # sgf coordinates go up to 52

# puzzle hint labels written by the annotation pass, e.g. LB[pd:o]
HINT_CORRECT = "o"
HINT_INCORRECT = "x"
HINT_LABEL_PROPERTY = "LB"

AUTO_PLAY_DELAY = 0.5  # seconds
MAX_AUTO_PLAY_DELAY = 10.0

AUTO_PLAY_FIRST = "first"
AUTO_PLAY_RANDOM = "random"
AUTO_PLAY_POLICIES = (AUTO_PLAY_FIRST, AUTO_PLAY_RANDOM)

SETTINGS_SECTION = "puzzle"
LIBRARY_INDEX_FILE = "index.yaml"
