# connect_four/solver/constants.py

# --- Board Dimensions ---
ROWS = 6
COLS = 7
# Height includes a sentinel row to prevent bit-shift overflows
HEIGHT = ROWS + 1
MAX_MOVES = ROWS * COLS

# --- Scoring System ---
# Proven results sit above WIN_SCORE: Score = WIN_SCORE + (MAX_MOVES + 1 - moves played)
# so a faster win scores higher. Heuristic values stay well inside +/- WIN_SCORE.
WIN_SCORE = 1000
MAX_SCORE = WIN_SCORE + MAX_MOVES + 1
MIN_SCORE = -MAX_SCORE

# --- Heuristic ---
# Centre columns take part in more lines, so their pieces are worth more
COLUMN_WEIGHTS = [1, 2, 3, 4, 3, 2, 1]

# --- Optimization ---
# Search center columns first to maximize Alpha-Beta pruning efficiency
COLUMN_ORDER = [3, 2, 4, 1, 5, 0, 6]
