from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_PATH = PROJECT_ROOT / "data" / "loans50k.csv"
OUTPUT_DIR = PROJECT_ROOT / "output"
MODEL_PATH = OUTPUT_DIR / "log_reg_model.pkl"

RANDOM_STATE = 42
TEST_SIZE = 0.2

# Missing-value rates: above LOW is logged, above MAX fails the run
LOW_MISSING_RATE = 0.05
MAX_MISSING_RATE = 0.10

# Size of the fixed threshold grid; the exact sweep is used when None
GRID_POINTS = None
REFERENCE_THRESHOLDS = [0.5]

MAX_ITER = 2500
IMPUTE_MAX_ITER = 10

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
