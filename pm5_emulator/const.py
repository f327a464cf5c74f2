# ======================
# Emulator defaults
# ======================

DEFAULT_DEVICE_NAME = "PM5 430000000 Row"
DEFAULT_REPLAY_LOG = "replaylog.erg"

CONF_DEVICE_NAME = "device_name"
CONF_REPLAY_LOG = "replay_log"
CONF_STATUS_RATE = "status_rate"
CONF_SEED = "seed"
CONF_LOG_LEVEL = "log_level"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

# ======================
# PM5 BLE rowing service
# ======================

# GATT characteristics
BASE_UUID_FMT = "ce06{short:04x}-43e5-11e4-916c-0800200c9a66"
SERVICE_0030 = 0x0030
CHAR_0031 = 0x0031  # general status
CHAR_0032 = 0x0032  # additional status 1
CHAR_0033 = 0x0033  # additional status 2
CHAR_0034 = 0x0034  # general/additional status sample rate
CHAR_0035 = 0x0035  # stroke data
CHAR_0036 = 0x0036  # additional stroke data
CHAR_0037 = 0x0037  # split/interval data
CHAR_0038 = 0x0038  # additional split/interval data
CHAR_0039 = 0x0039  # end of workout summary
CHAR_003A = 0x003A  # end of workout additional summary
CHAR_003B = 0x003B  # heart rate belt info
CHAR_003D = 0x003D  # force curve data
CHAR_0080 = 0x0080  # multiplexed information

CHARACTERISTIC_NAMES = {
    CHAR_0031: "General Status",
    CHAR_0032: "Additional Status 1",
    CHAR_0033: "Additional Status 2",
    CHAR_0034: "Sample Rate",
    CHAR_0035: "Stroke Data",
    CHAR_0036: "Additional Stroke Data",
    CHAR_0037: "Split/Interval Data",
    CHAR_0038: "Additional Split/Interval Data",
    CHAR_0039: "End of Workout Summary",
    CHAR_003A: "End of Workout Additional Summary",
    CHAR_003B: "Heart Rate Belt Info",
    CHAR_003D: "Force Curve Data",
    CHAR_0080: "Multiplexed Info",
}

# Fixed payload length per notify characteristic
FRAME_LENGTHS = {
    CHAR_0031: 19,
    CHAR_0032: 17,
    CHAR_0033: 20,
    CHAR_0035: 20,
    CHAR_0036: 15,
    CHAR_0037: 18,
    CHAR_0038: 19,
    CHAR_0039: 20,
    CHAR_003A: 19,
    CHAR_003B: 6,
    CHAR_003D: 20,
}

# Multiplexed info (0x0080) carries up to 20 bytes per notification
MULTIPLEXED_MAX_LENGTH = 20

# ---- Status sample rate (0x0034) ----
STATUS_RATE_1000MS = 0
STATUS_RATE_500MS = 1
STATUS_RATE_250MS = 2
STATUS_RATE_100MS = 3
DEFAULT_STATUS_RATE = STATUS_RATE_500MS

STATUS_DELAY_MS = {
    STATUS_RATE_1000MS: 1000,
    STATUS_RATE_500MS: 500,
    STATUS_RATE_250MS: 250,
    STATUS_RATE_100MS: 100,
}
DEFAULT_STATUS_DELAY_MS = 500

# Characteristics paced by the status sample rate
STATUS_CHARACTERISTICS = (CHAR_0031, CHAR_0032, CHAR_0033)

# Fixed notify intervals for everything else
NOTIFY_INTERVAL_MS = {
    CHAR_0035: 1000,
    CHAR_0036: 1000,
    CHAR_003D: 1000,
    CHAR_0037: 50000,
    CHAR_0038: 50000,
    CHAR_003B: 100000,
    CHAR_0039: 200000,
    CHAR_003A: 200000,
}

# End-of-workout summaries only show up after a full interval has passed
DELAYED_FIRST_NOTIFY = (CHAR_0039, CHAR_003A)

# ---- Simulated rowing ----
MILLISECONDS_PER_CENTISECOND = 10
DECIMETERS_PER_METER = 10
TWO_MINUTE_SPLIT_SPEED = 4.16  # m/s

SPLIT_PACE_MIN_CS = 12000
SPLIT_PACE_MAX_CS = 12900  # exclusive
STROKE_RATE_MIN_SPM = 25
STROKE_RATE_MAX_SPM = 30  # exclusive

# ---- Force curve (0x003D) ----
FORCE_CURVE_CHARACTERISTIC_COUNT = 1
FORCE_CURVE_WORD_COUNT = 9

# ---- Replay ----
REPLAY_MIN_DELAY_MS = 50

# ---- Enum mappings (Appendix A) ----
WORKOUT_TYPE = {
    0: "JustRow (no splits)",
    1: "JustRow (splits)",
    2: "Fixed distance (no splits)",
    3: "Fixed distance (splits)",
    4: "Fixed time (no splits)",
    5: "Fixed time (splits)",
    6: "Fixed time interval",
    7: "Fixed distance interval",
    8: "Variable interval",
    9: "Variable interval (undefined rest)",
    10: "Fixed calorie (splits)",
    11: "Fixed watt-minute (splits)",
    12: "Fixed calorie interval",
}

INTERVAL_TYPE = {
    0: "Time",
    1: "Distance",
    2: "Rest",
    3: "Time + undefined rest",
    4: "Distance + undefined rest",
    5: "Undefined rest",
    6: "Calorie",
    7: "Calorie + undefined rest",
    8: "Watt-minute",
    9: "Watt-minute + undefined rest",
    255: "None",
}

WORKOUT_STATE = {
    0: "Wait to begin",
    1: "Workout row",
    2: "Countdown pause",
    3: "Interval rest",
    4: "Interval work (time)",
    5: "Interval work (distance)",
    6: "Interval rest → work (time)",
    7: "Interval rest → work (distance)",
    8: "Interval work (time) → rest",
    9: "Interval work (distance) → rest",
    10: "Workout end",
    11: "Terminate",
    12: "Logged",
    13: "Rearm",
}

ROWING_STATE = {0: "Inactive", 1: "Active"}

# Erg machine type (Appendix A)
ERG_MACHINE_TYPE = {
    0: "Model D (static)",
    1: "Model C (static)",
    2: "Model A (static)",
    3: "Model B (static)",
    5: "Model E (static)",
    7: "Rower simulator",
    8: "Dynamic (static?)",
    16: "Model A (slides)",
    17: "Model B (slides)",
    18: "Model C (slides)",
    19: "Model D (slides)",
    20: "Model E (slides)",
    32: "Dynamic (linked)",
    64: "Dynamometer (static)",
    128: "SkiErg (static)",
    143: "Ski simulator (static)",
    192: "BikeErg (no arms)",
    193: "BikeErg (arms)",
    194: "BikeErg (no arms?)",
    207: "Bike simulator",
    224: "MultiErg row",
    225: "MultiErg ski",
    226: "MultiErg bike",
}
