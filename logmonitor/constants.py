from .types import Level

DEFAULT_CONFIG_DIR = '/etc/logmonitor'
NOTIFICATIONS_DIR = 'notifications.d'
TARGETS_DIR = 'targets.d'

MAIN_LOOP_SLEEP_PERIOD = 1 # seconds

MAX_NUM_NOTIFICATIONS = 16
MAX_NUM_TARGETS = 16
MAX_NUM_MONITORED_FILES_PER_NOTIFICATION = 4

MAX_READ_FILE_SIZE = 100 * 1024
MAX_PENDING_SIZE = 500 * 1024
READ_BUFFER_SIZE = 8192
FIELD_OUTPUT_SIZE = 512

STATUS_FILE_READ_INTERVAL = 5 # seconds

EXECERROR = 'EXECERROR'

LEVELS: frozenset[Level] = frozenset(('ERROR', 'WARNING', 'INFO'))

DEFAULT_LOG_FORMAT = '[%(asctime)s] %(levelname)s: %(message)s'
DEFAULT_LOG_DATEFMT = '%Y-%m-%dT%H:%M:%S%z'

DEFAULT_OUTPUT_INDENT = 2
DEFAULT_OUTPUT_FORMAT = 'JSON'
