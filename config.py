import os
import logging
import tempfile
import dotenv

def load_config():
    dotenv.load_dotenv()

logger = logging.getLogger(__name__)

VALID_REDIS_MODES = ('auto', 'single', 'sentinel', 'cluster', 'memory')

def _split_addrs(raw: str):
    return [addr.strip() for addr in raw.split(',') if addr.strip()]

def validate_config():
    """Validate configuration values and log warnings for invalid values."""
    warnings = []

    # Validate addresses
    if not REDIS_ADDRS:
        warnings.append("REDIS_ADDRS is empty. Falling back to localhost:6379")
    for addr in REDIS_ADDRS:
        host, _, port = addr.rpartition(':')
        if not host or not port.isdigit() or not 0 < int(port) <= 65535:
            warnings.append(f"Invalid address in REDIS_ADDRS: {addr}. Expected host:port")

    if REDIS_MODE not in VALID_REDIS_MODES:
        warnings.append(f"Invalid REDIS_MODE: {REDIS_MODE}. Must be one of {', '.join(VALID_REDIS_MODES)}")

    if REDIS_DB < 0:
        warnings.append(f"Invalid REDIS_DB: {REDIS_DB}. Must be 0 or positive")

    # Validate scan settings
    if SCAN_LIMIT <= 0:
        warnings.append(f"Invalid SCAN_LIMIT: {SCAN_LIMIT}. Must be positive")

    if SCAN_COUNT_CAP <= 0:
        warnings.append(f"Invalid SCAN_COUNT_CAP: {SCAN_COUNT_CAP}. Must be positive")

    if SCAN_BATCH_SIZE <= 0:
        warnings.append(f"Invalid SCAN_BATCH_SIZE: {SCAN_BATCH_SIZE}. Must be positive")

    # Validate worker pool size
    if WORKER_POOL_SIZE <= 0:
        warnings.append(f"Invalid WORKER_POOL_SIZE: {WORKER_POOL_SIZE}. Must be positive")
    elif WORKER_POOL_SIZE > 32:
        warnings.append(f"Large WORKER_POOL_SIZE: {WORKER_POOL_SIZE}. Consider if this is appropriate")

    # Validate retries and timeouts
    if REDIS_MAX_RETRIES <= 0:
        warnings.append(f"Invalid REDIS_MAX_RETRIES: {REDIS_MAX_RETRIES}. Must be positive")

    if REDIS_SOCKET_TIMEOUT <= 0:
        warnings.append(f"Invalid REDIS_SOCKET_TIMEOUT: {REDIS_SOCKET_TIMEOUT}. Must be positive")

    if STATS_SAMPLE_SIZE < 0:
        warnings.append(f"Invalid STATS_SAMPLE_SIZE: {STATS_SAMPLE_SIZE}. Must be 0 or positive")

    # Log warnings
    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")

    if warnings:
        logger.warning(f"Found {len(warnings)} configuration warnings")

load_config()

# Redis Connection Configuration
REDIS_ADDRS = _split_addrs(os.getenv('REDIS_ADDRS', 'localhost:6379'))
REDIS_DB = int(os.getenv('REDIS_DB', 0))
REDIS_USERNAME = os.getenv('REDIS_USERNAME', '')
REDIS_PASSWORD = os.getenv('REDIS_PASSWORD', '')
REDIS_MASTER_NAME = os.getenv('REDIS_MASTER_NAME', '')
REDIS_MODE = os.getenv('REDIS_MODE', 'auto').lower()

# Redis Client Behaviour
REDIS_MAX_RETRIES = int(os.getenv('REDIS_MAX_RETRIES', 3))
REDIS_MAX_REDIRECTS = int(os.getenv('REDIS_MAX_REDIRECTS', 10))
REDIS_SOCKET_CONNECT_TIMEOUT = float(os.getenv('REDIS_SOCKET_CONNECT_TIMEOUT', 2))
REDIS_SOCKET_TIMEOUT = float(os.getenv('REDIS_SOCKET_TIMEOUT', 5))

# Scan Configuration
SCAN_LIMIT = int(os.getenv('SCAN_LIMIT', 50))
SCAN_COUNT_CAP = int(os.getenv('SCAN_COUNT_CAP', 10000))
SCAN_BATCH_SIZE = int(os.getenv('SCAN_BATCH_SIZE', 50))

# Worker Pool Configuration
WORKER_POOL_SIZE = int(os.getenv('WORKER_POOL_SIZE', 4))

# Statistics Configuration
STATS_SAMPLE_SIZE = int(os.getenv('STATS_SAMPLE_SIZE', 10))
STATS_MAX_DATABASES = int(os.getenv('STATS_MAX_DATABASES', 16))

# Editor Configuration
EDITOR = os.getenv('EDITOR', 'vi')

# Logging Configuration
LOG_FILE = os.getenv('LOG_FILE', os.path.join(tempfile.gettempdir(), 'redis-viewer.log'))
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# Validate configuration on import
validate_config()
