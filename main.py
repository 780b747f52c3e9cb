import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import config
from config import LOG_FILE, LOG_LEVEL, REDIS_ADDRS, REDIS_DB, REDIS_MASTER_NAME, REDIS_MODE, SCAN_LIMIT, VALID_REDIS_MODES
from ui.app import RedisViewerApp
from utils.redis.client import StoreConnectionError, connect, resolve_mode
from utils.workers.worker_pool import WorkerPool

logging.basicConfig(
    filename=LOG_FILE,
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='[%(asctime)s] %(levelname)s in %(module)s: %(message)s',
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='redis-viewer', description='Browse and edit Redis keys in the terminal.')
    parser.add_argument('--addr', action='append', dest='addrs', metavar='HOST:PORT',
                        help='Redis address; repeat for cluster nodes or sentinels (default: REDIS_ADDRS)')
    parser.add_argument('--db', type=int, default=REDIS_DB, help='database index (default: REDIS_DB)')
    parser.add_argument('--mode', choices=VALID_REDIS_MODES, default=REDIS_MODE,
                        help='connection topology (default: REDIS_MODE)')
    parser.add_argument('--master-name', default=REDIS_MASTER_NAME, help='sentinel master name')
    parser.add_argument('--limit', type=int, default=SCAN_LIMIT, help='keys fetched per SCAN call')
    return parser.parse_args(argv)


def redis_config_setup(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Set up Redis connection variables from the environment and CLI overrides.
    """
    redis_config = {
        'addrs': args.addrs or list(REDIS_ADDRS) or ['localhost:6379'],
        'db': args.db,
        'username': config.REDIS_USERNAME,
        'password': config.REDIS_PASSWORD,
        'master_name': args.master_name,
        'mode': args.mode,
    }
    return redis_config


def setup_worker_pool() -> WorkerPool:
    """
    Set up and start the worker pool that runs store and editor effects.
    """
    logger.info("Setting up worker pool")
    worker_pool = WorkerPool()
    worker_pool.start()
    return worker_pool


def main(argv: Optional[List[str]] = None) -> int:
    """
    Redis viewer entry point.
    """
    args = parse_args(argv)
    redis_config = redis_config_setup(args)
    logger.info(f"Starting Redis viewer ({resolve_mode(redis_config)} mode, {', '.join(redis_config['addrs'])}, db {args.db})")

    try:
        store = connect(redis_config)
    except StoreConnectionError as e:
        logger.error(f"Startup failed: {e}")
        print(f"redis-viewer: {e}", file=sys.stderr)
        return 1

    worker_pool = setup_worker_pool()
    try:
        app = RedisViewerApp(store, redis_config, worker_pool)
        app.state.scan_limit = args.limit
        app.run()
        # The app may have swapped in a connection for another database
        store = app.state.store
    finally:
        logger.info("Shutting down Redis viewer...")
        worker_pool.stop(wait=False)
        store.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
