# Workers subpackage for running UI effects off the event loop

from .worker_pool import WorkerPool

__all__ = ['WorkerPool']
