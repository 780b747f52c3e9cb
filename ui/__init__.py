# Terminal front end: state, messages, effects and the update loop

from .state import Focus, Mode, SessionState
from .update import update

__all__ = [
    'Focus',
    'Mode',
    'SessionState',
    'update',
]
