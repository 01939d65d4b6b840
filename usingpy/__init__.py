from .core import (
    using,
    using_sync,
    using_all,
    using_all_sync,
)
from .types import Disposable, SyncDisposable, Finalizer, Closing, disposable, closing
from .cause import Cause, Exit
from .errors import DisposeError, DisposableTypeError, suppressed
from .scope import Scope
from .logger import ConsoleLogger, get_logger, set_logger
from .config import Settings, get_settings, reset_settings

__version__ = "0.1.0"
