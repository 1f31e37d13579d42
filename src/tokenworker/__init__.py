"""tokenworker: sidecar process that tokenizes editor buffers incrementally."""

__version__ = "0.1.0"

# Public API
from tokenworker.config import Config, get_config, load_config
from tokenworker.dispatcher import DispatchResult, Outcome, dispatch, handle_packet
from tokenworker.errors import (
    EXIT_FATAL,
    EXIT_SUCCESS,
    ConnectError,
    DecodeError,
    DeliberateFailure,
    FramingError,
    ParentUnobservable,
    TokenWorkerError,
)
from tokenworker.scheduler import SchedulerStatus, WorkScheduler
from tokenworker.server import Server, WorkerContext
from tokenworker.state import SessionState, TokenizeRange
from tokenworker.supervisor import LivenessSupervisor, PollStrategy, WaitStrategy, select_strategy
from tokenworker.tokenizer import Grammar, RegexTokenizer, Tokenizer

__all__ = [
    # Server
    "Server",
    "WorkerContext",
    # Config
    "Config",
    "load_config",
    "get_config",
    # State
    "SessionState",
    "TokenizeRange",
    # Dispatch
    "DispatchResult",
    "Outcome",
    "dispatch",
    "handle_packet",
    # Scheduler
    "SchedulerStatus",
    "WorkScheduler",
    # Supervisor
    "LivenessSupervisor",
    "PollStrategy",
    "WaitStrategy",
    "select_strategy",
    # Tokenizer
    "Grammar",
    "RegexTokenizer",
    "Tokenizer",
    # Errors
    "EXIT_FATAL",
    "EXIT_SUCCESS",
    "ConnectError",
    "DecodeError",
    "DeliberateFailure",
    "FramingError",
    "ParentUnobservable",
    "TokenWorkerError",
]
