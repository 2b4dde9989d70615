from enum import Enum

DEFAULT_CHECK_INTERVAL = 10
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_CONF_PATH = "./unseal.toml"
ENV_PREFIX = "UNSEAL__"
ENV_SEPARATOR = "__"

BITWARDEN_API_URL = "https://api.bitwarden.com"
BITWARDEN_IDENTITY_URL = "https://identity.bitwarden.com"


class ServerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SEALED = "sealed"
    STANDBY = "standby"
    ACTIVE = "active"
    UNKNOWN = "unknown"


class WorkerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    UNSEALING = "unsealing"
    SHUTTING_DOWN = "shutting_down"


class CycleOutcome(str, Enum):
    SKIPPED = "skipped"
    NOT_READY = "not_ready"
    STATUS_ERROR = "status_error"
    UNSEALED = "unsealed"
    INSUFFICIENT_SHARES = "insufficient_shares"
    FAILED_TO_UNSEAL = "failed_to_unseal"
    NO_SHARES = "no_shares"
    UNSEAL_ERROR = "unseal_error"


class LogLevel(str, Enum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    def loguru_level(self) -> str:
        if self is LogLevel.WARN:
            return "WARNING"
        return self.value.upper()
