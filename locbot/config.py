import os
from dataclasses import dataclass

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def parse_bind_address(address: str) -> tuple[str, int]:
    """Split a ``host:port`` bind address.

    An empty host (``":8080"``) binds every interface.
    """
    host, sep, port = address.strip().rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"BIND_ADDRESS must look like host:port, got {address!r}")
    return host.strip("[]") or "0.0.0.0", int(port)


@dataclass(frozen=True)
class Settings:
    bot_token: str
    server_path: str
    bot_debug: bool = False
    bind_host: str = "127.0.0.1"
    bind_port: int = 8080
    group_limit: int = 0
    fetch_user_pic: bool = False
    enable_map: bool = False
    static_dir: str = "./static"
    db_path: str = "locbot.db"
    shutdown_timeout: int = 5

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Raises ``ValueError`` when a required variable is missing or a
        value cannot be parsed.
        """
        token = os.getenv("TELEGRAM_BOT_TOKEN", "").strip()
        if not token:
            raise ValueError("TELEGRAM_BOT_TOKEN environment variable is not set")

        server_path = os.getenv("SERVER_PATH", "").strip().rstrip("/")
        if not server_path:
            raise ValueError("SERVER_PATH environment variable is not set")

        host, port = parse_bind_address(os.getenv("BIND_ADDRESS", "127.0.0.1:8080"))

        group_limit = _env_int("GROUP_LIMIT", 0)
        if group_limit < 0:
            raise ValueError("GROUP_LIMIT must not be negative")

        return cls(
            bot_token=token,
            server_path=server_path,
            bot_debug=_env_flag("BOT_DEBUG"),
            bind_host=host,
            bind_port=port,
            group_limit=group_limit,
            fetch_user_pic=_env_flag("FETCH_USER_PIC"),
            enable_map=_env_flag("ENABLE_MAP"),
            static_dir=os.getenv("STATIC_DIR", "./static"),
            db_path=os.getenv("DB_PATH", "locbot.db"),
            shutdown_timeout=_env_int("SHUTDOWN_TIMEOUT", 5),
        )
