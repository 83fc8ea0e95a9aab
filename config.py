from pydantic import PrivateAttr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "SIMLOK Workflow API"
    debug: bool = False

    database_url: str = "sqlite+aiosqlite:///./simlok.db"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Client side (sync controller, store client, drafts)
    api_base_url: str = "http://127.0.0.1:3005"
    request_timeout_seconds: float = 10.0
    poll_interval_seconds: float = 5.0
    not_found_reload_delay_seconds: float = 2.0
    close_grace_seconds: float = 0.05
    push_reconnect_seconds: float = 3.0
    draft_debounce_seconds: float = 0.5
    draft_storage_path: str = ".simlok_drafts.json"

    simlok_timezone: str = "Asia/Jakarta"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    _is_sqlite: bool = PrivateAttr(default=False)

    def model_post_init(self, __context: object) -> None:
        _scheme = self.database_url.split(":")[0].lower()
        object.__setattr__(self, "_is_sqlite", "sqlite" in _scheme)

    @property
    def is_sqlite(self) -> bool:
        return self._is_sqlite


settings = Settings()
