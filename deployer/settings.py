import os
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = os.path.join(os.path.dirname(__file__), ".env")

REQUIRED = ("WORKER_SECRET", "GITHUB_TOKEN", "GITHUB_USER_OR_ORG")

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_PATH, extra="ignore")  # <- reads deployer/.env too

    WORKER_SECRET: str = ""
    GITHUB_TOKEN: str = ""
    GITHUB_USER_OR_ORG: str = ""
    GITHUB_API_URL: str = "https://api.github.com"
    PREFERRED_DRIVER: str = "auto"  # auto | api | gh
    DEFAULT_BRANCH: str = "main"
    PAGES_BUILD_PATH: str = "/"

    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"

    RECORDS_DIR: str = "."
    LOG_FILE_PATH: str = "deployer.log"

    # timings (seconds)
    SETTLE_DELAY_SECONDS: float = 9
    BRANCH_POLL_ATTEMPTS: int = 15
    BRANCH_POLL_INTERVAL_SECONDS: float = 3
    PAGES_TIMEOUT_SECONDS: float = 9 * 60
    PAGES_POLL_INTERVAL_SECONDS: float = 10
    PAGES_PROBE_TIMEOUT_SECONDS: float = 5
    NOTIFY_TIMEOUT_SECONDS: float = 30
    TASK_WORKERS: int = 8

    def missing_required(self) -> List[str]:
        return [name for name in REQUIRED if not str(getattr(self, name)).strip()]

    @property
    def log_path(self) -> str:
        if os.path.isabs(self.LOG_FILE_PATH):
            return self.LOG_FILE_PATH
        return os.path.join(self.RECORDS_DIR, self.LOG_FILE_PATH)

    @property
    def llm_enabled(self) -> bool:
        return bool(self.OPENAI_API_KEY and self.OPENAI_BASE_URL)
