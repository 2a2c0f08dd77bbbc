import os
from functools import lru_cache


class Settings:
    def __init__(
        self,
        api_base_url: str,
        api_token: str | None,
        api_timeout_secs: float,
        sync_window_days: int,
        fetch_workers: int,
    ) -> None:
        self.api_base_url = api_base_url
        self.api_token = api_token
        self.api_timeout_secs = api_timeout_secs
        self.sync_window_days = sync_window_days
        self.fetch_workers = fetch_workers


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    api_base_url = os.getenv("ZEROBUDGET_API_BASE_URL", "http://localhost:3000")
    api_token = os.getenv("ZEROBUDGET_API_TOKEN") or None
    api_timeout_secs = float(os.getenv("ZEROBUDGET_API_TIMEOUT_SECS", "10"))
    sync_window_days = int(os.getenv("ZEROBUDGET_SYNC_WINDOW_DAYS", "7"))
    fetch_workers = int(os.getenv("ZEROBUDGET_FETCH_WORKERS", "3"))
    return Settings(
        api_base_url=api_base_url.rstrip("/"),
        api_token=api_token,
        api_timeout_secs=api_timeout_secs,
        sync_window_days=sync_window_days,
        fetch_workers=max(1, fetch_workers),
    )
