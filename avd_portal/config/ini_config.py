########## ini_config.py

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path

INI_DEFAULT_NAME = "AVD_AssessmentPortal.ini"


@dataclass(frozen=True)
class AppSettings:
    api_base_url: str
    request_timeout_seconds: float

    poll_interval_seconds: float
    default_lookback_days: int

    log_level: str

    flask_host: str
    flask_port: int
    flask_debug: bool


class IniConfig:
    """
    Adapter around ConfigParser.
    Keeps INI handling out of the session/service code.
    """

    def __init__(self, ini_path: Path):
        self._ini_path = ini_path
        self._cfg = ConfigParser()
        read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
        if not read_ok:
            raise FileNotFoundError(f"INI file not found or unreadable: {ini_path}")

    @property
    def ini_path(self) -> Path:
        return self._ini_path

    @staticmethod
    def from_env_or_default() -> "IniConfig":
        ini_raw = (os.getenv("APP_INI") or "").strip()
        # If APP_INI is not set, default to repo-root-relative ini location
        ini_path = Path(ini_raw) if ini_raw else (Path(__file__).resolve().parents[2] / INI_DEFAULT_NAME)
        return IniConfig(ini_path)

    def _positive_float(self, section: str, key: str, fallback: float) -> float:
        value = self._cfg.getfloat(section, key, fallback=fallback)
        if value <= 0:
            raise ValueError(f"[{section}] {key} must be positive, got {value}")
        return value

    def load_settings(self) -> AppSettings:
        # Remote API (required)
        api_base_url = (self._cfg.get("api", "base_url", fallback="") or "").strip().rstrip("/")
        if not api_base_url:
            raise ValueError(f"Missing INI value for base_url in section [api]: {self._ini_path}")
        request_timeout_seconds = self._positive_float("api", "timeout_seconds", 30.0)

        # Polling: fixed interval, not derived from job size
        poll_interval_seconds = self._positive_float("polling", "interval_seconds", 3.0)

        # Assessment defaults
        default_lookback_days = self._cfg.getint("assessment", "default_lookback_days", fallback=7)
        if default_lookback_days < 1:
            default_lookback_days = 7

        # Logging
        log_level = (self._cfg.get("logging", "level", fallback="INFO") or "").strip().upper() or "INFO"

        # Flask
        flask_host = (self._cfg.get("flask", "host", fallback="127.0.0.1") or "").strip() or "127.0.0.1"
        flask_port = self._cfg.getint("flask", "port", fallback=5000)
        flask_debug = self._cfg.getboolean("flask", "debug", fallback=False)

        return AppSettings(
            api_base_url=api_base_url,
            request_timeout_seconds=request_timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
            default_lookback_days=default_lookback_days,
            log_level=log_level,
            flask_host=flask_host,
            flask_port=flask_port,
            flask_debug=flask_debug,
        )
