import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

import yaml
from dotenv import load_dotenv

from netsec_scanner.core.errors import ValidationError
from netsec_scanner.reconnaissance.targets import parse_port_range, validate_timeout as check_timeout

logger = logging.getLogger(__name__)

DEFAULT_PORTS = "1-1000"
DEFAULT_THREADS = 100
DEFAULT_TIMEOUT = 1.0
DEFAULT_LOG_FILE = "tcp_scan.log"
DEFAULT_MAX_THREADS = 1000


@dataclass(frozen=True)
class ScanProfile:
    """A named preset of scan parameters."""
    name: str
    port_range: str
    threads: int
    timeout: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "ports": self.port_range,
            "threads": self.threads,
            "timeout": self.timeout,
        }


BUILTIN_PROFILES: Dict[str, ScanProfile] = {
    "quick": ScanProfile(name="quick", port_range="1-1000", threads=100, timeout=1.0),
    "thorough": ScanProfile(name="thorough", port_range="1-10000", threads=50, timeout=2.0),
    "full": ScanProfile(name="full", port_range="1-65535", threads=500, timeout=0.5),
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{raw}'.")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got '{raw}'.")


@dataclass(frozen=True)
class ScannerSettings:
    ports: str = DEFAULT_PORTS
    threads: int = DEFAULT_THREADS
    timeout: float = DEFAULT_TIMEOUT
    log_file: Optional[str] = DEFAULT_LOG_FILE
    profiles_file: Optional[str] = None
    max_threads: int = DEFAULT_MAX_THREADS
    api_key: Optional[str] = None

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "ScannerSettings":
        """Builds settings from a .env file (if present) and the process environment."""
        load_dotenv(dotenv_path)
        return cls(
            ports=os.getenv("NETSEC_SCANNER_PORTS") or DEFAULT_PORTS,
            threads=_env_int("NETSEC_SCANNER_THREADS", DEFAULT_THREADS),
            timeout=_env_float("NETSEC_SCANNER_TIMEOUT", DEFAULT_TIMEOUT),
            log_file=os.getenv("NETSEC_SCANNER_LOG_FILE", DEFAULT_LOG_FILE),
            profiles_file=os.getenv("NETSEC_SCANNER_PROFILES_FILE") or None,
            max_threads=_env_int("NETSEC_SCANNER_MAX_THREADS", DEFAULT_MAX_THREADS),
            api_key=os.getenv("API_KEY") or None,
        )

    def validate_threads(self, threads: int) -> int:
        if not 1 <= threads <= self.max_threads:
            raise ValidationError(f"Invalid number of threads: {threads}. Must be between 1 and {self.max_threads}.")
        return threads

    @staticmethod
    def validate_timeout(timeout: float) -> float:
        return check_timeout(timeout)


def _profile_from_entry(entry) -> ScanProfile:
    if not isinstance(entry, dict):
        raise ValidationError(f"Profile entry must be a mapping, got {type(entry).__name__}.")
    missing = [key for key in ("name", "ports") if key not in entry]
    if missing:
        raise ValidationError(f"Profile entry is missing: {', '.join(missing)}.")

    name = str(entry["name"]).strip()
    if not name:
        raise ValidationError("Profile name must not be empty.")
    port_range = str(entry["ports"]).strip()
    parse_port_range(port_range)
    try:
        threads = int(entry.get("threads", DEFAULT_THREADS))
        timeout = float(entry.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError):
        raise ValidationError(f"Profile '{name}' has a non-numeric threads or timeout value.")
    if threads < 1:
        raise ValidationError(f"Profile '{name}' must use at least 1 thread.")
    ScannerSettings.validate_timeout(timeout)
    return ScanProfile(name=name, port_range=port_range, threads=threads, timeout=timeout)


def load_profiles(profiles_path: Optional[str] = None) -> Dict[str, ScanProfile]:
    """
    Returns the built-in profiles merged with those defined in a YAML file.

    The file holds a list of mappings with keys name, ports, threads and timeout.
    File entries replace built-ins of the same name.
    """
    profiles = dict(BUILTIN_PROFILES)
    if not profiles_path:
        return profiles

    try:
        with open(profiles_path, "r", encoding="utf-8") as f:
            raw_profiles = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning(f"Profiles file not found at {profiles_path}. Only built-in profiles will be used.")
        return profiles
    except yaml.YAMLError as e:
        raise ValidationError(f"Profiles file {profiles_path} is not valid YAML: {e}")

    if not raw_profiles:
        return profiles
    if not isinstance(raw_profiles, list):
        raise ValidationError(f"Profiles file {profiles_path} must contain a list of profiles.")

    for entry in raw_profiles:
        profile = _profile_from_entry(entry)
        profiles[profile.name] = profile
    logger.info(f"Loaded {len(raw_profiles)} profile(s) from {profiles_path}")
    return profiles


def get_profile(name: str, profiles: Dict[str, ScanProfile]) -> ScanProfile:
    try:
        return profiles[name]
    except KeyError:
        available = ", ".join(sorted(profiles))
        raise ValidationError(f"Unknown profile '{name}'. Available profiles: {available}.")
