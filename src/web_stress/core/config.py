"""Configuration loading for a traffic run."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

UINT16_MAX = 65535
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
BROWSER_ENGINES = ("http", "chromium")
SETTINGS_KEYS = ("same_domain", "same_subdomain", "depth", "repeat", "users", "wait_ms")
# Older Config.toml files spell the sub-domain flag this way.
SETTINGS_ALIASES = {"same_sub_domain": "same_subdomain"}


class ConfigurationError(ValueError):
    """Raised when the run cannot be configured from the given inputs."""


@dataclass(frozen=True, slots=True)
class RunSettings:
    """Immutable knobs shared by every simulated user."""

    same_domain: bool = True
    same_subdomain: bool = True
    max_depth: int = 1
    repeat_count: int = 1
    user_count: int = 1
    base_wait_ms: int = 500

    def __post_init__(self) -> None:
        for name in ("max_depth", "repeat_count", "user_count", "base_wait_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            if not 0 <= value <= UINT16_MAX:
                raise ConfigurationError(f"{name} must be between 0 and {UINT16_MAX}, got {value}")

        if self.user_count < 1:
            raise ConfigurationError("At least one simulated user is required")

        # A session always runs at least once and never waits zero milliseconds.
        if self.repeat_count < 1:
            object.__setattr__(self, "repeat_count", 1)
        if self.base_wait_ms < 1:
            object.__setattr__(self, "base_wait_ms", 1)


@dataclass(frozen=True, slots=True)
class CrawlTarget:
    """Either a seed URL (recursive browsing) or an ordered URL list."""

    seed_url: Optional[str] = None
    url_list: Optional[tuple[str, ...]] = None

    def __post_init__(self) -> None:
        if (self.seed_url is None) == (self.url_list is None):
            raise ConfigurationError("Exactly one of a seed URL or a URL list must be given")
        if self.url_list is not None and not isinstance(self.url_list, tuple):
            object.__setattr__(self, "url_list", tuple(self.url_list))

    @classmethod
    def from_seed(cls, url: str) -> "CrawlTarget":
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise ConfigurationError(f"Seed URL must be an absolute http(s) URL: {url!r}")
        return cls(seed_url=url)

    @classmethod
    def from_list(cls, urls: Iterable[str]) -> "CrawlTarget":
        return cls(url_list=tuple(urls))

    @property
    def is_recursive(self) -> bool:
        return self.seed_url is not None


@dataclass(frozen=True, slots=True)
class BrowserOptions:
    """How each simulated user's browser session is created."""

    engine: str = "http"
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.engine not in BROWSER_ENGINES:
            raise ConfigurationError(
                f"Unknown browser engine {self.engine!r}, expected one of {', '.join(BROWSER_ENGINES)}"
            )


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Everything a run needs, built once at start and passed down explicitly."""

    target: CrawlTarget
    settings: RunSettings = field(default_factory=RunSettings)
    browser: BrowserOptions = field(default_factory=BrowserOptions)
    config_path: Optional[Path] = None


# ----------------------------------------------------------------------
# Parsing helpers
# ----------------------------------------------------------------------
def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"Expected a boolean value, got {value!r}")


def read_url_list(path: Path) -> list[str]:
    """Reads one URL per line, skipping blank lines."""

    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Error loading URLs from the file {path}: {exc}") from exc

    return [line.strip() for line in content.splitlines() if line.strip()]


def load_settings_file(path: Path) -> dict[str, Any]:
    """Loads the TOML settings file and returns only the known keys."""

    try:
        with Path(path).open("rb") as handle:
            raw = tomllib.load(handle)
    except OSError as exc:
        raise ConfigurationError(f"Error loading configuration from the path {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

    unknown = sorted(set(raw) - set(SETTINGS_KEYS) - set(SETTINGS_ALIASES))
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")
    for alias, key in SETTINGS_ALIASES.items():
        if alias in raw:
            if key in raw:
                raise ConfigurationError(f"Both {alias} and {key} are set in {path}")
            raw[key] = raw.pop(alias)
    return raw


def build_settings(values: Mapping[str, Any], base: Optional[RunSettings] = None) -> RunSettings:
    """Applies file/CLI style keys (``depth``, ``wait_ms``...) on top of ``base``."""

    settings = base or RunSettings()
    changes: dict[str, Any] = {}
    if values.get("same_domain") is not None:
        changes["same_domain"] = parse_bool(values["same_domain"])
    if values.get("same_subdomain") is not None:
        changes["same_subdomain"] = parse_bool(values["same_subdomain"])
    for key, attribute in (
        ("depth", "max_depth"),
        ("repeat", "repeat_count"),
        ("users", "user_count"),
        ("wait_ms", "base_wait_ms"),
    ):
        if values.get(key) is not None:
            changes[attribute] = values[key]
    return replace(settings, **changes) if changes else settings


def load_configuration(
    *,
    url: Optional[str] = None,
    url_list_path: Optional[Path] = None,
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    engine: Optional[str] = None,
    headless: Optional[bool] = None,
) -> RunConfig:
    """Builds a ``RunConfig`` from defaults, the TOML file, environment and CLI input."""

    load_dotenv()  # Loads .env values if present

    if url and url_list_path:
        raise ConfigurationError("Use either a seed URL or a URL list, not both")
    if url:
        target = CrawlTarget.from_seed(url)
    elif url_list_path:
        target = CrawlTarget.from_list(read_url_list(url_list_path))
    else:
        raise ConfigurationError("A seed URL or a URL list file is required")

    settings = RunSettings()
    if config_path is not None:
        settings = build_settings(load_settings_file(config_path), settings)
    if overrides:
        settings = build_settings(overrides, settings)

    env_headless = os.getenv("HEADLESS")
    browser = BrowserOptions(
        engine=(engine or os.getenv("BROWSER_ENGINE") or "http").lower(),
        headless=headless if headless is not None else (parse_bool(env_headless) if env_headless else True),
        user_agent=os.getenv("USER_AGENT") or DEFAULT_USER_AGENT,
    )

    return RunConfig(
        target=target,
        settings=settings,
        browser=browser,
        config_path=Path(config_path).resolve() if config_path else None,
    )


def describe_configuration(config: RunConfig) -> list[str]:
    """Returns the summary lines printed before a run starts."""

    settings = config.settings
    lines: list[str] = []
    if config.target.is_recursive:
        lines.append(f"Action:            Browsing pages recursively from {config.target.seed_url}")
        lines.append(f"Same domain:       {str(settings.same_domain).lower()}")
        lines.append(f"Same sub-domain:   {str(settings.same_subdomain).lower()}")
        lines.append(f"Depth:             {settings.max_depth}")
    else:
        lines.append(f"Action:            Browse over list of {len(config.target.url_list or ())} URLs")
    lines.append(f"Repeat:            {settings.repeat_count} time(s)")
    lines.append(f"Simulated users:   {settings.user_count}")
    lines.append(f"Wait on each page: {settings.base_wait_ms} ms")
    lines.append(f"Browser:           {config.browser.engine}")
    return lines
