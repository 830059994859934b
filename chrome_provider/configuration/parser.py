"""Browser configuration string parser.

Grammar, left to right::

    [mode[:mode...][:options]] [-free -form --args]

Modes are ``headless``, ``emulation`` and ``path=<binary>``. The single
non-mode token is a ``;``-separated option list of ``key=value`` pairs and
bare flags. ``:`` and ``;`` are escaped with a backslash. Everything from the
first ``-`` that starts the string or follows whitespace is passed through to
the browser process untouched, together with any unrecognized option.

Examples::

    headless
    emulation:deviceName=iPhone X;orientation=horizontal
    path=C:\\chrome\\chrome.exe:width=400 --no-sandbox
    host=example.com:9230
"""

import re
from typing import Any

from pydantic import BaseModel, ValidationError

from chrome_provider.config import settings
from chrome_provider.configuration.tokenizer import find_argument_tail, split_escaped, unescape
from chrome_provider.devices import find_device
from chrome_provider.errors import ConfigurationError
from chrome_provider.models import BrowserConfig, Device, DeviceOverride, Orientation
from chrome_provider.utils.logging import get_logger

logger = get_logger(__name__)

MODE_HEADLESS = "headless"
MODE_EMULATION = "emulation"
PATH_PREFIX = "path="

BOOLEAN_OPTIONS = {"mobile", "touch", "incognito", "noCdp", "headless"}
INTEGER_OPTIONS = {"width", "height", "cdpPort", "port"}
FLOAT_OPTIONS = {"density"}
STRING_OPTIONS = {"deviceName", "orientation", "userAgent", "host", "userDataDir", "args", "path"}
OPTION_KEYS = BOOLEAN_OPTIONS | INTEGER_OPTIONS | FLOAT_OPTIONS | STRING_OPTIONS

# Option name -> DeviceOverride field
DEVICE_OPTIONS = {
    "mobile": "mobile",
    "touch": "touch",
    "orientation": "orientation",
    "width": "width",
    "height": "height",
    "density": "density",
    "userAgent": "user_agent",
}

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}
_DRIVE_LETTER_RE = re.compile(r"^\s*path=[A-Za-z]$")
_HOST_PORT_RE = re.compile(r"^(?P<host>.+):(?P<port>\d+)$")


def _with(model: BaseModel, **changes: Any) -> Any:
    """Return a validated copy of a frozen model with some fields replaced."""
    try:
        return type(model).model_validate({**model.model_dump(), **changes})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid browser configuration: {e}") from e


def _convert(key: str, value: str | bool) -> Any:
    """Convert a raw option value to the type its key expects."""
    if key in BOOLEAN_OPTIONS:
        if value is True:
            return True
        lowered = str(value).strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigurationError(f"Option {key} expects a boolean, got {value!r}")

    if value is True:
        raise ConfigurationError(f"Option {key} requires a value")

    text = str(value).strip()

    if key in INTEGER_OPTIONS:
        try:
            number = int(text)
        except ValueError as e:
            raise ConfigurationError(f"Option {key} expects an integer, got {value!r}") from e
        if number < 0:
            raise ConfigurationError(f"Option {key} must not be negative")
        return number

    if key in FLOAT_OPTIONS:
        try:
            return float(text)
        except ValueError as e:
            raise ConfigurationError(f"Option {key} expects a number, got {value!r}") from e

    if key == "orientation":
        try:
            return Orientation(text.lower())
        except ValueError as e:
            raise ConfigurationError(f"Unknown orientation: {value!r}") from e

    return str(value)


def _repair_drive_letters(tokens: list[str]) -> list[str]:
    """Re-join ``path=C`` and ``\\dir`` split apart by the colon in ``C:``."""
    repaired: list[str] = []
    index = 0

    while index < len(tokens):
        token = tokens[index]
        if (
            _DRIVE_LETTER_RE.match(token)
            and index + 1 < len(tokens)
            and tokens[index + 1][:1] in ("\\", "/")
        ):
            token = f"{token}:{tokens[index + 1]}"
            index += 1
        repaired.append(token)
        index += 1

    return repaired


def _is_path_mode(token: str) -> bool:
    return token.startswith(PATH_PREFIX) and len(split_escaped(token, ";")) == 1


def _parse_options(option_list: str) -> tuple[dict[str, Any], list[str]]:
    """Parse a ``;``-separated option list into typed options and leftovers."""
    options: dict[str, Any] = {}
    unrecognized: list[str] = []

    for raw_token in split_escaped(option_list, ";"):
        token = raw_token.strip()
        if not token:
            continue

        raw_key, separator, raw_value = token.partition("=")
        key = unescape(raw_key).strip()

        if key not in OPTION_KEYS:
            unrecognized.append(unescape(token))
            continue

        value: str | bool = unescape(raw_value) if separator else True
        options[key] = _convert(key, value)

    return options, unrecognized


def _build_device(options: dict[str, Any], emulation_mode: bool) -> tuple[DeviceOverride, bool]:
    """Blend explicit device options with catalog defaults."""
    default = DeviceOverride()
    device = default
    db_device: Device | None = None

    device_name = options.get("deviceName", "")
    if device_name:
        db_device = find_device(device_name)
        device = _with(
            device,
            name=db_device.title,
            mobile=db_device.mobile,
            touch=db_device.touch,
            density=db_device.pixel_ratio,
            user_agent=db_device.user_agent,
        )

    explicit = {field: options[key] for key, field in DEVICE_OPTIONS.items() if key in options}
    device = _with(device, **explicit)

    orientation = device.orientation
    if orientation is None:
        orientation = Orientation.VERTICAL if device.mobile else Orientation.HORIZONTAL

    dimensions: dict[str, Any] = {"orientation": orientation}
    if db_device is not None:
        screen = db_device.screen(orientation)
        dimensions["width"] = explicit.get("width", screen.width)
        dimensions["height"] = explicit.get("height", screen.height)
    device = _with(device, **dimensions)

    emulation = (
        emulation_mode
        or bool(device_name)
        or any(value != getattr(default, field) for field, value in explicit.items())
    )
    return device, emulation


def _split_host(host: str) -> tuple[str, int | None]:
    match = _HOST_PORT_RE.match(host)
    if match is None:
        return host, None
    return match.group("host"), int(match.group("port"))


def parse_config(
    config_string: str | None,
    default_host: str | None = None,
    default_port: int | None = None,
) -> BrowserConfig:
    """
    Parse a browser configuration string.

    Parsing is a pure function of its arguments.

    Args:
        config_string: Raw configuration string, may be empty
        default_host: Host meaning "this machine" (settings default)
        default_port: DevTools port used for remote hosts without one

    Returns:
        Immutable BrowserConfig

    Raises:
        ConfigurationError: Unknown device or malformed option
    """
    default_host = default_host or settings.default_cdp_host
    default_port = default_port or settings.default_cdp_port

    raw = config_string or ""
    tail_start = find_argument_tail(raw)
    section = raw[:tail_start].strip()
    tail = raw[tail_start:].strip()

    headless = False
    emulation_mode = False
    path = ""
    option_tokens: list[str] = []

    tokens = _repair_drive_letters(split_escaped(section, ":")) if section else []
    for token in tokens:
        name = token.strip()
        if not name:
            continue
        if name == MODE_HEADLESS:
            headless = True
        elif name == MODE_EMULATION:
            emulation_mode = True
        elif _is_path_mode(name):
            path = unescape(name[len(PATH_PREFIX) :]).strip()
        else:
            option_tokens.append(token)

    # A host:port pair inside the option list is split by the mode separator
    options, unrecognized = _parse_options(":".join(option_tokens))

    device, emulation = _build_device(options, emulation_mode)

    host, host_port = _split_host(str(options.get("host", default_host)).strip())
    remote = bool(host) and host != default_host
    port = options.get("cdpPort", options.get("port", host_port))
    if remote and port is None:
        port = default_port

    if remote and options.get("noCdp", False):
        raise ConfigurationError("Remote browsers can only be reached over DevTools, drop noCdp")

    user_data_dir = options.get("userDataDir") or None
    args = " ".join(part for part in (options.get("args", ""), *unrecognized, tail) if part)

    try:
        config = BrowserConfig(
            remote=remote,
            headless=headless or options.get("headless", False),
            incognito=options.get("incognito", False),
            emulation=emulation,
            no_temp_user_data=remote or user_data_dir is not None,
            no_cdp=options.get("noCdp", False),
            host=host or default_host,
            port=port or None,
            path=options.get("path", path),
            args=args,
            user_data_dir=user_data_dir,
            device=device,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid browser configuration: {e}") from e

    logger.debug(
        "Parsed browser configuration",
        config_string=raw,
        remote=config.remote,
        headless=config.headless,
        emulation=config.emulation,
        device=config.device.name or None,
    )
    return config
