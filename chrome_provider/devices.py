"""Built-in catalog of emulated devices."""

from typing import Any

from chrome_provider.errors import ConfigurationError
from chrome_provider.models import Device

_IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS {os} like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/{version} Mobile/15E148 Safari/604.1"
)
_IPAD_UA = (
    "Mozilla/5.0 (iPad; CPU OS {os} like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/{version} Mobile/15E148 Safari/604.1"
)
_ANDROID_UA = (
    "Mozilla/5.0 (Linux; Android {os}; {model}) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 {kind}Safari/537.36"
)
_DESKTOP_TOUCH_UA = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _entry(
    title: str,
    width: int,
    height: int,
    pixel_ratio: float,
    user_agent: str,
    capabilities: tuple[str, ...] = ("mobile", "touch"),
) -> dict[str, Any]:
    return {
        "title": title,
        "capabilities": capabilities,
        "vertical": {"width": width, "height": height},
        "horizontal": {"width": height, "height": width},
        "pixel_ratio": pixel_ratio,
        "user_agent": user_agent,
    }


_CATALOG: list[dict[str, Any]] = [
    _entry("iPhone 4", 320, 480, 2, _IPHONE_UA.format(os="7_1_2", version="7.0")),
    _entry("iPhone 5/SE", 320, 568, 2, _IPHONE_UA.format(os="10_3_1", version="10.0")),
    _entry("iPhone 6/7/8", 375, 667, 2, _IPHONE_UA.format(os="11_0", version="11.0")),
    _entry("iPhone 6/7/8 Plus", 414, 736, 3, _IPHONE_UA.format(os="11_0", version="11.0")),
    _entry("iPhone X", 375, 812, 3, _IPHONE_UA.format(os="11_0", version="11.0")),
    _entry("iPhone 12 Pro", 390, 844, 3, _IPHONE_UA.format(os="14_7_1", version="14.1.2")),
    _entry("iPhone 14 Pro Max", 430, 932, 3, _IPHONE_UA.format(os="16_0", version="16.0")),
    _entry("iPad Mini", 768, 1024, 2, _IPAD_UA.format(os="11_0", version="11.0")),
    _entry("iPad", 768, 1024, 2, _IPAD_UA.format(os="11_0", version="11.0")),
    _entry("iPad Pro", 1024, 1366, 2, _IPAD_UA.format(os="11_0", version="11.0")),
    _entry(
        "Nexus 5",
        360,
        640,
        3,
        _ANDROID_UA.format(os="6.0", model="Nexus 5 Build/MRA58N", kind="Mobile "),
    ),
    _entry(
        "Nexus 5X",
        412,
        732,
        2.625,
        _ANDROID_UA.format(os="8.0.0", model="Nexus 5X Build/OPR4.170623.006", kind="Mobile "),
    ),
    _entry(
        "Nexus 7",
        600,
        960,
        2,
        _ANDROID_UA.format(os="6.0.1", model="Nexus 7 Build/MOB30X", kind=""),
    ),
    _entry(
        "Nexus 10",
        800,
        1280,
        2,
        _ANDROID_UA.format(os="6.0.1", model="Nexus 10 Build/MOB31T", kind=""),
    ),
    _entry(
        "Pixel 2",
        411,
        731,
        2.625,
        _ANDROID_UA.format(os="8.0", model="Pixel 2 Build/OPD3.170816.012", kind="Mobile "),
    ),
    _entry(
        "Pixel 7",
        412,
        915,
        2.625,
        _ANDROID_UA.format(os="13", model="Pixel 7", kind="Mobile "),
    ),
    _entry(
        "Galaxy S5",
        360,
        640,
        3,
        _ANDROID_UA.format(os="5.0", model="SM-G900P Build/LRX21T", kind="Mobile "),
    ),
    _entry(
        "Galaxy S8",
        360,
        740,
        4,
        _ANDROID_UA.format(os="7.0", model="SM-G950U Build/NRD90M", kind="Mobile "),
    ),
    _entry(
        "Galaxy Tab S4",
        712,
        1138,
        2.25,
        _ANDROID_UA.format(os="8.1.0", model="SM-T837A", kind=""),
    ),
    _entry(
        "Laptop with touch",
        800,
        1280,
        1,
        _DESKTOP_TOUCH_UA,
        capabilities=("touch",),
    ),
    _entry(
        "Laptop with HiDPI screen",
        900,
        1440,
        2,
        _DESKTOP_TOUCH_UA,
        capabilities=(),
    ),
]

DEVICES: tuple[Device, ...] = tuple(Device.model_validate(entry) for entry in _CATALOG)


def simplify_device_name(name: str) -> str:
    """Normalize a device name for matching: no whitespace, lower case."""
    return "".join(name.split()).lower()


def find_device(name: str) -> Device:
    """
    Find the first catalog device whose title contains the given name.

    Matching ignores case and whitespace, so "iPhone X" and "iphonex" find
    the same device.

    Raises:
        ConfigurationError: No device matches the name
    """
    simple_name = simplify_device_name(name)

    if simple_name:
        for device in DEVICES:
            if simple_name in simplify_device_name(device.title):
                return device

    raise ConfigurationError(f"Unknown device name: {name!r}")
