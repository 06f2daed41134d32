from __future__ import annotations

import re

import voluptuous as vol

PROFILE_NAME_REGEX = re.compile(r"^[a-z][a-zA-Z0-9]*(?:-[a-zA-Z0-9]+)*$")

TRUE_VALUES = frozenset({"1", "true", "yes", "on", "enable"})
FALSE_VALUES = frozenset({"0", "false", "no", "off", "disable"})


def cv_boolean(value: bool | int | str) -> bool:
    """Accept booleans, integers and the usual on/off words."""
    if isinstance(value, (bool, int)):
        return bool(value)

    if isinstance(value, str):
        word = value.strip().lower()

        if word in TRUE_VALUES:
            return True

        if word in FALSE_VALUES:
            return False

    raise vol.Invalid(f"{value!r} is not a boolean")


def cv_hex(value: int | str) -> int:
    """Vendor and product ids may be written in decimal or as `0x` prefixed hex."""
    if isinstance(value, int):
        return value

    if not isinstance(value, str):
        raise vol.Invalid(f"{value!r} is not a number")

    base = 16 if value.lower().startswith("0x") else 10

    try:
        return int(value, base)
    except ValueError as exc:
        raise vol.Invalid(f"{value!r} is not a valid number") from exc


def cv_profile_name(value: str) -> str:
    """Validate a profile name such as `plug-level-power`."""
    if not isinstance(value, str) or not PROFILE_NAME_REGEX.match(value):
        raise vol.Invalid(f"{value!r} is not a valid profile name")

    return value
